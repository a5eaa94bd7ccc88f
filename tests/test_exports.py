import datetime

import pandas as pd

from analytics import accommodation_stats, city_stats, compare_stats
from exports import (
    ExportCell,
    build_export_table,
    export_bookings_csv,
    export_csv,
    export_filename,
    export_pdf,
    pdf_sanitize,
)


def _bookings(price_factor: float = 1.0) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {"ArrivalDate": "2024-03-01", "DepartureDate": "2024-03-04", "ServiceName": "Haus am See",
             "ServiceCity": "Lindau", "TotalPrice": 300.0, "Commission": 30.0, "Cancelled": False},
            {"ArrivalDate": "2024-04-01", "DepartureDate": "2024-04-08", "ServiceName": "Alpenblick",
             "ServiceCity": "Oberstdorf", "TotalPrice": 1234.5, "Commission": 123.45, "Cancelled": False},
        ]
    )
    df["TotalPrice"] = df["TotalPrice"] * price_factor
    for col in ["ArrivalDate", "DepartureDate"]:
        df[col] = pd.to_datetime(df[col])
    return df


def test_build_export_table_without_changes() -> None:
    table = build_export_table(accommodation_stats(_bookings()), title="Top", entity_label="Accommodation")

    assert table.headers == (
        "Accommodation", "City", "Revenue", "Bookings", "Commission", "Nights", "Cancellation rate",
    )
    assert not table.has_changes
    first = [cell.formatted() for cell in table.rows[0]]
    assert first == ["Haus am See", "Lindau", "300,00 €", "1", "30,00 €", "3", "0,0 %"]


def test_city_table_repeats_index_as_city() -> None:
    table = build_export_table(city_stats(_bookings()), title="Top", entity_label="City")

    assert [row[1].formatted() for row in table.rows] == ["Lindau", "Oberstdorf"]


def test_changes_render_unset_values_as_placeholder() -> None:
    current = accommodation_stats(_bookings())
    prior = accommodation_stats(_bookings(0.5).iloc[[1]])
    table = build_export_table(compare_stats(current, prior), title="Top", entity_label="Accommodation",
                               include_changes=True)

    assert table.has_changes
    assert table.headers[-1] == "Cancellation rate ±pp"
    frame = table.to_frame(formatted=True)
    assert frame.loc[0, "Revenue ±%"] == "N/A"
    assert frame.loc[1, "Revenue ±%"] == "+100,0 %"
    assert frame.loc[1, "Cancellation rate ±pp"] == "0,0 pp"


def test_export_csv_is_semicolon_separated_with_decimal_comma() -> None:
    current = accommodation_stats(_bookings())
    table = build_export_table(compare_stats(current, current.iloc[0:0]), title="Top",
                               entity_label="Accommodation", include_changes=True)

    text = export_csv(table).decode("utf-8-sig")
    lines = text.splitlines()

    assert lines[0].startswith("Accommodation;City;Revenue;Bookings")
    assert lines[2].startswith("Alpenblick;Oberstdorf;1234,5;1;123,45;7;0,0")
    assert lines[2].endswith(";;;;")
    assert "nan" not in text.lower()


def test_export_bookings_csv_formats_dates() -> None:
    text = export_bookings_csv(_bookings()).decode("utf-8-sig")

    assert "2024-03-01;2024-03-04;Haus am See" in text


def test_export_pdf_produces_document() -> None:
    table = build_export_table(city_stats(_bookings()), title="Top 30 cities", entity_label="City")

    payload = export_pdf(table, subtitle="All arrivals | All regions", generated_on=datetime.date(2024, 5, 1))

    assert isinstance(payload, bytes)
    assert payload.startswith(b"%PDF")


def test_export_pdf_handles_empty_and_compared_tables() -> None:
    empty = build_export_table(city_stats(_bookings().iloc[0:0]), title="Top 30 cities", entity_label="City")
    stats = city_stats(_bookings())
    compared = build_export_table(compare_stats(stats, stats), title="Top 30 cities €", entity_label="City",
                                  include_changes=True)

    assert export_pdf(empty).startswith(b"%PDF")
    assert export_pdf(compared).startswith(b"%PDF")


def test_cells_and_helpers() -> None:
    assert ExportCell(None, "currency").formatted() == "N/A"
    assert ExportCell(pd.NA, "change").raw() is None
    assert ExportCell(None, "text").formatted() == ""
    assert pdf_sanitize("1.234,56 €") == "1.234,56 EUR"
    assert pdf_sanitize("a → b") == "a ? b"
    assert export_filename("30 accommodations", "pdf") == "top-30-accommodations.pdf"
