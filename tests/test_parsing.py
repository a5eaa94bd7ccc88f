import io

import pandas as pd
import pytest

from parsing import (
    BookingFileError,
    coerce_amount,
    load_bookings,
    merge_bookings,
    to_date_series,
    to_flag_series,
)


class DummyUpload(io.BytesIO):
    def __init__(self, name: str, content: str) -> None:
        super().__init__(content.encode("utf-8"))
        self.name = name


def test_coerce_amount_handles_german_and_plain_notation() -> None:
    assert coerce_amount("1.234,56 €") == 1234.56
    assert coerce_amount("1234.56") == 1234.56
    assert coerce_amount("1.234") == 1234.0
    assert coerce_amount("89,90") == 89.9
    assert coerce_amount(150) == 150.0


def test_coerce_amount_treats_garbage_as_zero() -> None:
    assert coerce_amount("n/a") == 0.0
    assert coerce_amount("") == 0.0
    assert coerce_amount(None) == 0.0
    assert coerce_amount(float("nan")) == 0.0
    assert coerce_amount("inf") == 0.0


def test_to_flag_series_understands_common_spellings() -> None:
    raw = pd.Series(["ja", "nein", "TRUE", "false", "1", "0", "x", None])

    assert to_flag_series(raw).tolist() == [True, False, True, False, True, False, True, False]
    assert to_flag_series(pd.Series([1, 0, 2])).tolist() == [True, False, True]


def test_to_date_series_accepts_iso_and_german_dates() -> None:
    parsed = to_date_series(pd.Series(["2024-03-01", "15.04.2024", "not a date"]))

    assert parsed.iloc[0] == pd.Timestamp("2024-03-01")
    assert parsed.iloc[1] == pd.Timestamp("2024-04-15")
    assert pd.isna(parsed.iloc[2])


def test_load_bookings_maps_german_headers_semicolon_csv() -> None:
    csv_content = "\n".join(
        [
            "Buchungsdatum;Anreise;Abreise;Unterkunft;Ort;Region;Gesamtpreis;Provision;Storniert",
            "01.02.2024;10.03.2024;13.03.2024;Haus am See;Lindau;Bodensee;450,00;45,00;nein",
            "05.02.2024;12.03.2024;14.03.2024;Alpenblick;Oberstdorf;Allgäu;1.200,50;120,05;ja",
        ]
    )

    out = load_bookings(DummyUpload("export.csv", csv_content))

    assert list(out["ServiceName"]) == ["Haus am See", "Alpenblick"]
    assert list(out["TotalPrice"]) == [450.0, 1200.5]
    assert list(out["Cancelled"]) == [False, True]
    assert out["ArrivalDate"].iloc[0] == pd.Timestamp("2024-03-10")
    assert list(out["SourceFile"]) == ["export.csv", "export.csv"]


def test_load_bookings_maps_english_headers_comma_csv() -> None:
    csv_content = "\n".join(
        [
            "bookingDate,arrivalDate,departureDate,serviceName,serviceCity,totalPrice,commission,cancelled",
            "2024-01-05,2024-02-01,2024-02-04,Villa Sol,Palma,300.5,30,false",
        ]
    )

    out = load_bookings(DummyUpload("bookings.csv", csv_content))

    assert out["ServiceCity"].iloc[0] == "Palma"
    assert out["Commission"].iloc[0] == 30.0
    assert out["Region"].iloc[0] == ""
    assert not bool(out["Cancelled"].iloc[0])


def test_load_bookings_prefers_canonical_header_over_alias() -> None:
    csv_content = "\n".join(
        [
            "Preis;TotalPrice;Anreise;Unterkunft;Ort;City",
            "100;250;2024-03-01;A;Lindau;Bregenz",
        ]
    )

    out = load_bookings(DummyUpload("both.csv", csv_content))

    assert list(out["TotalPrice"]) == [250.0]
    assert list(out["ServiceCity"]) == ["Lindau"]
    assert out["ArrivalDate"].iloc[0] == pd.Timestamp("2024-03-01")


def test_load_bookings_rejects_missing_required_columns() -> None:
    uploaded = DummyUpload("broken.csv", "Anreise;Ort\n2024-03-01;Lindau\n")

    with pytest.raises(BookingFileError, match="ServiceName"):
        load_bookings(uploaded)


def test_load_bookings_rejects_unsupported_extension() -> None:
    with pytest.raises(BookingFileError):
        load_bookings(DummyUpload("bookings.xlsx", "irrelevant"))


def test_load_bookings_keeps_rows_with_bad_dates_and_prices() -> None:
    csv_content = "\n".join(
        [
            "arrivalDate;serviceName;totalPrice",
            "2024-03-01;A;100",
            "someday;B;lots",
        ]
    )

    out = load_bookings(DummyUpload("mixed.csv", csv_content))

    assert len(out) == 2
    assert pd.isna(out["ArrivalDate"].iloc[1])
    assert out["TotalPrice"].iloc[1] == 0.0


def test_merge_bookings_sorts_and_deduplicates_overlap() -> None:
    header = "arrivalDate;serviceName;totalPrice"
    part_one = "\n".join([header, "2024-03-05;B;200", "2024-03-01;A;100"])
    part_two = "\n".join([header, "2024-03-01;A;100", "2024-03-03;C;50"])

    out = merge_bookings(
        [DummyUpload("part_1.csv", part_one), DummyUpload("part_2.csv", part_two)],
        drop_duplicates=True,
    )

    assert list(out["ServiceName"]) == ["A", "C", "B"]


def test_merge_bookings_can_keep_duplicates() -> None:
    content = "\n".join(["arrivalDate;serviceName;totalPrice", "2024-03-01;A;100"])

    out = merge_bookings(
        [DummyUpload("a.csv", content), DummyUpload("b.csv", content)],
        drop_duplicates=False,
    )

    assert len(out) == 2
