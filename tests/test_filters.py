import datetime
import logging

import pandas as pd
import pytest

from config import ALL_CITIES, ALL_REGIONS
from filters import (
    DashboardFilters,
    available_years,
    filter_by_city,
    filter_by_date_range,
    filter_by_year,
    normalize_filters,
    select_comparison,
    select_current,
    unique_cities,
    unique_regions,
)


def _bookings() -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {"ArrivalDate": "2023-03-10 15:00", "ServiceName": "A", "ServiceCity": "Lindau", "Region": "Bodensee"},
            {"ArrivalDate": "2024-03-01 00:00", "ServiceName": "A", "ServiceCity": "Lindau", "Region": "Bodensee"},
            {"ArrivalDate": "2024-03-31 23:30", "ServiceName": "B", "ServiceCity": "Füssen", "Region": "Allgäu"},
            {"ArrivalDate": "2024-04-01 08:00", "ServiceName": "C", "ServiceCity": "Lindau", "Region": "Bodensee"},
        ]
    )
    df["ArrivalDate"] = pd.to_datetime(df["ArrivalDate"])
    return df


def test_filter_by_date_range_is_inclusive_of_whole_days() -> None:
    out = filter_by_date_range(_bookings(), datetime.date(2024, 3, 1), datetime.date(2024, 3, 31))

    assert list(out["ServiceName"]) == ["A", "B"]


def test_filter_by_date_range_without_bounds_keeps_everything() -> None:
    assert len(filter_by_date_range(_bookings(), None, None)) == 4
    assert len(filter_by_date_range(_bookings(), datetime.date(2024, 3, 1), None)) == 4


def test_filter_by_date_range_applies_region() -> None:
    out = filter_by_date_range(_bookings(), datetime.date(2024, 1, 1), datetime.date(2024, 12, 31), "Bodensee")

    assert list(out["ServiceName"]) == ["A", "C"]


@pytest.mark.parametrize("region", [None, "", ALL_REGIONS])
def test_all_regions_sentinel_passes_everything(region) -> None:
    assert len(filter_by_year(_bookings(), 2024, region)) == 3


def test_filter_by_year_uses_arrival_year() -> None:
    assert list(filter_by_year(_bookings(), 2023)["ServiceName"]) == ["A"]
    assert filter_by_year(_bookings(), 2022).empty


def test_unparseable_dates_are_dropped_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    df = pd.DataFrame(
        [
            {"ArrivalDate": "2024-03-05", "ServiceName": "ok", "Region": ""},
            {"ArrivalDate": "31.02.2024x", "ServiceName": "broken", "Region": ""},
        ]
    )

    with caplog.at_level(logging.WARNING, logger="filters"):
        out = filter_by_date_range(df, datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))

    assert list(out["ServiceName"]) == ["ok"]
    assert "unparseable arrival date" in caplog.text


def test_missing_arrival_column_yields_empty_selection() -> None:
    out = filter_by_year(pd.DataFrame({"ServiceName": ["A"]}), 2024)

    assert out.empty


def test_select_current_and_comparison_follow_mode() -> None:
    bookings = _bookings()
    range_filters = DashboardFilters(start_date=datetime.date(2024, 3, 1), end_date=datetime.date(2024, 3, 31))
    year_filters = range_filters.with_changes(comparison_enabled=True, year=2024, comparison_year=2023)

    assert len(select_current(bookings, range_filters)) == 2
    assert select_comparison(bookings, range_filters) is None
    assert len(select_current(bookings, year_filters)) == 3
    assert list(select_comparison(bookings, year_filters)["ServiceName"]) == ["A"]


def test_filters_are_immutable_values() -> None:
    filters = DashboardFilters()
    changed = filters.with_changes(region="Allgäu")

    assert filters.region == ALL_REGIONS
    assert changed.region == "Allgäu"
    with pytest.raises(AttributeError):
        filters.region = "Bodensee"  # type: ignore[misc]


def test_normalize_filters_defaults_to_latest_year_pair() -> None:
    filters = normalize_filters({"comparison_enabled": True, "region": ""}, available_years=[2022, 2024, 2023])

    assert filters.year == 2024
    assert filters.comparison_year == 2023
    assert filters.region == ALL_REGIONS
    assert filters.city == ALL_CITIES


def test_normalize_filters_parses_dates_and_years() -> None:
    filters = normalize_filters(
        {"start_date": "2024-01-01", "end_date": datetime.datetime(2024, 6, 30, 12, 0), "year": "2021"},
        available_years=[2024],
    )

    assert filters.start_date == datetime.date(2024, 1, 1)
    assert filters.end_date == datetime.date(2024, 6, 30)
    assert filters.year == 2021
    assert filters.comparison_year == 2020


def test_option_lists() -> None:
    bookings = _bookings()

    assert unique_regions(bookings) == ["Allgäu", "Bodensee"]
    assert unique_cities(bookings) == ["Füssen", "Lindau"]
    assert available_years(bookings) == [2023, 2024]
    assert list(filter_by_city(bookings, "Füssen")["ServiceName"]) == ["B"]
    assert len(filter_by_city(bookings, ALL_CITIES)) == 4
