"""Booking selection by date range, calendar year and region."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

import pandas as pd

from config import ALL_CITIES, ALL_REGIONS
from parsing import to_date_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardFilters:
    """Snapshot of every user-selected filter; replaced, never mutated."""

    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    comparison_enabled: bool = False
    year: Optional[int] = None
    comparison_year: Optional[int] = None
    region: str = ALL_REGIONS
    city: str = ALL_CITIES

    def with_changes(self, **changes) -> "DashboardFilters":
        return replace(self, **changes)


def _as_int(value: object) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_date(value: object) -> Optional[datetime.date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    parsed = pd.to_datetime(value, errors="coerce")
    return None if pd.isna(parsed) else parsed.date()


def normalize_filters(raw: dict, *, available_years: Optional[Iterable[int]] = None) -> DashboardFilters:
    """Build a valid filter state from raw widget values."""
    years = sorted({int(y) for y in (available_years or [])})

    year = _as_int(raw.get("year"))
    if year is None:
        year = years[-1] if years else None
    comparison_year = _as_int(raw.get("comparison_year"))
    if comparison_year is None and year is not None:
        comparison_year = year - 1

    region = str(raw.get("region") or "").strip() or ALL_REGIONS
    city = str(raw.get("city") or "").strip() or ALL_CITIES

    return DashboardFilters(
        start_date=_as_date(raw.get("start_date")),
        end_date=_as_date(raw.get("end_date")),
        comparison_enabled=bool(raw.get("comparison_enabled", False)),
        year=year,
        comparison_year=comparison_year,
        region=region,
        city=city,
    )


def _valid_arrivals(df: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
    """Drop rows whose arrival date cannot be parsed, logging how many."""
    if "ArrivalDate" not in df.columns:
        logger.warning("Bookings have no arrival date column; nothing to filter")
        return df.iloc[0:0].copy(), pd.Series(dtype="datetime64[ns]")

    arrival = to_date_series(df["ArrivalDate"])
    invalid = arrival.isna()
    if invalid.any():
        logger.warning("Skipping %d booking(s) with unparseable arrival date", int(invalid.sum()))
    return df.loc[~invalid], arrival.loc[~invalid]


def region_mask(df: pd.DataFrame, region: Optional[str]) -> pd.Series:
    if not region or region == ALL_REGIONS or "Region" not in df.columns:
        return pd.Series(True, index=df.index)
    return df["Region"].fillna("").astype(str).str.strip() == region


def filter_by_date_range(
    df: pd.DataFrame,
    start_date,
    end_date,
    region: Optional[str] = None,
) -> pd.DataFrame:
    """Bookings arriving within ``[start, end]`` (whole days, inclusive)."""
    valid, arrival = _valid_arrivals(df)
    mask = region_mask(valid, region)
    if start_date is not None and end_date is not None:
        start = pd.Timestamp(start_date).normalize()
        end = pd.Timestamp(end_date).normalize() + pd.Timedelta(days=1) - pd.Timedelta(1, unit="ns")
        mask &= arrival.between(start, end)
    return valid.loc[mask].copy()


def filter_by_year(df: pd.DataFrame, year: int, region: Optional[str] = None) -> pd.DataFrame:
    """Bookings whose arrival falls in calendar ``year``."""
    valid, arrival = _valid_arrivals(df)
    mask = region_mask(valid, region) & (arrival.dt.year == int(year))
    return valid.loc[mask].copy()


def filter_by_city(df: pd.DataFrame, city: Optional[str]) -> pd.DataFrame:
    if not city or city == ALL_CITIES or "ServiceCity" not in df.columns:
        return df
    return df[df["ServiceCity"].fillna("").astype(str).str.strip() == city]


def select_current(bookings: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    """Primary selection: the first comparison year, or the date range."""
    if filters.comparison_enabled and filters.year is not None:
        return filter_by_year(bookings, filters.year, filters.region)
    return filter_by_date_range(bookings, filters.start_date, filters.end_date, filters.region)


def select_comparison(bookings: pd.DataFrame, filters: DashboardFilters) -> Optional[pd.DataFrame]:
    if not filters.comparison_enabled or filters.comparison_year is None:
        return None
    return filter_by_year(bookings, filters.comparison_year, filters.region)


def unique_regions(df: pd.DataFrame) -> list[str]:
    if "Region" not in df.columns:
        return []
    values = df["Region"].fillna("").astype(str).str.strip()
    return sorted(v for v in values.unique() if v)


def unique_cities(df: pd.DataFrame) -> list[str]:
    if "ServiceCity" not in df.columns:
        return []
    values = df["ServiceCity"].fillna("").astype(str).str.strip()
    return sorted(v for v in values.unique() if v)


def available_years(df: pd.DataFrame) -> list[int]:
    if df.empty or "ArrivalDate" not in df.columns:
        return []
    arrival = to_date_series(df["ArrivalDate"]).dropna()
    return sorted(int(y) for y in arrival.dt.year.unique())
