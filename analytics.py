"""Analytics helpers for booking KPIs, ranked tables and period comparison."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import pandas as pd

from config import CANCELLATION_ELEVATED, CANCELLATION_HIGH, TOP_N, UNKNOWN_LABEL
from filters import DashboardFilters, filter_by_city, select_comparison, select_current
from parsing import to_amount_series, to_date_series, to_flag_series

logger = logging.getLogger(__name__)

STAT_COLUMNS = [
    "Bookings",
    "CancelledBookings",
    "RevenueEUR",
    "CommissionEUR",
    "Nights",
    "AvgRevenueEUR",
    "CancellationRate",
]

# (bucket column, relative change column)
RELATIVE_CHANGES = [
    ("RevenueEUR", "RevenueChange"),
    ("Bookings", "BookingsChange"),
    ("CommissionEUR", "CommissionChange"),
    ("Nights", "NightsChange"),
]
CHANGE_COLUMNS = [col for _, col in RELATIVE_CHANGES] + ["CancellationRateChange"]


def _text_key(column: str) -> Callable[[pd.DataFrame], pd.Series]:
    def extract(df: pd.DataFrame) -> pd.Series:
        if column not in df.columns:
            return pd.Series(UNKNOWN_LABEL, index=df.index)
        values = df[column].fillna("").astype(str).str.strip()
        return values.mask(values == "", UNKNOWN_LABEL)

    return extract


def _month_key(df: pd.DataFrame) -> pd.Series:
    if "BookingDate" not in df.columns:
        return pd.Series(pd.NA, index=df.index, dtype="object")
    return to_date_series(df["BookingDate"]).dt.strftime("%Y-%m")


GROUPINGS: dict[str, tuple[str, Callable[[pd.DataFrame], pd.Series]]] = {
    "month": ("Month", _month_key),
    "accommodation": ("Accommodation", _text_key("ServiceName")),
    "city": ("City", _text_key("ServiceCity")),
}


def stay_nights(df: pd.DataFrame) -> pd.Series:
    """Calendar nights between arrival and departure, never negative."""
    if "ArrivalDate" not in df.columns or "DepartureDate" not in df.columns:
        return pd.Series(0, index=df.index, dtype="int64")
    arrival = to_date_series(df["ArrivalDate"]).dt.normalize()
    departure = to_date_series(df["DepartureDate"]).dt.normalize()
    nights = (departure - arrival).dt.days
    return nights.fillna(0).clip(lower=0).astype("int64")


def booking_contributions(df: pd.DataFrame) -> pd.DataFrame:
    """Per-booking amounts that feed the sums; cancelled bookings add only counts."""
    cancelled = (
        to_flag_series(df["Cancelled"]) if "Cancelled" in df.columns else pd.Series(False, index=df.index)
    )
    active = ~cancelled

    def amount(column: str) -> pd.Series:
        if column not in df.columns:
            return pd.Series(0.0, index=df.index)
        return to_amount_series(df[column]).clip(lower=0.0).where(active, 0.0)

    return pd.DataFrame(
        {
            "Bookings": 1,
            "CancelledBookings": cancelled.astype("int64"),
            "RevenueEUR": amount("TotalPrice"),
            "CommissionEUR": amount("Commission"),
            "Nights": stay_nights(df).where(active, 0),
        },
        index=df.index,
    )


def _empty_stats(index_name: str) -> pd.DataFrame:
    out = pd.DataFrame(
        {
            "Bookings": pd.Series(dtype="int64"),
            "CancelledBookings": pd.Series(dtype="int64"),
            "RevenueEUR": pd.Series(dtype="float64"),
            "CommissionEUR": pd.Series(dtype="float64"),
            "Nights": pd.Series(dtype="int64"),
            "AvgRevenueEUR": pd.Series(dtype="float64"),
            "CancellationRate": pd.Series(dtype="float64"),
        }
    )
    out.index.name = index_name
    return out


def aggregate_bookings(df: pd.DataFrame, group_by: str = "accommodation") -> pd.DataFrame:
    """Group bookings into one row of totals per key.

    ``group_by`` is ``"month"`` (booking date, ``yyyy-MM``), ``"accommodation"``
    or ``"city"``. Rows keep the order in which their key first appears, so a
    stable sort on the result is deterministic.
    """
    index_name, key_fn = GROUPINGS[group_by]
    if df.empty:
        return _empty_stats(index_name)

    keys = key_fn(df)
    missing = keys.isna()
    if missing.any():
        logger.warning("Skipping %d booking(s) without a usable %s key", int(missing.sum()), index_name.lower())
    contributions = booking_contributions(df).loc[~missing].copy()
    if contributions.empty:
        return _empty_stats(index_name)

    contributions[index_name] = keys.loc[~missing]
    out = contributions.groupby(index_name, sort=False).sum()
    out["AvgRevenueEUR"] = out["RevenueEUR"] / out["Bookings"]
    out["CancellationRate"] = out["CancelledBookings"] / out["Bookings"]
    return out[STAT_COLUMNS]


def monthly_stats(df: pd.DataFrame) -> pd.DataFrame:
    """Monthly totals in chronological order."""
    return aggregate_bookings(df, "month").sort_index()


def accommodation_stats(df: pd.DataFrame) -> pd.DataFrame:
    """Totals per accommodation plus the city it is located in."""
    out = aggregate_bookings(df, "accommodation")
    if out.empty:
        out.insert(0, "City", pd.Series(dtype="object"))
        return out

    names = _text_key("ServiceName")(df)
    if "ServiceCity" in df.columns:
        cities = df["ServiceCity"].fillna("").astype(str).str.strip()
    else:
        cities = pd.Series("", index=df.index)
    located = pd.DataFrame({"Accommodation": names, "City": cities})
    located = located[located["City"] != ""]
    first_city = located.drop_duplicates("Accommodation").set_index("Accommodation")["City"]
    out.insert(0, "City", first_city.reindex(out.index).fillna(""))
    return out


def city_stats(df: pd.DataFrame) -> pd.DataFrame:
    return aggregate_bookings(df, "city")


def compare_stats(current: pd.DataFrame, prior: pd.DataFrame) -> pd.DataFrame:
    """Attach period-over-period changes to every row of ``current``.

    Relative changes are ``(current - prior) / prior``; the cancellation-rate
    change is the absolute difference. A change stays ``<NA>`` when the key has
    no prior row or the prior value is zero. Keys only present in ``prior`` are
    not returned.
    """
    out = current.copy()
    aligned = prior.reindex(current.index)

    for metric, change_col in RELATIVE_CHANGES:
        base = aligned[metric]
        change = (current[metric] - base) / base.where(base > 0)
        out[change_col] = change.astype("Float64")

    rate_change = current["CancellationRate"] - aligned["CancellationRate"]
    out["CancellationRateChange"] = rate_change.astype("Float64")
    out["HasComparison"] = aligned["Bookings"].notna()
    return out


def rank_top(stats: pd.DataFrame, metric: str = "RevenueEUR", top_n: int = TOP_N) -> pd.DataFrame:
    """Highest ``metric`` first; ties keep their incoming order."""
    if stats.empty:
        return stats.copy()
    return stats.sort_values(metric, ascending=False, kind="stable").head(int(top_n))


def _ratio(numerator: float, denominator: float) -> Optional[float]:
    return float(numerator) / float(denominator) if denominator else None


def calculate_kpis(df: pd.DataFrame) -> dict[str, Optional[float]]:
    """Headline totals for the selected bookings."""
    parts = booking_contributions(df)
    bookings = int(len(parts))
    cancelled = int(parts["CancelledBookings"].sum()) if bookings else 0
    revenue = float(parts["RevenueEUR"].sum()) if bookings else 0.0
    commission = float(parts["CommissionEUR"].sum()) if bookings else 0.0
    nights = int(parts["Nights"].sum()) if bookings else 0
    return {
        "bookings": bookings,
        "cancelled_bookings": cancelled,
        "revenue": revenue,
        "commission": commission,
        "nights": nights,
        "average_revenue": _ratio(revenue, bookings),
        "cancellation_rate": _ratio(cancelled, bookings),
        "commission_rate": _ratio(commission, revenue),
    }


def compare_kpis(current: dict, prior: dict) -> dict[str, Optional[float]]:
    """KPI changes with the same rules as :func:`compare_stats`."""
    changes: dict[str, Optional[float]] = {}
    for key in ("bookings", "revenue", "commission", "nights", "average_revenue"):
        base = prior.get(key)
        now = current.get(key)
        changes[key] = (float(now) - float(base)) / float(base) if base and now is not None else None
    for key in ("cancellation_rate", "commission_rate"):
        base = prior.get(key)
        now = current.get(key)
        changes[key] = float(now) - float(base) if base is not None and now is not None else None
    return changes


def align_calendar_months(
    current: pd.DataFrame,
    prior: pd.DataFrame,
    metric: str,
    years: tuple[int, int],
) -> pd.DataFrame:
    """Pair two monthly series by calendar month for year-over-year charts.

    Only booking months inside each series' own year are kept, so bookings
    made in December for a January arrival do not land in the other year's
    December bar. Columns are labelled with the two years.
    """
    index = pd.Index([f"{m:02d}" for m in range(1, 13)], name="Month")

    def by_month(stats: pd.DataFrame, year: int) -> pd.Series:
        keys = pd.Series([str(key) for key in stats.index], index=stats.index, dtype="object")
        in_year = keys.str.startswith(f"{int(year)}-")
        if not in_year.any():
            return pd.Series(0.0, index=index)
        series = stats.loc[in_year.to_numpy(), metric].copy()
        series.index = [key[-2:] for key in keys[in_year]]
        return series.groupby(level=0).sum().reindex(index).fillna(0.0)

    current_year, prior_year = years
    return pd.DataFrame(
        {str(current_year): by_month(current, current_year), str(prior_year): by_month(prior, prior_year)},
        index=index,
    )


def cancellation_rate_band(rate: Optional[float]) -> Optional[str]:
    if rate is None or pd.isna(rate):
        return None
    if rate >= CANCELLATION_HIGH:
        return "high"
    if rate >= CANCELLATION_ELEVATED:
        return "elevated"
    return "low"


@dataclass(frozen=True, eq=False)
class DashboardSnapshot:
    """Every table the pages render, recomputed from scratch per filter state."""

    filters: DashboardFilters
    current: pd.DataFrame
    comparison: Optional[pd.DataFrame]
    kpis: dict
    kpi_changes: Optional[dict]
    monthly: pd.DataFrame
    monthly_comparison: Optional[pd.DataFrame]
    accommodations: pd.DataFrame
    cities: pd.DataFrame

    @property
    def has_comparison(self) -> bool:
        return self.comparison is not None

    def ranked_bookings(self, entity: str) -> pd.DataFrame:
        """Bookings behind the ``"accommodations"`` or ``"cities"`` ranking."""
        if entity == "accommodations":
            return filter_by_city(self.current, self.filters.city)
        return self.current


def build_dashboard(bookings: pd.DataFrame, filters: DashboardFilters, top_n: int = TOP_N) -> DashboardSnapshot:
    """Run filter, aggregation, comparison and ranking for one filter state."""
    current = select_current(bookings, filters)
    comparison = select_comparison(bookings, filters)

    kpis = calculate_kpis(current)
    monthly = monthly_stats(current)
    accommodations = accommodation_stats(filter_by_city(current, filters.city))
    cities = city_stats(current)

    kpi_changes = None
    monthly_comparison = None
    if comparison is not None:
        kpi_changes = compare_kpis(kpis, calculate_kpis(comparison))
        monthly_comparison = monthly_stats(comparison)
        accommodations = compare_stats(
            accommodations, accommodation_stats(filter_by_city(comparison, filters.city))
        )
        cities = compare_stats(cities, city_stats(comparison))

    logger.debug(
        "Recomputed dashboard: %d current booking(s), %s comparison booking(s)",
        len(current),
        "no" if comparison is None else len(comparison),
    )
    return DashboardSnapshot(
        filters=filters,
        current=current,
        comparison=comparison,
        kpis=kpis,
        kpi_changes=kpi_changes,
        monthly=monthly,
        monthly_comparison=monthly_comparison,
        accommodations=rank_top(accommodations, top_n=top_n),
        cities=rank_top(cities, top_n=top_n),
    )
