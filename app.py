"""StayMetrics Streamlit entrypoint with modular page navigation."""

from __future__ import annotations

import dataclasses
import datetime
import logging

import pandas as pd
import streamlit as st

from analytics import DashboardSnapshot, build_dashboard
from config import ALL_CITIES, ALL_REGIONS, APP_ICON, APP_TITLE
from dashboard_views import (
    render_data_explorer,
    render_export,
    render_metric_guide,
    render_overview,
    render_ranking,
)
from filters import DashboardFilters, available_years, normalize_filters, unique_cities, unique_regions
from log_setup import configure_logging
from parsing import SUPPORTED_EXTENSIONS, BookingFileError, NamedUpload, merge_bookings

st.set_page_config(page_title=APP_TITLE, page_icon=APP_ICON, layout="wide")

logger = logging.getLogger(__name__)


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .hero {
            margin-bottom: 0.6rem;
            padding: 1rem 1.2rem;
            border: 1px solid rgba(30, 80, 145, 0.23);
            border-radius: 14px;
            background: rgba(255,255,255,0.82);
        }
        .hero h1 { margin: 0; }
        .hero p { margin: 0.35rem 0 0 0; color: #244674; }
        [data-testid="stMetric"] {
            background: rgba(255,255,255,0.90);
            border: 1px solid rgba(45, 88, 162, 0.25);
            border-radius: 12px;
            padding: 0.45rem 0.6rem;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_header() -> None:
    st.markdown(
        f"""
        <div class="hero">
          <h1>{APP_TITLE}</h1>
          <p>Booking analytics for accommodation exports: revenue, commission, cancellations and year-over-year change.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


@st.cache_data(show_spinner=False)
def _load_bookings(payloads: tuple[tuple[str, bytes], ...], drop_duplicates: bool) -> pd.DataFrame:
    uploads = [NamedUpload(name, payload) for name, payload in payloads]
    return merge_bookings(uploads, drop_duplicates=drop_duplicates)


@st.cache_data(show_spinner=False)
def _compute_dashboard(bookings: pd.DataFrame, filter_state: dict) -> DashboardSnapshot:
    return build_dashboard(bookings, DashboardFilters(**filter_state))


def _prepare_bookings() -> pd.DataFrame | None:
    st.sidebar.header("Data Setup")
    uploaded_files = st.sidebar.file_uploader(
        "Upload booking exports",
        type=[ext.replace(".", "") for ext in SUPPORTED_EXTENSIONS],
        accept_multiple_files=True,
        help="CSV with arrival date, accommodation and total price columns (; or , delimited).",
    )

    if not uploaded_files:
        st.info("Upload one or more booking CSV files from the sidebar to start.")
        return None

    drop_duplicates = st.sidebar.checkbox(
        "Auto-remove duplicates across files",
        value=True,
        help="Recommended if exports overlap in date range.",
    )

    payloads = tuple((uploaded.name, uploaded.getvalue()) for uploaded in uploaded_files)
    try:
        bookings = _load_bookings(payloads, drop_duplicates)
    except BookingFileError as exc:
        logger.warning("Upload rejected: %s", exc)
        st.error(f"Could not read file(s): {exc}")
        return None

    if bookings.empty or bookings["ArrivalDate"].dropna().empty:
        st.warning("No valid bookings found. Check the arrival date column of the export.")
        return None

    st.sidebar.success(
        f"Loaded {len(bookings):,} bookings from {len(uploaded_files)} file(s).\n"
        f"{bookings['ArrivalDate'].min().date()} -> {bookings['ArrivalDate'].max().date()}"
    )
    return bookings


def _init_timeframe(bookings: pd.DataFrame) -> tuple[datetime.date, datetime.date]:
    min_date = bookings["ArrivalDate"].min().date()
    max_date = bookings["ArrivalDate"].max().date()

    if "timeframe_range" not in st.session_state:
        st.session_state["timeframe_range"] = (min_date, max_date)
    else:
        start, end = st.session_state["timeframe_range"]
        if start < min_date or end > max_date:
            st.session_state["timeframe_range"] = (min_date, max_date)

    if min_date == max_date:
        return min_date, max_date

    st.sidebar.slider(
        "Arrival date range",
        min_value=min_date,
        max_value=max_date,
        key="timeframe_range",
        format="DD.MM.YYYY",
    )
    if st.sidebar.button("Reset timeframe"):
        st.session_state["timeframe_range"] = (min_date, max_date)
        st.rerun()

    return st.session_state["timeframe_range"]


def _select_filters(bookings: pd.DataFrame) -> DashboardFilters:
    st.sidebar.header("Filters")
    raw: dict = {}

    regions = [ALL_REGIONS] + unique_regions(bookings)
    raw["region"] = st.sidebar.selectbox("Region", regions, index=0)

    years = available_years(bookings)
    raw["comparison_enabled"] = st.sidebar.toggle("Year-over-year comparison", value=False)
    if raw["comparison_enabled"]:
        default = normalize_filters({}, available_years=years)
        year_options = sorted(set(years) | {default.comparison_year}, reverse=True)
        raw["year"] = st.sidebar.selectbox("Year", year_options, index=year_options.index(default.year))
        raw["comparison_year"] = st.sidebar.selectbox(
            "Compare with",
            year_options,
            index=year_options.index(default.comparison_year),
        )
    else:
        raw["start_date"], raw["end_date"] = _init_timeframe(bookings)

    cities = [ALL_CITIES] + unique_cities(bookings)
    raw["city"] = st.sidebar.selectbox("Accommodation city", cities, index=0)

    return normalize_filters(raw, available_years=years)


def main() -> None:
    configure_logging()
    _inject_styles()
    _render_header()

    view = st.sidebar.radio(
        "Navigate",
        ["Overview", "Top accommodations", "Top cities", "Booking data", "Export", "Metric Guide"],
    )

    bookings = _prepare_bookings()
    if bookings is None:
        return

    filters = _select_filters(bookings)
    snapshot = _compute_dashboard(bookings, dataclasses.asdict(filters))
    if snapshot.current.empty:
        st.warning("No bookings match your current filters.")
        return

    if view == "Overview":
        render_overview(snapshot)
    elif view == "Top accommodations":
        render_ranking(snapshot, "accommodations")
    elif view == "Top cities":
        render_ranking(snapshot, "cities")
    elif view == "Booking data":
        render_data_explorer(snapshot.current)
    elif view == "Export":
        render_export(snapshot)
    elif view == "Metric Guide":
        render_metric_guide()


if __name__ == "__main__":
    main()
