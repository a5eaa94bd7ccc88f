"""Modular Streamlit page renderers."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from analytics import DashboardSnapshot, align_calendar_months, cancellation_rate_band
from config import TOP_N
from exports import (
    ExportTable,
    build_export_table,
    export_bookings_csv,
    export_csv,
    export_filename,
    export_pdf,
)
from filters import DashboardFilters
from formatters import (
    format_change,
    format_currency,
    format_number,
    format_percentage,
    format_point_change,
)
from metric_guide import METRIC_GUIDE

_BAND_LABELS = {"high": "\U0001f534 high", "elevated": "\U0001f7e1 elevated", "low": "\U0001f7e2 low"}


def period_caption(filters: DashboardFilters) -> str:
    if filters.comparison_enabled:
        return f"Arrivals {filters.year} vs. {filters.comparison_year} | {filters.region}"
    if filters.start_date and filters.end_date:
        return (
            f"Arrivals {filters.start_date.strftime('%d.%m.%Y')} - "
            f"{filters.end_date.strftime('%d.%m.%Y')} | {filters.region}"
        )
    return f"All arrivals | {filters.region}"


def ranking_table(snapshot: DashboardSnapshot, entity: str) -> ExportTable:
    """Export-ready top table for ``"accommodations"`` or ``"cities"``."""
    if entity == "cities":
        stats, label = snapshot.cities, "City"
    else:
        stats, label = snapshot.accommodations, "Accommodation"
    title = f"Top {TOP_N} {entity}"
    if snapshot.has_comparison:
        title = f"{title} ({snapshot.filters.year} vs. {snapshot.filters.comparison_year})"
    return build_export_table(stats, title=title, entity_label=label, include_changes=snapshot.has_comparison)


def render_kpis(kpis: dict, changes: dict | None = None) -> None:
    st.subheader("Snapshot KPIs")
    changes = changes or {}

    def delta(key: str, points: bool = False) -> str | None:
        if key not in changes or changes[key] is None:
            return None
        return format_point_change(changes[key]) if points else format_change(changes[key])

    rows = [
        [
            ("Revenue", format_currency(kpis["revenue"]), delta("revenue"), "normal"),
            ("Bookings", format_number(kpis["bookings"]), delta("bookings"), "normal"),
            ("Commission", format_currency(kpis["commission"]), delta("commission"), "normal"),
            ("Nights", format_number(kpis["nights"]), delta("nights"), "normal"),
        ],
        [
            ("Avg revenue / booking", format_currency(kpis["average_revenue"]), delta("average_revenue"), "normal"),
            ("Cancelled bookings", format_number(kpis["cancelled_bookings"]), None, "off"),
            (
                "Cancellation rate",
                format_percentage(kpis["cancellation_rate"]),
                delta("cancellation_rate", points=True),
                "inverse",
            ),
            (
                "Commission rate",
                format_percentage(kpis["commission_rate"]),
                delta("commission_rate", points=True),
                "normal",
            ),
        ],
    ]

    for row in rows:
        cols = st.columns(4)
        for idx, (label, value, change, color) in enumerate(row):
            cols[idx].metric(label, value, change, delta_color=color)


def render_overview(snapshot: DashboardSnapshot) -> None:
    st.header("Overview")
    st.caption(period_caption(snapshot.filters))
    render_kpis(snapshot.kpis, snapshot.kpi_changes)

    monthly = snapshot.monthly
    if monthly.empty:
        st.info("No bookings with a valid booking date in the selected period.")
        return

    top_left, top_right = st.columns(2)
    with top_left:
        st.markdown("### Revenue by booking month (EUR)")
        st.bar_chart(monthly[["RevenueEUR"]])
    with top_right:
        st.markdown("### Commission by booking month (EUR)")
        st.bar_chart(monthly[["CommissionEUR"]])

    mid_left, mid_right = st.columns(2)
    with mid_left:
        st.markdown("### Cancellation rate (%)")
        st.line_chart(monthly[["CancellationRate"]] * 100.0)
    with mid_right:
        st.markdown("### Bookings vs. cancellations")
        st.bar_chart(monthly[["Bookings", "CancelledBookings"]])

    if snapshot.monthly_comparison is not None:
        filters = snapshot.filters
        years = (filters.year, filters.comparison_year)
        st.markdown("### Revenue by booking month, year over year")
        st.bar_chart(align_calendar_months(monthly, snapshot.monthly_comparison, "RevenueEUR", years))


def _display_frame(table: ExportTable) -> pd.DataFrame:
    frame = table.to_frame(formatted=True)
    rate_idx = table.headers.index("Cancellation rate")
    bands = [cancellation_rate_band(row[rate_idx].raw()) for row in table.rows]
    frame.insert(rate_idx + 1, "Level", [_BAND_LABELS.get(band, "") for band in bands])
    return frame


def render_ranking(snapshot: DashboardSnapshot, entity: str) -> None:
    table = ranking_table(snapshot, entity)
    st.header(table.title)
    st.caption(period_caption(snapshot.filters))
    if not table.rows:
        st.info("No bookings match the current filters.")
        return

    st.dataframe(_display_frame(table), use_container_width=True, hide_index=True)
    if snapshot.has_comparison:
        st.caption("N/A: no bookings, or a zero value, for this entry in the comparison year.")

    stats = snapshot.cities if entity == "cities" else snapshot.accommodations
    st.markdown("### Revenue (EUR)")
    st.bar_chart(stats[["RevenueEUR"]].head(15))


def render_data_explorer(current: pd.DataFrame) -> None:
    st.header("Booking data")
    st.caption("Raw bookings behind the current selection.")

    query = st.text_input(
        "Search bookings (accommodation/city/region)",
        value="",
        key="data_explorer_query",
    ).strip().lower()
    max_cap = max(1, min(int(len(current)), 5000))
    rows_to_show = max_cap
    if max_cap > 1:
        rows_to_show = st.slider(
            "Rows to display",
            min_value=1,
            max_value=max_cap,
            value=min(500, max_cap),
            key="data_explorer_rows",
        )

    view = current.copy()
    if query:
        search_cols = [col for col in ["ServiceName", "ServiceCity", "Region"] if col in view.columns]
        text_blob = view[search_cols].fillna("").astype(str).agg(" | ".join, axis=1).str.lower()
        view = view[text_blob.str.contains(query, na=False, regex=False)]

    st.caption(f"Showing {min(len(view), rows_to_show):,} of {len(view):,} matching rows.")
    st.dataframe(view.head(rows_to_show), use_container_width=True, height=520)


def render_export(snapshot: DashboardSnapshot) -> None:
    st.header("Export")
    st.caption("Download ranked tables as PDF or CSV.")

    entity = st.radio("Table", ["accommodations", "cities"], horizontal=True, key="export_entity")
    table = ranking_table(snapshot, entity)
    st.dataframe(table.to_frame(formatted=True), use_container_width=True, hide_index=True)

    label = table.headers[0]
    bookings = snapshot.ranked_bookings(entity)
    left, right = st.columns(2)
    left.download_button(
        "Download table (.pdf)",
        data=export_pdf(table, subtitle=period_caption(snapshot.filters)),
        file_name=export_filename(f"{TOP_N} {entity}", "pdf"),
        mime="application/pdf",
    )
    right.download_button(
        "Download table (.csv)",
        data=export_csv(table),
        file_name=export_filename(f"{TOP_N} {entity}", "csv"),
        mime="text/csv",
    )
    st.download_button(
        "Download selected bookings (.csv)",
        data=export_bookings_csv(bookings),
        file_name="bookings.csv",
        mime="text/csv",
        help=f"All {len(bookings):,} bookings behind the current {label.lower()} ranking.",
    )


def render_metric_guide() -> None:
    st.header("Metric Guide")
    st.caption("Definitions and formulas behind each KPI.")
    st.dataframe(pd.DataFrame(METRIC_GUIDE), use_container_width=True, height=460)
