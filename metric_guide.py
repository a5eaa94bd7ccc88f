"""Human-readable metric definitions for the app."""

METRIC_GUIDE = [
    {
        "Metric": "Bookings",
        "Meaning": "All bookings arriving in the selected period, cancelled ones included.",
        "Formula": "count(rows)",
    },
    {
        "Metric": "Cancelled bookings",
        "Meaning": "Bookings flagged as cancelled in the export.",
        "Formula": "count(Cancelled)",
    },
    {
        "Metric": "Revenue (EUR)",
        "Meaning": "Booked total price of bookings that were not cancelled.",
        "Formula": "sum(TotalPrice where not Cancelled)",
    },
    {
        "Metric": "Commission (EUR)",
        "Meaning": "Commission earned on bookings that were not cancelled.",
        "Formula": "sum(Commission where not Cancelled)",
    },
    {
        "Metric": "Nights",
        "Meaning": "Stayed nights of bookings that were not cancelled; inverted dates count as zero.",
        "Formula": "sum(max(Departure - Arrival, 0) where not Cancelled)",
    },
    {
        "Metric": "Avg revenue / booking",
        "Meaning": "Revenue spread over every booking, so cancellations lower the average.",
        "Formula": "Revenue / Bookings",
    },
    {
        "Metric": "Cancellation rate",
        "Meaning": "Share of bookings that were cancelled. Above 10 % is elevated, above 20 % high.",
        "Formula": "Cancelled bookings / Bookings",
    },
    {
        "Metric": "Commission rate",
        "Meaning": "Commission as a share of revenue.",
        "Formula": "Commission / Revenue",
    },
    {
        "Metric": "Change ±%",
        "Meaning": "Relative change against the comparison year for the same accommodation or city. "
        "N/A when the comparison year has no data or a zero value for it.",
        "Formula": "(Current - Comparison) / Comparison",
    },
    {
        "Metric": "Cancellation rate ±pp",
        "Meaning": "Difference of the two cancellation rates in percentage points.",
        "Formula": "Current rate - Comparison rate",
    },
    {
        "Metric": "Top 30",
        "Meaning": "Accommodations or cities ranked by revenue; entries only present in the "
        "comparison year are not listed.",
        "Formula": "sort(Revenue desc).head(30)",
    },
]
