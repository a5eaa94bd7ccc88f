"""Application-wide constants."""

import os

APP_TITLE = "StayMetrics"
APP_ICON = "\U0001f3e8"

ALL_REGIONS = "All regions"
ALL_CITIES = "All cities"
UNKNOWN_LABEL = "Unknown"

# Ranked tables always show the top 30 by revenue.
TOP_N = 30

# Cancellation-rate bands (fractions of bookings).
CANCELLATION_HIGH = 0.20
CANCELLATION_ELEVATED = 0.10

LOG_LEVEL = os.getenv("STAYMETRICS_LOG_LEVEL", "INFO").upper()
