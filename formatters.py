"""German-style display formatting for amounts, counts and ratios."""

from __future__ import annotations

import math

MISSING = "N/A"


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return not math.isfinite(float(value))
    except (TypeError, ValueError):
        return True


def _german_grouping(text: str) -> str:
    # 1,234.56 -> 1.234,56
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _signed_hundredths(ratio: float, unit: str) -> str:
    # -0.0 + 0.0 == 0.0, so values that round to zero print unsigned
    rounded = round(float(ratio) * 100.0, 1) + 0.0
    text = f"{_german_grouping(f'{rounded:,.1f}')} {unit}"
    return f"+{text}" if rounded > 0 else text


def format_currency(value: float | None) -> str:
    """Format an EUR amount, e.g. ``1234.56`` -> ``1.234,56 €``."""
    if _is_missing(value):
        return MISSING
    return f"{_german_grouping(f'{float(value):,.2f}')} €"


def format_percentage(ratio: float | None) -> str:
    """Format a 0..1 ratio with one decimal, e.g. ``0.123`` -> ``12,3 %``."""
    if _is_missing(ratio):
        return MISSING
    return f"{_german_grouping(f'{float(ratio) * 100.0:,.1f}')} %"


def format_change(ratio: float | None) -> str:
    """Signed percentage for period-over-period changes."""
    if _is_missing(ratio):
        return MISSING
    return _signed_hundredths(ratio, "%")


def format_number(value: float | None) -> str:
    """Thousands-grouped integer, e.g. ``12345`` -> ``12.345``."""
    if _is_missing(value):
        return MISSING
    return _german_grouping(f"{round(float(value)):,.0f}")


def format_point_change(diff: float | None) -> str:
    """Signed difference of two ratios in percentage points, e.g. ``+2,5 pp``."""
    if _is_missing(diff):
        return MISSING
    return _signed_hundredths(diff, "pp")
