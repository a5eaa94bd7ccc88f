"""Booking export loading and normalization helpers."""

from __future__ import annotations

import io
import logging
import math
import re
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv",)

BOOKING_COLUMNS = [
    "BookingDate",
    "ArrivalDate",
    "DepartureDate",
    "ServiceName",
    "ServiceCity",
    "Region",
    "TotalPrice",
    "Commission",
    "Cancelled",
]
REQUIRED_COLUMNS = ("ArrivalDate", "ServiceName", "TotalPrice")
DATE_COLUMNS = ("BookingDate", "ArrivalDate", "DepartureDate")
TEXT_COLUMNS = ("ServiceName", "ServiceCity", "Region")
AMOUNT_COLUMNS = ("TotalPrice", "Commission")

# Header spellings seen in portal exports, normalized (lowercase, no separators).
COLUMN_ALIASES = {
    "bookingdate": "BookingDate",
    "buchungsdatum": "BookingDate",
    "gebuchtam": "BookingDate",
    "arrivaldate": "ArrivalDate",
    "arrival": "ArrivalDate",
    "checkin": "ArrivalDate",
    "anreise": "ArrivalDate",
    "anreisedatum": "ArrivalDate",
    "departuredate": "DepartureDate",
    "departure": "DepartureDate",
    "checkout": "DepartureDate",
    "abreise": "DepartureDate",
    "abreisedatum": "DepartureDate",
    "servicename": "ServiceName",
    "accommodation": "ServiceName",
    "property": "ServiceName",
    "unterkunft": "ServiceName",
    "objekt": "ServiceName",
    "servicecity": "ServiceCity",
    "city": "ServiceCity",
    "ort": "ServiceCity",
    "stadt": "ServiceCity",
    "region": "Region",
    "totalprice": "TotalPrice",
    "price": "TotalPrice",
    "gesamtpreis": "TotalPrice",
    "preis": "TotalPrice",
    "umsatz": "TotalPrice",
    "commission": "Commission",
    "provision": "Commission",
    "cancelled": "Cancelled",
    "canceled": "Cancelled",
    "storniert": "Cancelled",
    "storno": "Cancelled",
}

_TRUE_FLAGS = {"true", "1", "yes", "y", "ja", "j", "x", "wahr", "storniert", "cancelled", "canceled"}
_CURRENCY_NOISE = re.compile(r"(€|eur|\s)", flags=re.IGNORECASE)
_GERMAN_THOUSANDS = re.compile(r"-?\d{1,3}(\.\d{3})+")


class BookingFileError(ValueError):
    """Raised when an upload cannot be turned into booking rows."""


class NamedUpload(io.BytesIO):
    """In-memory file wrapper carrying the original upload name."""

    def __init__(self, name: str, payload: bytes) -> None:
        super().__init__(payload)
        self.name = name


def _normalize_header(value: object) -> str:
    return re.sub(r"[\s_\-]", "", str(value)).strip().lower()


def coerce_amount(value: Any) -> float:
    """Parse a monetary value; anything unparseable counts as zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    text = _CURRENCY_NOISE.sub("", str(value))
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    elif _GERMAN_THOUSANDS.fullmatch(text):
        text = text.replace(".", "")
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_amount_series(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return pd.Series(0.0, index=series.index)
    if pd.api.types.is_numeric_dtype(series):
        return pd.to_numeric(series, errors="coerce").replace([math.inf, -math.inf], 0.0).fillna(0.0)
    return series.map(coerce_amount).astype(float)


def to_flag_series(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return series.fillna(False).astype(bool)
    if pd.api.types.is_numeric_dtype(series):
        return series.fillna(0).astype(float) != 0
    return series.map(lambda v: str(v).strip().lower() in _TRUE_FLAGS if pd.notna(v) else False).astype(bool)


def to_date_series(series: pd.Series) -> pd.Series:
    """Parse ISO dates first, then German ``dd.mm.yyyy``; the rest become NaT."""
    if pd.api.types.is_datetime64_any_dtype(series):
        return series
    text = series.astype("string").str.strip()
    parsed = pd.to_datetime(text, errors="coerce", format="ISO8601")
    missing = parsed.isna() & text.notna()
    if missing.any():
        german = pd.to_datetime(text[missing], errors="coerce", format="%d.%m.%Y")
        parsed.loc[missing] = german
    return parsed


def _read_raw_export(uploaded_file: Any) -> pd.DataFrame:
    name = str(getattr(uploaded_file, "name", "")).lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise BookingFileError(f"Unsupported file type: {name or '<unknown>'}. Supported: csv.")
    try:
        return pd.read_csv(uploaded_file, sep=None, engine="python", encoding="utf-8-sig", dtype=str)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise BookingFileError(f"Could not parse {name}: {exc}") from exc


def _canonicalize_columns(raw: pd.DataFrame) -> pd.DataFrame:
    # An exact canonical header wins over any alias for the same column.
    taken = {col for col in raw.columns if col in BOOKING_COLUMNS}
    rename: dict[str, str] = {}
    for col in raw.columns:
        if col in taken:
            continue
        canonical = COLUMN_ALIASES.get(_normalize_header(col))
        if canonical and canonical not in taken:
            rename[col] = canonical
            taken.add(canonical)
    return raw.rename(columns=rename)


def normalize_bookings(raw: pd.DataFrame, source: str = "uploaded_file") -> pd.DataFrame:
    """Map an export frame onto the canonical booking columns."""
    df = _canonicalize_columns(raw)
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise BookingFileError(f"{source}: missing required column(s): {', '.join(missing)}")

    out = pd.DataFrame(index=df.index)
    for col in DATE_COLUMNS:
        out[col] = to_date_series(df[col]) if col in df.columns else pd.NaT
    for col in TEXT_COLUMNS:
        out[col] = df[col].fillna("").astype(str).str.strip() if col in df.columns else ""
    for col in AMOUNT_COLUMNS:
        out[col] = to_amount_series(df[col]) if col in df.columns else 0.0
    out["Cancelled"] = to_flag_series(df["Cancelled"]) if "Cancelled" in df.columns else False
    out["SourceFile"] = source

    bad_dates = int(out["ArrivalDate"].isna().sum())
    if bad_dates:
        logger.warning("%s: %d row(s) with unparseable arrival date", source, bad_dates)
    raw_price = df["TotalPrice"].fillna("").astype(str).str.replace(_CURRENCY_NOISE, "", regex=True)
    zero_like = raw_price.str.fullmatch(r"-?0*([.,]0*)?")
    bad_prices = int(((out["TotalPrice"] == 0.0) & ~zero_like).sum())
    if bad_prices:
        logger.warning("%s: %d row(s) with unparseable total price, counted as 0", source, bad_prices)
    return out.reset_index(drop=True)


def load_bookings(uploaded_file: Any) -> pd.DataFrame:
    """Load one CSV booking export into the canonical booking frame."""
    name = str(getattr(uploaded_file, "name", "uploaded_file"))
    raw = _read_raw_export(uploaded_file)
    logger.info("Read %d row(s) from %s", len(raw), name)
    return normalize_bookings(raw, source=name)


def deduplicate_bookings(df: pd.DataFrame) -> pd.DataFrame:
    """Remove identical bookings repeated across overlapping exports."""
    subset = [col for col in BOOKING_COLUMNS if col in df.columns]
    if not subset:
        return df
    before = len(df)
    out = df.drop_duplicates(subset=subset, keep="first").reset_index(drop=True)
    if len(out) < before:
        logger.info("Dropped %d duplicate booking(s)", before - len(out))
    return out


def merge_bookings(uploaded_files: list[Any], drop_duplicates: bool = True) -> pd.DataFrame:
    """Load, combine, deduplicate and sort several booking exports."""
    frames = [load_bookings(uploaded_file) for uploaded_file in uploaded_files]
    if not frames:
        return pd.DataFrame(columns=BOOKING_COLUMNS + ["SourceFile"])

    merged = pd.concat(frames, ignore_index=True)
    if drop_duplicates:
        merged = deduplicate_bookings(merged)
    return merged.sort_values(["ArrivalDate", "SourceFile"], na_position="last", kind="stable").reset_index(
        drop=True
    )
