"""Timezone helpers for consistent timestamp handling across agents."""

from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

from runtime.defaults import DEFAULT_TIMEZONE_NAME


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Return a valid ZoneInfo object, falling back to default timezone."""
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, TypeError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE_NAME)


def get_config_tz(config: dict) -> ZoneInfo:
    """Return timezone configured in config, defaulting safely."""
    timezone_name = (config or {}).get("TIMEZONE_NAME", DEFAULT_TIMEZONE_NAME)
    return get_timezone(timezone_name)


def now_tz(config: dict) -> datetime:
    """Return timezone-aware current datetime in configured timezone."""
    return datetime.now(get_config_tz(config))


def to_config_tz(value: Any, tz: ZoneInfo) -> pd.Timestamp:
    """Convert a timestamp-like value to `tz`. Naive values are taken as already in `tz`."""
    if value is None:
        return pd.NaT
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is None:
        return ts.tz_localize(tz)
    return ts.tz_convert(tz)


def format_clock(value: Any, tz: ZoneInfo) -> str:
    """Format as HH:MM:SS in `tz`, or an empty string for missing values."""
    ts = to_config_tz(value, tz)
    if pd.isna(ts):
        return ""
    return ts.strftime("%H:%M:%S")


def serialize_iso_with_tz(value: Any, tz: ZoneInfo = None) -> str:
    """Serialize timestamp-like value as ISO 8601 string with timezone offset."""
    ts = pd.Timestamp(value) if value is not None else pd.NaT
    if pd.isna(ts):
        return ""

    if tz is not None:
        ts = to_config_tz(ts, tz)
    elif ts.tzinfo is None:
        ts = ts.tz_localize(timezone.utc)

    return ts.isoformat()
