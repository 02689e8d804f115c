"""
Timestamp parsing and compression.

Events carry their timestamp as a timezone-aware datetime in memory. On the
wire a timestamp can be an ISO-8601 string, seconds since the epoch, or
milliseconds since the epoch. The compact URL format stores seconds rounded
down to a 15-minute boundary.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
QUANTUM = timedelta(minutes=15)

# Numeric wire timestamps below this are seconds, at or above are milliseconds.
# 10_000_000_000 s is in the year 2286, so real second values never reach it.
MS_TIMESTAMP_THRESHOLD = 10_000_000_000

# Largest value accepted as a compact-format `ts` (signed 32-bit seconds, 2038-01-19).
MAX_UNIX_SECONDS = 2**31 - 1


# =============================================================================
# Conversions
# =============================================================================
def local_now(now: Optional[datetime] = None) -> datetime:
    """Aware "now" in local time. A naive `now` is taken as local time."""
    if now is None:
        return datetime.now().astimezone()
    return now.astimezone()


def dt_to_iso(dt: datetime) -> str:
    return dt.isoformat()


def json_default(value: Any) -> Any:
    """`default=` hook for json.dumps: datetimes become ISO strings."""
    if isinstance(value, datetime):
        return dt_to_iso(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def iso_to_dt(s: str) -> datetime:
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    return dt.astimezone()


def parse_timestamp(value: Any) -> datetime:
    """
    Normalize a wire timestamp to an aware datetime.

    Accepts datetime (naive = local), ISO-8601 strings, and epoch numbers in
    seconds or milliseconds. Raises ValueError/TypeError for anything else.
    """
    if isinstance(value, datetime):
        return value.astimezone()
    if isinstance(value, bool):
        raise TypeError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        seconds = value if abs(value) < MS_TIMESTAMP_THRESHOLD else value / 1000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()
    if isinstance(value, str):
        return iso_to_dt(value)
    raise TypeError(f"Not a timestamp: {value!r}")


def coerce_timestamp(value: Any, now: Optional[datetime] = None) -> datetime:
    """Like parse_timestamp, but missing or unparseable values become now."""
    if value is None or value == "":
        return local_now(now)
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("Unparseable timestamp %r, using current time", value)
        return local_now(now)


def date_key(dt: datetime) -> str:
    """Local calendar day as YYYY-MM-DD."""
    return dt.astimezone().date().isoformat()


def local_noon(day: date) -> datetime:
    return datetime.combine(day, time(12, 0)).astimezone()


# =============================================================================
# 15-minute quantization
# =============================================================================
def round_to_15_minutes(value: Any) -> datetime:
    """Round down to the nearest 15-minute boundary in the past."""
    dt = parse_timestamp(value)
    steps = (dt - EPOCH) // QUANTUM
    return (EPOCH + steps * QUANTUM).astimezone()


def date_to_unix(value: Any) -> int:
    dt = parse_timestamp(value)
    return (dt - EPOCH) // timedelta(seconds=1)


def unix_to_date(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()


def compress_timestamp(value: Any) -> int:
    return date_to_unix(round_to_15_minutes(value))


def is_plausible_unix_seconds(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return 0 < value <= MAX_UNIX_SECONDS


def decompress_timestamp(value: Any, now: Optional[datetime] = None) -> datetime:
    """
    Rebuild an instant from a compact-format `ts`.

    Values that are not plausible Unix seconds fall back to now (logged, not raised).
    """
    if not is_plausible_unix_seconds(value):
        logger.warning("Implausible compact timestamp %r, using current time", value)
        return local_now(now)
    return unix_to_date(value)
