"""
Time helpers for price observations and remote record timestamps.

All datetimes handled by the engine are timezone-aware UTC.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def get_observation_time(as_of: Optional[datetime] = None) -> datetime:
    """
    Get the timestamp for a price observation, preferring the feed's asOf.

    Args:
        as_of: Optional timestamp reported by the quote source

    Returns:
        UTC datetime, falling back to wall-clock time if unavailable
    """
    if as_of is not None:
        return as_of

    return utc_now()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a remote timestamp into an aware UTC datetime.

    Accepts ISO8601 strings (with or without "Z"), SQL-style
    "YYYY-MM-DD HH:MM:SS" strings, epoch seconds or milliseconds,
    and datetimes. Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # Values this large are epoch milliseconds
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        # SQLite CURRENT_TIMESTAMP values are UTC without an offset
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

