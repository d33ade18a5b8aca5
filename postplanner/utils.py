"""
Shared utility functions used throughout the planner codebase.

Provides:
    - today_in_timezone(): Calendar date "today" in the business timezone
    - iter_days(): Inclusive day-by-day iteration over a date range
    - weekday_name(): English weekday name for a date (Monday first)
    - parse_iso_date() / format_date_display() / format_date_short()
    - time_to_minutes() / minutes_to_time(): ``HH:MM`` <-> minutes from midnight
    - stable_hash(): Process-independent integer hash for seeded choices
"""

import hashlib
import re
from datetime import date, datetime, timedelta
from typing import Iterator, List
from zoneinfo import ZoneInfo

from postplanner.exceptions import ParseError

# ---------------------------------------------------------------------------
# Weekday names indexed like ``date.weekday()`` (Monday == 0)
# ---------------------------------------------------------------------------
WEEKDAY_NAMES: List[str] = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


# ===========================================================================
# DATE UTILITIES
# All planner dates are naive calendar dates in the business timezone.
# ===========================================================================


def today_in_timezone(tz_name: str) -> date:
    """
    Get today's calendar date in the given IANA timezone.

    Args:
        tz_name: Timezone name, e.g. ``"America/Denver"``.

    Returns:
        The local calendar date.
    """
    return datetime.now(ZoneInfo(tz_name)).date()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from *start* to *end*, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def weekday_name(day: date) -> str:
    """Return the English weekday name for *day*."""
    return WEEKDAY_NAMES[day.weekday()]


def is_weekend(day: date) -> bool:
    """Saturday or Sunday."""
    return day.weekday() >= 5


def parse_iso_date(value: str) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` string.

    Raises:
        ParseError: If *value* is not a valid ISO calendar date.
    """
    try:
        return date.fromisoformat(value.strip())
    except (ValueError, AttributeError) as exc:
        raise ParseError(f'Invalid date "{value}". Use YYYY-MM-DD.') from exc


def format_date_display(day: date) -> str:
    """Format as ``MM/DD/YYYY``."""
    return day.strftime("%m/%d/%Y")


def format_date_short(day: date) -> str:
    """Format as ``MM/DD``."""
    return day.strftime("%m/%d")


# ===========================================================================
# TIME-OF-DAY UTILITIES
# ===========================================================================


def time_to_minutes(value: str) -> int:
    """
    Convert ``HH:MM`` (24-hour) to minutes from midnight.

    Raises:
        ParseError: If *value* is not a valid 24-hour time.
    """
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ParseError(f'Invalid time "{value}". Use HH:MM (24-hour).')
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ParseError(f'Invalid time "{value}". Use HH:MM (24-hour).')
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


# ===========================================================================
# STABLE HASHING
# ``hash()`` on str is salted per process, so it cannot seed anything that
# must survive a restart.  SHA-256 is fixed forever.
# ===========================================================================


def stable_hash(text: str, part: int = 0) -> int:
    """
    Deterministic 64-bit integer derived from *text*.

    Args:
        text: Seed material.
        part: Which 8-byte chunk of the SHA-256 digest to use (0-3), so a
            single seed can drive several independent choices.

    Returns:
        Non-negative integer below ``2 ** 64``.
    """
    if not 0 <= part <= 3:
        raise ValueError(f"part must be between 0 and 3, got {part}")
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest[part * 8:(part + 1) * 8], "big")
