"""Naive calendar date and time-of-day helpers.

All TeamSync dates are local, timezone-less ``YYYY-MM-DD`` strings and all
times are ``HH:mm``. The fixed-width zero-padded format makes string
comparison equivalent to chronological comparison.
"""

from __future__ import annotations

import calendar
import datetime
import re

ISO_DATE_FORMAT = "%Y-%m-%d"

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Weekday/day-of-month arithmetic is done at midday so a DST transition can
# never push the computed datetime onto a neighbouring day.
NOON = datetime.time(12, 0)


def parse_iso_date(value: str) -> datetime.date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the string is not a zero-padded ISO calendar date.
    """
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    return datetime.datetime.strptime(value, ISO_DATE_FORMAT).date()


def format_iso_date(value: datetime.date) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    return value.strftime(ISO_DATE_FORMAT)


def is_valid_time(value: str) -> bool:
    """Return True for a 24-hour ``HH:mm`` string."""
    return isinstance(value, str) and bool(_TIME_RE.match(value))


def at_noon(value: datetime.date) -> datetime.datetime:
    """Return a naive datetime for ``value`` at 12:00."""
    return datetime.datetime.combine(value, NOON)


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[datetime.date, datetime.date]:
    """Return the first and last day of ``(year, month)``.

    Raises:
        ValueError: If ``month`` is outside 1..12 or ``year`` outside
            the range ``datetime.date`` supports.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {month}; expected 1..12")
    if not datetime.MINYEAR <= year <= datetime.MAXYEAR:
        raise ValueError(
            f"Invalid year {year}; expected {datetime.MINYEAR}..{datetime.MAXYEAR}"
        )
    first = datetime.date(year, month, 1)
    last = datetime.date(year, month, days_in_month(year, month))
    return first, last


def month_prefix(year: int, month: int) -> str:
    """Return the ``YYYY-MM`` prefix shared by every date in the month."""
    return f"{year:04d}-{month:02d}"


def previous_day(value: datetime.date) -> datetime.date:
    """Day before ``value``, across month and year boundaries."""
    return value - datetime.timedelta(days=1)
