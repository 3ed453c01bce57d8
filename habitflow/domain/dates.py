"""Pure calendar helpers over civil dates.

Dates travel through the application as ISO ``YYYY-MM-DD`` strings, which
sort lexicographically in chronological order. No timezone arithmetic is
done anywhere: "today" is the viewer's local civil date.

Malformed input never raises here. Functions returning text fall back to an
empty string (or echo the input where noted); functions returning numbers
fall back to ``None``.
"""

import calendar
from datetime import date, timedelta
from typing import List, Optional

DAYS_OF_WEEK = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]
SHORT_DAYS_OF_WEEK = [d[:3] for d in DAYS_OF_WEEK]


def parse_date(value: str) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string, returning None when it is not one."""
    if not isinstance(value, str) or len(value) != 10:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_valid_date(value: str) -> bool:
    return parse_date(value) is not None


def to_iso(d: date) -> str:
    return d.isoformat()


def today() -> str:
    """Return the local civil date as ``YYYY-MM-DD``."""
    return date.today().isoformat()


def compare(a: str, b: str) -> int:
    """Three-way comparison of two ISO dates (-1, 0, 1)."""
    return (a > b) - (a < b)


def add_days(value: str, n: int) -> str:
    """Shift a date by *n* days. Malformed input is echoed back unchanged."""
    parsed = parse_date(value)
    if parsed is None:
        return value
    try:
        return (parsed + timedelta(days=n)).isoformat()
    except OverflowError:
        return value


def days_between(start: str, end: str) -> Optional[int]:
    """Signed number of days from *start* to *end*."""
    a, b = parse_date(start), parse_date(end)
    if a is None or b is None:
        return None
    return (b - a).days


def day_of_week(value: str) -> Optional[int]:
    """Weekday index with 0 = Sunday … 6 = Saturday."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.isoweekday() % 7


def day_of_month(value: str) -> Optional[int]:
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.day


def days_in_month(year: int, month: int) -> int:
    """Number of days in *month* (1-12) of *year*; 0 for an invalid month."""
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        return 0
    return calendar.monthrange(year, month)[1]


def date_range(end: str, count: int) -> List[str]:
    """The *count* consecutive dates ending at *end* (inclusive), oldest first."""
    return [add_days(end, -offset) for offset in range(count - 1, -1, -1)]


def format_time_12h(value: Optional[str]) -> str:
    """Render a 24-hour ``HH:MM`` time as ``h:MM AM|PM``.

    Returns an empty string for missing or malformed input.
    """
    if not value or not isinstance(value, str):
        return ""
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        return ""
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        return ""
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def ordinal_suffix(n: int) -> str:
    """``1st``, ``2nd``, ``3rd``, ``4th`` … ``11th``, ``12th``, ``13th`` … ``21st``."""
    if n % 100 in (11, 12, 13):
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def month_name(month: int) -> str:
    if not 1 <= month <= 12:
        return ""
    return calendar.month_name[month]
