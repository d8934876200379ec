"""
Calendar helpers.
Every date in the engine is a naive calendar date; there is no time of day.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from offer_engine.errors import MalformedRecordError


def parse_date(value, field: str = "date") -> date:
    """
    Normalize a date-like value to a calendar date.

    Accepts a date, a datetime (time dropped) or an ISO string. A trailing
    time component ("2025-09-01T13:00:00") is ignored so that stored
    timestamps never shift the calendar day.

    Raises:
        MalformedRecordError: if the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise MalformedRecordError(field, value, "expected an ISO date string")

    date_part = value.strip().split("T", 1)[0]
    try:
        return datetime.strptime(date_part, "%Y-%m-%d").date()
    except ValueError:
        raise MalformedRecordError(field, value, "expected YYYY-MM-DD") from None


def month_key(d: date) -> str:
    """
    Extract the month key from a date.

    Example:
        >>> month_key(date(2025, 1, 15))
        '2025-01'
    """
    return f"{d.year:04d}-{d.month:02d}"


def month_label(d: date) -> str:
    """Human label for the month containing d, e.g. 'September 2025'."""
    return d.strftime("%B %Y")


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def last_of_month(d: date) -> date:
    return add_months(first_of_month(d), 1) - timedelta(days=1)


def add_months(d: date, months: int) -> date:
    """Shift a first-of-month date by a number of months."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_windows(start: date, end: date) -> List[Tuple[date, date]]:
    """
    Partition [start, end] into calendar months, each clipped to the window.

    Example:
        >>> month_windows(date(2025, 9, 15), date(2025, 10, 10))
        [(date(2025, 9, 15), date(2025, 9, 30)), (date(2025, 10, 1), date(2025, 10, 10))]
    """
    windows = []
    if start > end:
        return windows

    current = first_of_month(start)
    while current <= end:
        windows.append((max(current, start), min(last_of_month(current), end)))
        current = add_months(current, 1)
    return windows


def days_between(start: date, end: date) -> int:
    return (end - start).days


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days in [start, end]; 0 for an empty window."""
    return max(0, days_between(start, end) + 1)


def days_remaining(end: date, today: date) -> int:
    """Days left to act before end, counting today. 0 once end has passed."""
    return inclusive_days(today, end)


def intersect_windows(*windows: Tuple[date, date]) -> Optional[Tuple[date, date]]:
    """Intersection of inclusive date windows, or None when it is empty."""
    start = max(w[0] for w in windows)
    end = min(w[1] for w in windows)
    if start > end:
        return None
    return start, end


def in_window(d: date, start: date, end: date) -> bool:
    return start <= d <= end


def days_until(end: date, today: date) -> int:
    """Signed counterpart of days_remaining: 1 on the last day, <= 0 once past."""
    return days_between(today, end) + 1
