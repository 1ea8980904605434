"""
PlazaNetInsights - Reporting Periods

Biweekly (1st-15th, 16th-end of month) reporting periods used to label
engineering-alert and cost views.
"""

import calendar
from datetime import date, datetime, timezone
from typing import Optional, Tuple


MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"
]

# Months covered by each cost-analysis period
PERIOD_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "yearly": 12
}


def biweekly_bounds(day: date) -> Tuple[date, date]:
    """
    Return the (start, end) dates of the biweekly period containing a day.

    Args:
        day: Any calendar date

    Returns:
        Tuple of first and last date of the period (inclusive)
    """
    if day.day <= 15:
        return date(day.year, day.month, 1), date(day.year, day.month, 15)
    last_day = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, 16), date(day.year, day.month, last_day)


def current_biweekly_period(now: Optional[datetime] = None) -> str:
    """
    Build the identifier of the current biweekly period.

    Args:
        now: Reference time (default: current UTC time)

    Returns:
        Period id in "YYYY-MM-DD_YYYY-MM-DD" format
    """
    now = now or datetime.now(timezone.utc)
    start, end = biweekly_bounds(now.date())
    return f"{start.isoformat()}_{end.isoformat()}"


def parse_period(period: str) -> Tuple[date, date]:
    """
    Parse a "YYYY-MM-DD_YYYY-MM-DD" period id.

    Raises:
        ValueError: If the id is malformed or ends before it starts
    """
    try:
        start_raw, end_raw = period.split("_")
        start = date.fromisoformat(start_raw)
        end = date.fromisoformat(end_raw)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid period id: {period!r} (expected YYYY-MM-DD_YYYY-MM-DD or 'current')")
    if end < start:
        raise ValueError(f"Invalid period id: {period!r} ends before it starts")
    return start, end


def resolve_period(period: str, now: Optional[datetime] = None) -> str:
    """
    Map the "current" alias to the concrete biweekly period id.

    Raises:
        ValueError: If period is neither "current" nor a valid period id
    """
    if period == "current":
        return current_biweekly_period(now)
    parse_period(period)
    return period


def format_period_label(period: str) -> str:
    """
    Format a period id for display, e.g. "Feb 16-28" or "Jan 16-Feb 1".

    Unparseable ids are returned unchanged.
    """
    try:
        start, end = parse_period(period)
    except ValueError:
        return period

    start_month = MONTH_ABBREVIATIONS[start.month - 1]
    end_month = MONTH_ABBREVIATIONS[end.month - 1]
    if start.month == end.month:
        return f"{start_month} {start.day}-{end.day}"
    return f"{start_month} {start.day}-{end_month} {end.day}"
