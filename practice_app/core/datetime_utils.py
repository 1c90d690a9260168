"""
Datetime utility functions for handling timezone-aware datetimes.
"""
from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """
    Return the current datetime in UTC timezone.

    Use this instead of datetime.now(timezone.utc) so tests can patch a
    single function.

    Returns:
        A timezone-aware datetime object representing the current time in UTC.
    """
    return datetime.now(timezone.utc)


def next_calendar_day(today: date) -> date:
    """
    Return the calendar day after ``today``.

    Accepts a datetime as well; only its date part is used.
    """
    if isinstance(today, datetime):
        today = today.date()
    return today + timedelta(days=1)


def format_clock(seconds: float) -> str:
    """
    Format a duration as ``MM:SS`` for countdown display.

    Negative values are clamped to zero. Minutes are not wrapped, so a
    three-hour exam shows ``180:00``.

    Example:
        >>> format_clock(75)
        '01:15'
    """
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"
