"""
Date utility functions for the analytics engine.

Windows are always inclusive on both ends and weeks start on Monday
(ISO week standard, date.weekday() == 0).
"""
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta
from typing import Iterator, List, Tuple


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield every calendar day from start_date to end_date inclusive.

    Yields nothing when end_date < start_date.
    """
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def days_in_range(start_date: date, end_date: date) -> int:
    """Inclusive day count; 0 or negative for a reversed range."""
    return (end_date - start_date).days + 1


def get_week_boundaries(target_date: date, week_start: int = 0) -> Tuple[date, date]:
    """
    Get week boundaries for a given date.

    Args:
        target_date: Date to get boundaries for
        week_start: 0=Monday, 6=Sunday
    """
    days_since_start = (target_date.weekday() - week_start) % 7
    period_start = target_date - timedelta(days=days_since_start)
    period_end = period_start + timedelta(days=6)
    return period_start, period_end


def week_start(target_date: date) -> date:
    """Monday of the week containing target_date."""
    return get_week_boundaries(target_date)[0]


def month_key(target_date: date) -> date:
    """First day of the month containing target_date."""
    return target_date.replace(day=1)


def months_spanned(start_date: date, end_date: date) -> List[date]:
    """
    First-of-month dates for every calendar month the window touches.

    Example:
        >>> months_spanned(date(2025, 1, 20), date(2025, 3, 2))
        [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1)]
    """
    months = []
    current = month_key(start_date)
    last = month_key(end_date)
    while current <= last:
        months.append(current)
        current += relativedelta(months=1)
    return months
