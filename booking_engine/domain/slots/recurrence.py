"""
Recurrence expansion for schedule exceptions.

``expand`` is a pure generator: given a pattern, the anchor date (the
exception's own start date) and an optional window, it lazily yields the
occurrence dates in ascending order. It holds no state between calls.
"""

import calendar
from datetime import date, timedelta
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta

from ...errors import ValidationError
from ..schedule_exceptions.schemas import parse_recurrence_pattern

# A month/year pattern that yields nothing for this many consecutive periods
# can never yield again (the month sequence repeats within 12 steps, leap days
# recur within 8 yearly steps)
MONTHLY_EXHAUSTION_PERIODS = 12
YEARLY_EXHAUSTION_PERIODS = 8


def _sunday_index(day: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def _daily(anchor: date, interval: int) -> Iterator[date]:
    current = anchor
    step = timedelta(days=interval)
    while True:
        yield current
        current += step


def _weekly(anchor: date, interval: int, days_of_week: list[int]) -> Iterator[date]:
    if not days_of_week:
        return
    selected = set(days_of_week)
    current = anchor
    while True:
        week_offset = (current - anchor).days // 7
        if week_offset % interval == 0 and _sunday_index(current) in selected:
            yield current
        current += timedelta(days=1)


def _monthly(anchor: date, interval: int, day_of_month: int) -> Iterator[date]:
    month_start = anchor.replace(day=1)
    misses = 0
    step = 0
    while misses < MONTHLY_EXHAUSTION_PERIODS:
        month = month_start + relativedelta(months=step * interval)
        step += 1
        # No clamping: a day-31 pattern has no occurrence in a 30-day month
        if day_of_month > calendar.monthrange(month.year, month.month)[1]:
            misses += 1
            continue
        candidate = month.replace(day=day_of_month)
        if candidate < anchor:
            misses += 1
            continue
        misses = 0
        yield candidate


def _yearly(anchor: date, interval: int, month_of_year: int, day_of_month: int) -> Iterator[date]:
    misses = 0
    step = 0
    while misses < YEARLY_EXHAUSTION_PERIODS:
        year = anchor.year + step * interval
        step += 1
        if day_of_month > calendar.monthrange(year, month_of_year)[1]:
            misses += 1
            continue
        candidate = date(year, month_of_year, day_of_month)
        if candidate < anchor:
            misses += 1
            continue
        misses = 0
        yield candidate


def _candidates(pattern, anchor: date) -> Iterator[date]:
    if pattern.type == "daily":
        return _daily(anchor, pattern.interval)
    if pattern.type == "weekly":
        return _weekly(anchor, pattern.interval, pattern.daysOfWeek)
    if pattern.type == "monthly":
        return _monthly(anchor, pattern.interval, pattern.dayOfMonth or anchor.day)
    if pattern.type == "yearly":
        return _yearly(
            anchor,
            pattern.interval,
            pattern.monthOfYear or anchor.month,
            pattern.dayOfMonth or anchor.day,
        )
    raise ValidationError(f"Unsupported recurrence type '{pattern.type}'", {"type": pattern.type})


def expand(
    pattern,
    anchor: date,
    window_start: Optional[date] = None,
    window_end: Optional[date] = None,
) -> Iterator[date]:
    """
    Yield occurrence dates of ``pattern`` anchored at ``anchor``.

    Occurrences are counted from the anchor, so ``maxOccurrences`` bounds the
    whole series; dates before ``window_start`` are consumed but not yielded.
    Expansion stops at the first candidate past ``endDate`` or ``window_end``
    (both inclusive).

    Raises:
        ValidationError: If the pattern is malformed (e.g. interval < 1)
    """
    pattern = parse_recurrence_pattern(pattern)
    if pattern.interval < 1:
        raise ValidationError("Recurrence interval must be at least 1", {"interval": pattern.interval})

    stop = pattern.endDate
    if window_end is not None and (stop is None or window_end < stop):
        stop = window_end
    return _bounded(pattern, anchor, window_start, stop)


def _bounded(pattern, anchor: date, window_start: Optional[date], stop: Optional[date]) -> Iterator[date]:
    emitted = 0
    for occurrence in _candidates(pattern, anchor):
        if stop is not None and occurrence > stop:
            return
        if pattern.maxOccurrences is not None and emitted >= pattern.maxOccurrences:
            return
        emitted += 1
        if window_start is not None and occurrence < window_start:
            continue
        yield occurrence
