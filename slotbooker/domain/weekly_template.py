"""
Expansion of recurring weekly availability rules into concrete dates and
day windows.

All functions are pure: the current moment is passed in (or read once via
``pendulum.now``) and nothing is cached between calls.
"""

from typing import Iterable, List, Optional, Sequence, Set

import pendulum
from pendulum import DateTime

from .models import DayWindow, WeeklyAvailabilityRule, weekday_index


def approved_weekdays(rules: Iterable[WeeklyAvailabilityRule]) -> Set[int]:
    """Return the de-duplicated Sunday=0 .. Saturday=6 indexes covered by ``rules``."""
    return {rule.weekday for rule in rules}


def next_approved_dates(
    approved: Set[int],
    zone: str,
    days_ahead: int,
    allow_same_day: bool,
    now: Optional[DateTime] = None,
) -> List[str]:
    """
    List ISO dates from today through ``today + days_ahead`` (inclusive)
    whose weekday is approved.

    Today is evaluated in ``zone`` and skipped unless ``allow_same_day``.
    """
    today = (now or pendulum.now(zone)).in_timezone(zone).start_of("day")
    end = today.add(days=days_ahead)

    dates: List[str] = []
    cursor = today
    while cursor <= end:
        is_today = cursor.date() == today.date()
        if weekday_index(cursor) in approved and (allow_same_day or not is_today):
            dates.append(cursor.to_date_string())
        cursor = cursor.add(days=1)

    return dates


def rules_for_day(
    rules: Iterable[WeeklyAvailabilityRule],
    day: DateTime,
) -> List[WeeklyAvailabilityRule]:
    """Select the rules whose weekday matches ``day``, ordered by start time."""
    index = weekday_index(day)
    return sorted(
        (rule for rule in rules if rule.weekday == index),
        key=lambda rule: rule.start_time,
    )


def local_moment(day: DateTime, at, zone: str) -> DateTime:
    """Combine a calendar day with a local time-of-day in ``zone``."""
    return pendulum.datetime(
        day.year, day.month, day.day, at.hour, at.minute, tz=zone
    )


def day_window(
    rules: Sequence[WeeklyAvailabilityRule],
    day: DateTime,
    zone: str,
) -> Optional[DayWindow]:
    """
    Compute the outer span (earliest start to latest end) of all rules for
    ``day``.

    Overlapping or disjoint rules only merge for the span; the matching
    rules are returned unchanged so gaps between them stay closed.
    Returns None if no rule matches the weekday.
    """
    local_day = day.in_timezone(zone)
    todays = rules_for_day(rules, local_day)
    if not todays:
        return None

    min_local = min(local_moment(local_day, rule.start_time, zone) for rule in todays)
    max_local = max(local_moment(local_day, rule.end_time, zone) for rule in todays)

    return DayWindow(min_local=min_local, max_local=max_local, rules=todays)
