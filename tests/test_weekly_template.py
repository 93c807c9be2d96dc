"""
Tests for weekly template expansion.
"""

from datetime import time

import pendulum

from slotbooker.domain.models import DayOfWeek, WeeklyAvailabilityRule
from slotbooker.domain.weekly_template import (
    approved_weekdays,
    day_window,
    next_approved_dates,
    rules_for_day,
)


MONDAY_MORNING = WeeklyAvailabilityRule(DayOfWeek.MONDAY, time(9, 0), time(12, 0))
MONDAY_AFTERNOON = WeeklyAvailabilityRule(DayOfWeek.MONDAY, time(13, 0), time(17, 0))
WEDNESDAY = WeeklyAvailabilityRule(DayOfWeek.WEDNESDAY, time(10, 0), time(16, 0))


def test_approved_weekdays_are_deduplicated():
    assert approved_weekdays([MONDAY_MORNING, MONDAY_AFTERNOON, WEDNESDAY]) == {1, 3}


def test_next_approved_dates_skips_today_without_same_day_booking():
    now = pendulum.datetime(2024, 11, 25, 8, 0, tz="UTC")  # Monday

    dates = next_approved_dates({1, 3}, "UTC", 7, allow_same_day=False, now=now)

    assert dates == ["2024-11-27", "2024-12-02"]


def test_next_approved_dates_includes_today_when_allowed():
    now = pendulum.datetime(2024, 11, 25, 8, 0, tz="UTC")

    dates = next_approved_dates({1}, "UTC", 7, allow_same_day=True, now=now)

    assert dates == ["2024-11-25", "2024-12-02"]


def test_next_approved_dates_uses_zone_local_today():
    # 02:00 UTC on Tuesday is still Monday evening in New York
    now = pendulum.datetime(2024, 11, 26, 2, 0, tz="UTC")

    dates = next_approved_dates({1}, "America/New_York", 0, allow_same_day=True, now=now)

    assert dates == ["2024-11-25"]


def test_rules_for_day_sorted_by_start():
    monday = pendulum.datetime(2024, 11, 25, tz="UTC")

    assert rules_for_day([MONDAY_AFTERNOON, WEDNESDAY, MONDAY_MORNING], monday) == [
        MONDAY_MORNING,
        MONDAY_AFTERNOON,
    ]


def test_day_window_spans_all_rules_of_the_day():
    monday = pendulum.datetime(2024, 11, 25, tz="Europe/Berlin")

    window = day_window([MONDAY_MORNING, MONDAY_AFTERNOON], monday, "Europe/Berlin")

    assert window is not None
    assert window.min_local == pendulum.datetime(2024, 11, 25, 9, 0, tz="Europe/Berlin")
    assert window.max_local == pendulum.datetime(2024, 11, 25, 17, 0, tz="Europe/Berlin")
    assert window.rules == [MONDAY_MORNING, MONDAY_AFTERNOON]


def test_day_window_none_without_matching_rule():
    tuesday = pendulum.datetime(2024, 11, 26, tz="UTC")

    assert day_window([MONDAY_MORNING], tuesday, "UTC") is None
