"""
Tests for removing slots that collide with busy time.
"""

from datetime import time

import pendulum

from slotbooker.domain.busy_filter import filter_free, overlaps_any
from slotbooker.domain.models import DayOfWeek, TimeRange, WeeklyAvailabilityRule
from slotbooker.domain.slot_calculator import generate_candidate_slots


def _monday_slots():
    rules = [WeeklyAvailabilityRule(DayOfWeek.MONDAY, time(9, 0), time(12, 0))]
    monday = pendulum.datetime(2024, 11, 25, tz="UTC")
    return generate_candidate_slots(rules, monday, monday, 30, "UTC")


def _busy(start: str, end: str) -> TimeRange:
    return TimeRange(start=pendulum.parse(start), end=pendulum.parse(end))


def test_busy_interval_removes_exactly_the_overlapping_slot():
    free = filter_free(_monday_slots(), [_busy("2024-11-25T10:00:00Z", "2024-11-25T10:30:00Z")])

    assert [s.local_start.format("HH:mm") for s in free] == [
        "09:00", "09:30", "10:30", "11:00", "11:30"
    ]


def test_partial_overlap_removes_both_touched_slots():
    free = filter_free(_monday_slots(), [_busy("2024-11-25T09:45:00Z", "2024-11-25T10:15:00Z")])

    assert [s.local_start.format("HH:mm") for s in free] == ["09:00", "10:30", "11:00", "11:30"]


def test_touching_boundaries_do_not_block():
    slot = _busy("2024-11-25T09:00:00Z", "2024-11-25T09:30:00Z")

    assert not overlaps_any(slot, [_busy("2024-11-25T09:30:00Z", "2024-11-25T10:00:00Z")])
    assert not overlaps_any(slot, [_busy("2024-11-25T08:00:00Z", "2024-11-25T09:00:00Z")])


def test_no_busy_keeps_everything_in_order():
    slots = _monday_slots()

    assert filter_free(slots, []) == slots
