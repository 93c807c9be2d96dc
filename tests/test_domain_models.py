"""
Tests for domain models.
"""

import pendulum
import pytest
from datetime import time

from slotbooker.domain.exceptions import (
    CalendarNotConfiguredError,
    PersistenceAfterExternalCreateError,
    SlotNotAvailableError,
)
from slotbooker.domain.models import (
    AppointmentStatus,
    BookingConfirmation,
    CandidateSlot,
    DayOfWeek,
    TimeRange,
    WeeklyAvailabilityRule,
    weekday_index,
)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25T09:00:00Z")
        end = pendulum.parse("2024-11-25T10:00:00Z")

        time_range = TimeRange(start=start, end=end)

        assert time_range.start == start
        assert time_range.end == end
        assert time_range.duration_minutes() == 60

    def test_invalid_time_range(self):
        """Test that start must be before end."""
        start = pendulum.parse("2024-11-25T10:00:00Z")
        end = pendulum.parse("2024-11-25T09:00:00Z")

        with pytest.raises(ValueError):
            TimeRange(start=start, end=end)

    def test_overlaps(self):
        """Test overlap detection."""
        range1 = TimeRange(
            start=pendulum.parse("2024-11-25T09:00:00Z"),
            end=pendulum.parse("2024-11-25T11:00:00Z"),
        )
        range2 = TimeRange(
            start=pendulum.parse("2024-11-25T10:00:00Z"),
            end=pendulum.parse("2024-11-25T12:00:00Z"),
        )
        range3 = TimeRange(
            start=pendulum.parse("2024-11-25T11:00:00Z"),
            end=pendulum.parse("2024-11-25T12:00:00Z"),
        )

        assert range1.overlaps(range2)
        assert range2.overlaps(range1)
        assert not range1.overlaps(range3)  # Adjacent, not overlapping

    def test_padded(self):
        base = TimeRange(
            start=pendulum.parse("2024-11-25T09:00:00Z"),
            end=pendulum.parse("2024-11-25T09:30:00Z"),
        )

        padded = base.padded(15)

        assert padded.start == pendulum.parse("2024-11-25T08:45:00Z")
        assert padded.end == pendulum.parse("2024-11-25T09:45:00Z")


class TestWeeklyAvailabilityRule:
    """Tests for WeeklyAvailabilityRule model."""

    def test_weekday_index_is_sunday_based(self):
        assert WeeklyAvailabilityRule(DayOfWeek.SUNDAY, time(9), time(10)).weekday == 0
        assert WeeklyAvailabilityRule(DayOfWeek.SATURDAY, time(9), time(10)).weekday == 6
        assert DayOfWeek.from_index(1) == DayOfWeek.MONDAY

    def test_rule_must_open_before_it_closes(self):
        with pytest.raises(ValueError):
            WeeklyAvailabilityRule(DayOfWeek.MONDAY, time(12), time(9))

    def test_weekday_index_of_dates(self):
        assert weekday_index(pendulum.datetime(2024, 11, 24)) == 0  # Sunday
        assert weekday_index(pendulum.datetime(2024, 11, 25)) == 1  # Monday
        assert weekday_index(pendulum.datetime(2024, 11, 30)) == 6  # Saturday


class TestSerialization:
    """Tests for the structured results."""

    def test_candidate_slot_carries_both_representations(self):
        local_start = pendulum.datetime(2024, 11, 25, 9, 0, tz="America/New_York")
        local_end = local_start.add(minutes=30)
        slot = CandidateSlot(
            start_utc=local_start.in_timezone("UTC"),
            end_utc=local_end.in_timezone("UTC"),
            local_start=local_start,
            local_end=local_end,
        )

        data = slot.to_dict()

        assert data["startUtc"] == "2024-11-25T14:00:00Z"
        assert data["localStart"] == "2024-11-25T09:00:00-05:00"
        assert slot.duration_minutes() == 30

    def test_booking_confirmation_to_dict(self):
        confirmation = BookingConfirmation(
            appointment_id="a-1",
            external_event_id="evt-1",
            status=AppointmentStatus.CONFIRMED,
        )

        assert confirmation.to_dict() == {
            "appointmentId": "a-1",
            "externalEventId": "evt-1",
            "status": "CONFIRMED",
        }


class TestErrors:
    """Tests for error codes and payloads."""

    def test_error_payload_contains_code(self):
        error = SlotNotAvailableError("taken")

        assert error.to_dict() == {"error": "slot_not_available", "detail": "taken"}

    def test_calendar_not_configured_keeps_issues(self):
        error = CalendarNotConfiguredError("unusable", issues=["missing_tokens"])

        assert error.issues == ["missing_tokens"]
        assert error.to_dict()["issues"] == ["missing_tokens"]

    def test_persistence_error_keeps_event_id(self):
        error = PersistenceAfterExternalCreateError("lost", external_event_id="evt-9")

        assert error.external_event_id == "evt-9"
        assert error.to_dict()["error"] == "persistence_error_after_external_create"
