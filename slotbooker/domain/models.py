"""
Domain models for availability templates, slots and appointments.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Dict, List, Optional

from pendulum import DateTime


class DayOfWeek(str, Enum):
    """Weekday of a recurring availability rule (Sunday=0 .. Saturday=6)."""
    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"

    @property
    def index(self) -> int:
        return list(DayOfWeek).index(self)

    @classmethod
    def from_index(cls, index: int) -> "DayOfWeek":
        return list(cls)[index]


def weekday_index(dt: DateTime) -> int:
    """Return the Sunday=0 .. Saturday=6 index of a date."""
    return dt.isoweekday() % 7


class AppointmentStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class CalendarProvider(str, Enum):
    GOOGLE = "GOOGLE"
    MICROSOFT = "MICROSOFT"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Strict intersection check.

        Ranges that only touch (``self.end == other.start``) do not overlap.
        """
        return self.start < other.end and other.start < self.end

    def padded(self, minutes: int) -> "TimeRange":
        """Return a copy extended by ``minutes`` on both sides."""
        return TimeRange(
            start=self.start.subtract(minutes=minutes),
            end=self.end.add(minutes=minutes),
        )

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WeeklyAvailabilityRule:
    """
    A recurring (day-of-week, start-time, end-time) window in the agent's zone.

    Invariant: start_time must be before end_time.
    """
    day_of_week: DayOfWeek
    start_time: time
    end_time: time

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Rule start {self.start_time} must be before end {self.end_time}"
            )

    @property
    def weekday(self) -> int:
        return self.day_of_week.index


@dataclass(frozen=True)
class BookingSettings:
    """Per-agent booking policy."""
    timezone: str = "UTC"
    allow_same_day_booking: bool = False
    appointment_slot: int = 15  # minutes


@dataclass(frozen=True)
class CandidateSlot:
    """A fixed-length bookable window, carried in both UTC and the booking zone."""
    start_utc: DateTime
    end_utc: DateTime
    local_start: DateTime
    local_end: DateTime

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_utc, end=self.end_utc)

    def duration_minutes(self) -> int:
        return self.time_range.duration_minutes()

    def to_dict(self) -> Dict[str, str]:
        return {
            "startUtc": self.start_utc.to_iso8601_string(),
            "endUtc": self.end_utc.to_iso8601_string(),
            "localStart": self.local_start.to_iso8601_string(),
            "localEnd": self.local_end.to_iso8601_string(),
        }


@dataclass(frozen=True)
class DayWindow:
    """Outer span of all rules matching one date, plus the rules themselves."""
    min_local: DateTime
    max_local: DateTime
    rules: List[WeeklyAvailabilityRule]


@dataclass(frozen=True)
class Credential:
    """Short-lived access material for one calendar connection."""
    access_token: str
    expires_at: Optional[DateTime] = None
    refresh_token: Optional[str] = None


@dataclass
class CalendarConnection:
    """An external calendar account assigned to an agent."""
    id: str
    provider: CalendarProvider
    account_email: str = ""
    calendar_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    access_token_expires_at: Optional[DateTime] = None
    is_primary: bool = False


@dataclass(frozen=True)
class EventDraft:
    """Payload for creating an external calendar event."""
    summary: str
    description: str
    start_utc: DateTime
    end_utc: DateTime
    attendee_email: Optional[str] = None


@dataclass
class Appointment:
    """A confirmed booking as persisted by the appointment store."""
    agent_id: str
    start_time: DateTime
    end_time: DateTime
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    location: Optional[str] = None
    notes: str = ""
    external_event_id: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class DateListing:
    timezone: str
    dates: List[str]

    def to_dict(self) -> Dict[str, object]:
        return {"timezone": self.timezone, "dates": list(self.dates)}


@dataclass(frozen=True)
class SlotListing:
    timezone: str
    date: str
    slots: List[CandidateSlot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "timezone": self.timezone,
            "date": self.date,
            "slots": [slot.to_dict() for slot in self.slots],
        }


@dataclass(frozen=True)
class BookingConfirmation:
    appointment_id: str
    external_event_id: str
    status: AppointmentStatus = AppointmentStatus.CONFIRMED

    def to_dict(self) -> Dict[str, str]:
        return {
            "appointmentId": self.appointment_id,
            "externalEventId": self.external_event_id,
            "status": self.status.value,
        }
