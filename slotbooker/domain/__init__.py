"""
Domain layer - Pure business logic without external dependencies.
"""

from .busy_filter import filter_free
from .models import (
    Appointment,
    AppointmentStatus,
    BookingConfirmation,
    BookingSettings,
    CalendarConnection,
    CalendarProvider,
    CandidateSlot,
    Credential,
    DateListing,
    DayOfWeek,
    DayWindow,
    EventDraft,
    SlotListing,
    TimeRange,
    WeeklyAvailabilityRule,
)
from .slot_calculator import SlotCalculator, generate_candidate_slots
from .weekly_template import approved_weekdays, day_window, next_approved_dates

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "BookingConfirmation",
    "BookingSettings",
    "CalendarConnection",
    "CalendarProvider",
    "CandidateSlot",
    "Credential",
    "DateListing",
    "DayOfWeek",
    "DayWindow",
    "EventDraft",
    "SlotCalculator",
    "SlotListing",
    "TimeRange",
    "WeeklyAvailabilityRule",
    "approved_weekdays",
    "day_window",
    "filter_free",
    "generate_candidate_slots",
    "next_approved_dates",
]
