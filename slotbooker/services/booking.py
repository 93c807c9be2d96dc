"""
Booking transaction: validate, re-check busy time, create the external
event, persist the appointment.

Steps run strictly in that order and each is awaited before the next one
starts. The busy re-check right before the insert is the only guard
against double booking; the external calendar is the source of truth and
no in-process lock is taken, so two concurrent attempts for the same slot
can both pass the re-check. That window is accepted.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Protocol

from ..domain.busy_filter import overlaps_any
from ..domain.event_description import render_appointment_notes, render_event_description
from ..domain.exceptions import (
    InvalidTimeRangeError,
    PersistenceAfterExternalCreateError,
    SlotNotAvailableError,
)
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    BookingConfirmation,
    EventDraft,
    TimeRange,
)
from ..domain.timezones import parse_instant
from .agent_context import AgentRepositoryProtocol, effective_zone, resolve_calendar_connection
from .calendar_gateway import CalendarGateway

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TITLE = "Appointment"


class AppointmentStoreProtocol(Protocol):
    """Protocol describing the appointment persistence the booking flow needs."""

    async def persist_appointment(
        self,
        appointment: Appointment,
        timeout_seconds: Optional[float] = None,
    ) -> Appointment:
        """
        Store the appointment and return it with its id.

        Must raise StorageError, with nothing committed, when the write fails
        or cannot finish within ``timeout_seconds``.
        """


class BookingService:
    """
    Performs one conflict-checked booking per call.

    State machine:
    Requested -> TimeValidated -> BusyChecked -> EventCreated -> AppointmentPersisted
    """

    def __init__(
        self,
        repository: AgentRepositoryProtocol,
        gateway: CalendarGateway,
        store: AppointmentStoreProtocol,
        persist_timeout_seconds: float = 45.0,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._store = store
        self._persist_timeout = persist_timeout_seconds

    async def book_appointment(
        self,
        agent_id: str,
        start_utc: str,
        end_utc: str,
        attendee: Optional[str] = None,
        notes: Optional[str] = None,
        intake_answers: Optional[Mapping[str, str]] = None,
        *,
        timezone_override: Optional[str] = None,
        title: Optional[str] = None,
        name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> BookingConfirmation:
        """
        Book ``[start_utc, end_utc)`` for ``agent_id``.

        Timestamps without an offset are read in the effective zone.

        Raises:
            InvalidTimeRangeError: Unparsable times or ``end <= start``
            SlotNotAvailableError: The interval overlaps live busy time
            UpstreamUnavailableError: Busy data or credential unavailable
            ExternalEventCreationError: The provider rejected the event
            ExternalEventTimeoutError: The insert outcome is unknown
            PersistenceAfterExternalCreateError: Event created, record not stored
        """
        # Step 1: validate the requested interval
        settings = await self._repository.load_booking_settings(agent_id)
        zone = effective_zone(settings, timezone_override)

        start = parse_instant(start_utc, zone)
        end = parse_instant(end_utc, zone)
        if end <= start:
            raise InvalidTimeRangeError(f"End {end_utc!r} must be after start {start_utc!r}")
        requested = TimeRange(start=start, end=end)

        connection = await resolve_calendar_connection(
            self._repository, agent_id, self._gateway.supported_providers
        )

        # Step 2: mandatory re-check against live busy data
        search = requested.padded(settings.appointment_slot)
        busy = await self._gateway.query_busy(connection, search.start, search.end)
        if overlaps_any(requested, busy):
            logger.info("Slot %s for agent %s is no longer available", requested, agent_id)
            raise SlotNotAvailableError(f"Requested slot {requested} overlaps a busy period")

        # Step 3: external create (not retried)
        answers: Dict[str, str] = dict(intake_answers or {})
        attendee_email = attendee or answers.get("email")
        if not answers:
            answers = {
                key: value
                for key, value in (("name", name), ("email", attendee_email), ("phone", phone))
                if value
            }
        description = render_event_description(notes, answers)

        event = EventDraft(
            summary=title or DEFAULT_EVENT_TITLE,
            description=description,
            start_utc=start,
            end_utc=end,
            attendee_email=attendee_email,
        )
        external_event_id = await self._gateway.insert_event(connection, event)
        logger.info("Created external event %s for agent %s", external_event_id, agent_id)

        # Step 4: persist; from here on the event id must survive every failure
        appointment = Appointment(
            agent_id=agent_id,
            start_time=start,
            end_time=end,
            status=AppointmentStatus.CONFIRMED,
            notes=render_appointment_notes(notes, external_event_id, zone, attendee_email),
            external_event_id=external_event_id,
        )
        try:
            stored = await self._store.persist_appointment(
                appointment,
                timeout_seconds=self._persist_timeout,
            )
        except Exception as exc:
            logger.error(
                "Appointment persistence failed after external create: agent=%s eventId=%s error=%s",
                agent_id,
                external_event_id,
                repr(exc),
            )
            raise PersistenceAfterExternalCreateError(
                f"Event {external_event_id} was created but the appointment could not be stored",
                external_event_id=external_event_id,
            ) from exc

        return BookingConfirmation(
            appointment_id=str(stored.id),
            external_event_id=external_event_id,
            status=stored.status,
        )
