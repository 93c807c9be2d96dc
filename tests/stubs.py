"""
Stubs shared by the service-level tests.
"""

import asyncio
from typing import Dict, List, Optional

import pendulum

from slotbooker.domain.exceptions import StorageError
from slotbooker.domain.models import (
    Appointment,
    BookingSettings,
    CalendarConnection,
    CalendarProvider,
    Credential,
    TimeRange,
    WeeklyAvailabilityRule,
)
from slotbooker.services.calendar_gateway import CalendarGateway


class StubRepository:
    """Minimal stub matching AgentRepositoryProtocol."""

    def __init__(
        self,
        rules: List[WeeklyAvailabilityRule],
        settings: BookingSettings,
        connections: Optional[List[CalendarConnection]] = None,
    ):
        self.rules = rules
        self.settings = settings
        self.connections = connections if connections is not None else [make_connection()]

    async def load_weekly_rules(self, agent_id: str) -> List[WeeklyAvailabilityRule]:
        return list(self.rules)

    async def load_booking_settings(self, agent_id: str) -> BookingSettings:
        return self.settings

    async def load_calendar_connections(self, agent_id: str) -> List[CalendarConnection]:
        return list(self.connections)


class StubCalendarClient:
    """Minimal stub matching CalendarClientProtocol."""

    def __init__(self, busy: Optional[List[TimeRange]] = None, delay: float = 0.0):
        self.busy = busy or []
        self.delay = delay
        self.busy_calls: List[Dict[str, object]] = []
        self.inserted = []
        self.query_error: Optional[Exception] = None
        self.insert_error: Optional[Exception] = None

    async def query_busy(self, credential, calendar_id, start, end):
        self.busy_calls.append({"calendar_id": calendar_id, "start": start, "end": end})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.query_error is not None:
            raise self.query_error
        return [r for r in self.busy if r.start < end and start < r.end]

    async def insert_event(self, credential, calendar_id, event):
        if self.insert_error is not None:
            raise self.insert_error
        self.inserted.append(event)
        return f"evt-{len(self.inserted)}"


class StubAuthenticator:
    """Minimal stub matching CredentialProviderProtocol."""

    def __init__(self):
        self.calls = 0

    async def get_valid_credential(self, connection):
        self.calls += 1
        return Credential(access_token="token")


class StubStore:
    """Minimal stub matching AppointmentStoreProtocol."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: List[Appointment] = []
        self.timeouts: List[Optional[float]] = []

    async def persist_appointment(self, appointment: Appointment, timeout_seconds=None) -> Appointment:
        self.timeouts.append(timeout_seconds)
        if self.fail:
            raise StorageError("database is locked")
        appointment.id = f"appt-{len(self.saved) + 1}"
        self.saved.append(appointment)
        return appointment


def make_connection(**overrides) -> CalendarConnection:
    values = dict(
        id="conn-1",
        provider=CalendarProvider.GOOGLE,
        account_email="desk@example.com",
        calendar_id="primary",
        access_token="token",
        refresh_token="refresh",
        is_primary=True,
    )
    values.update(overrides)
    return CalendarConnection(**values)


def busy(start: str, end: str) -> TimeRange:
    return TimeRange(start=pendulum.parse(start), end=pendulum.parse(end))


def make_gateway(client: StubCalendarClient, timeout: float = 5.0) -> CalendarGateway:
    return CalendarGateway(
        clients={CalendarProvider.GOOGLE: client},
        authenticators={CalendarProvider.GOOGLE: StubAuthenticator()},
        step_timeout_seconds=timeout,
    )

