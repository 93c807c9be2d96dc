"""
Tests for provider dispatch and per-step timeouts in CalendarGateway.
"""

import asyncio

import pendulum
import pytest

from slotbooker.domain.exceptions import CalendarNotConfiguredError, CredentialUnavailableError
from slotbooker.domain.models import CalendarProvider
from slotbooker.services.calendar_gateway import CalendarGateway

from stubs import StubCalendarClient, make_connection


START = pendulum.datetime(2024, 11, 25, 9, 0, tz="UTC")
END = pendulum.datetime(2024, 11, 25, 12, 0, tz="UTC")


class SlowAuthenticator:
    async def get_valid_credential(self, connection):
        await asyncio.sleep(1.0)


def test_credential_timeout_is_credential_unavailable():
    client = StubCalendarClient()
    gateway = CalendarGateway(
        clients={CalendarProvider.GOOGLE: client},
        authenticators={CalendarProvider.GOOGLE: SlowAuthenticator()},
        step_timeout_seconds=0.01,
    )

    with pytest.raises(CredentialUnavailableError):
        asyncio.run(gateway.query_busy(make_connection(), START, END))

    assert client.busy_calls == []


def test_provider_without_client_is_not_configured():
    gateway = CalendarGateway(clients={}, authenticators={})

    with pytest.raises(CalendarNotConfiguredError) as excinfo:
        asyncio.run(gateway.query_busy(make_connection(), START, END))

    assert excinfo.value.issues == ["unsupported_provider"]
    assert list(gateway.supported_providers) == []
