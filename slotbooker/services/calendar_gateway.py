"""
Provider-independent access to the external calendar capabilities.

The gateway obtains a valid credential for a connection, dispatches to the
provider's client and bounds every external step with a timeout. Timeouts
are mapped per step: a timed out busy query means availability is unknown,
while a timed out insert is ambiguous and surfaced as such.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Mapping, Protocol

from pendulum import DateTime

from ..domain.exceptions import (
    CalendarNotConfiguredError,
    CredentialUnavailableError,
    ExternalEventTimeoutError,
    ProviderUnreachableError,
)
from ..domain.models import CalendarConnection, CalendarProvider, Credential, EventDraft, TimeRange

logger = logging.getLogger(__name__)


class CalendarClientProtocol(Protocol):
    """Protocol describing the calendar client behaviour needed by the services."""

    async def query_busy(
        self,
        credential: Credential,
        calendar_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        """Return busy intervals ordered by start, or raise ProviderUnreachableError."""

    async def insert_event(
        self,
        credential: Credential,
        calendar_id: str,
        event: EventDraft,
    ) -> str:
        """Create the event and return its id, or raise ExternalEventCreationError."""


class CredentialProviderProtocol(Protocol):
    """Protocol describing the OAuth capability (token acquisition and refresh)."""

    async def get_valid_credential(self, connection: CalendarConnection) -> Credential:
        """Return a usable credential, or raise CredentialUnavailableError."""


class CalendarGateway:
    """
    Dispatches calendar operations to the client of the connection's provider.

    Dependency inversion toward protocols makes it easy to plug in the real
    Google/Microsoft adapters or the mock implementation in tests.
    """

    def __init__(
        self,
        clients: Mapping[CalendarProvider, CalendarClientProtocol],
        authenticators: Mapping[CalendarProvider, CredentialProviderProtocol],
        step_timeout_seconds: float = 45.0,
    ) -> None:
        self._clients: Dict[CalendarProvider, CalendarClientProtocol] = dict(clients)
        self._authenticators: Dict[CalendarProvider, CredentialProviderProtocol] = dict(authenticators)
        self._timeout = step_timeout_seconds

    @property
    def supported_providers(self) -> Iterable[CalendarProvider]:
        return tuple(p for p in self._clients if p in self._authenticators)

    def _client_for(self, connection: CalendarConnection) -> CalendarClientProtocol:
        client = self._clients.get(connection.provider)
        if client is None:
            raise CalendarNotConfiguredError(
                f"No calendar client for provider {connection.provider}",
                issues=["unsupported_provider"],
            )
        return client

    async def get_credential(self, connection: CalendarConnection) -> Credential:
        authenticator = self._authenticators.get(connection.provider)
        if authenticator is None:
            raise CalendarNotConfiguredError(
                f"No credential provider for {connection.provider}",
                issues=["unsupported_provider"],
            )
        try:
            return await asyncio.wait_for(
                authenticator.get_valid_credential(connection),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise CredentialUnavailableError(
                f"Timed out obtaining a credential for connection {connection.id}"
            ) from exc

    async def query_busy(
        self,
        connection: CalendarConnection,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        """
        Fetch busy intervals for the connection's calendar.

        Raises:
            CredentialUnavailableError: If no valid credential is available
            ProviderUnreachableError: If the provider fails or times out
        """
        client = self._client_for(connection)
        credential = await self.get_credential(connection)
        try:
            busy = await asyncio.wait_for(
                client.query_busy(credential, connection.calendar_id, start, end),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderUnreachableError(
                f"Busy query for {connection.calendar_id} timed out"
            ) from exc

        logger.debug(
            "Busy query calendar=%s range=[%s..%s] busy=%d",
            connection.calendar_id,
            start.to_iso8601_string(),
            end.to_iso8601_string(),
            len(busy),
        )
        return list(busy)

    async def insert_event(self, connection: CalendarConnection, event: EventDraft) -> str:
        """
        Create an event on the connection's calendar.

        Not retried: a repeated create could duplicate the event.

        Raises:
            CredentialUnavailableError: If no valid credential is available
            ExternalEventCreationError: If the provider rejects the event
            ExternalEventTimeoutError: If the outcome is unknown
        """
        client = self._client_for(connection)
        credential = await self.get_credential(connection)
        try:
            return await asyncio.wait_for(
                client.insert_event(credential, connection.calendar_id, event),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExternalEventTimeoutError(
                f"Event insert on {connection.calendar_id} timed out; the event may exist"
            ) from exc
