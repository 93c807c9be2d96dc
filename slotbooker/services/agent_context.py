"""
Per-agent lookups shared by the availability and booking services: which
zone to compute in, and which calendar connection to talk to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..domain.exceptions import CalendarNotConfiguredError
from ..domain.models import (
    BookingSettings,
    CalendarConnection,
    CalendarProvider,
    WeeklyAvailabilityRule,
)
from ..domain.timezones import validate_timezone

logger = logging.getLogger(__name__)

# Stored tokens count as expired this long before their stated expiry
EXPIRY_GRACE_SECONDS = 60


class AgentRepositoryProtocol(Protocol):
    """Protocol describing the agent configuration lookups the services need."""

    async def load_weekly_rules(self, agent_id: str) -> List[WeeklyAvailabilityRule]:
        """Return the agent's recurring availability rules."""

    async def load_booking_settings(self, agent_id: str) -> BookingSettings:
        """Return the agent's booking policy."""

    async def load_calendar_connections(self, agent_id: str) -> List[CalendarConnection]:
        """Return every calendar account assigned to the agent."""


@dataclass
class ConnectionValidation:
    ok: bool
    issues: List[str] = field(default_factory=list)
    fatal_issues: List[str] = field(default_factory=list)


def effective_zone(settings: BookingSettings, timezone_override: Optional[str] = None) -> str:
    """Caller override wins over the agent's configured zone; both must be valid IANA ids."""
    return validate_timezone(timezone_override or settings.timezone or "UTC")


def pick_calendar_connection(
    connections: Iterable[Optional[CalendarConnection]],
) -> Optional[CalendarConnection]:
    """Prefer the primary connection with a calendar id, else any with a calendar id."""
    candidates = [conn for conn in connections if conn is not None and conn.calendar_id]
    if not candidates:
        return None
    primary = next((conn for conn in candidates if conn.is_primary), None)
    return primary or candidates[0]


def validate_calendar_connection(
    connection: Optional[CalendarConnection],
    supported_providers: Iterable[CalendarProvider] = tuple(CalendarProvider),
    now: Optional[DateTime] = None,
) -> ConnectionValidation:
    """
    Check that a connection can serve free/busy and insert calls.

    An expired access token is only fatal when no refresh token is stored.
    """
    issues: List[str] = []
    fatal: List[str] = []

    if connection is None:
        issues.append("no_connection_assigned")
        fatal.append("no_connection_assigned")
    else:
        if connection.provider not in set(supported_providers):
            issues.append("unsupported_provider")
            fatal.append("unsupported_provider")
        if not connection.calendar_id:
            issues.append("missing_calendar_id")
            fatal.append("missing_calendar_id")

        has_refresh = bool(connection.refresh_token)
        has_access = bool(connection.access_token)
        if not has_refresh and not has_access:
            issues.append("missing_tokens")
            fatal.append("missing_tokens")

        current = now or pendulum.now("UTC")
        expires_at = connection.access_token_expires_at
        if expires_at is not None and expires_at < current.subtract(seconds=EXPIRY_GRACE_SECONDS):
            if has_refresh:
                issues.append("access_token_expired_will_refresh")
            else:
                issues.append("access_token_expired")
                fatal.append("access_token_expired")

    if issues:
        logger.log(
            logging.ERROR if fatal else logging.WARNING,
            "[calendar-validation] issues=[%s] account=%s id=%s",
            ", ".join(issues),
            connection.account_email if connection else "n/a",
            connection.id if connection else "n/a",
        )

    return ConnectionValidation(ok=not fatal, issues=issues, fatal_issues=fatal)


async def resolve_calendar_connection(
    repository: AgentRepositoryProtocol,
    agent_id: str,
    supported_providers: Iterable[CalendarProvider] = tuple(CalendarProvider),
) -> CalendarConnection:
    """
    Load, pick and validate the agent's calendar connection.

    Raises:
        CalendarNotConfiguredError: If no usable connection exists
    """
    connection = pick_calendar_connection(await repository.load_calendar_connections(agent_id))
    validation = validate_calendar_connection(connection, supported_providers)
    if not validation.ok:
        raise CalendarNotConfiguredError(
            f"Calendar connection for agent {agent_id} is unusable: "
            f"{', '.join(validation.fatal_issues)}",
            issues=validation.fatal_issues,
        )
    return connection
