"""
Application service answering "which dates are open" and "which slots are
open on date D".

The service owns no state: every call recomputes from the agent's weekly
rules, booking settings, the current time and freshly fetched busy data.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import pendulum
from pendulum import DateTime

from ..domain.busy_filter import filter_free
from ..domain.exceptions import MissingAvailabilityError
from ..domain.models import DateListing, SlotListing
from ..domain.slot_calculator import SlotCalculator
from ..domain.timezones import parse_iso_date
from ..domain.weekly_template import approved_weekdays, day_window, next_approved_dates
from .agent_context import AgentRepositoryProtocol, effective_zone, resolve_calendar_connection
from .calendar_gateway import CalendarGateway

logger = logging.getLogger(__name__)

DEFAULT_DAYS_AHEAD = 14

Clock = Callable[[], DateTime]


def utc_now() -> DateTime:
    return pendulum.now("UTC")


class AvailabilityService:
    """
    Orchestrates template expansion, slot generation, busy lookup and filtering.
    """

    def __init__(
        self,
        repository: AgentRepositoryProtocol,
        gateway: CalendarGateway,
        clock: Clock = utc_now,
        default_days_ahead: int = DEFAULT_DAYS_AHEAD,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._clock = clock
        self._default_days_ahead = default_days_ahead

    async def list_available_dates(
        self,
        agent_id: str,
        days_ahead: Optional[int] = None,
        timezone_override: Optional[str] = None,
    ) -> DateListing:
        """
        List upcoming dates whose weekday is covered by a weekly rule.

        No busy lookup happens here: the answer is "which days could work".

        Raises:
            MissingAvailabilityError: If the agent has no weekly rules
            InvalidTimezoneError: If the effective zone is not a valid IANA id
        """
        settings = await self._repository.load_booking_settings(agent_id)
        zone = effective_zone(settings, timezone_override)

        rules = await self._repository.load_weekly_rules(agent_id)
        if not rules:
            raise MissingAvailabilityError(f"Agent {agent_id} has no weekly availability")

        lookahead = self._default_days_ahead if days_ahead is None else max(int(days_ahead), 0)
        dates = next_approved_dates(
            approved_weekdays(rules),
            zone,
            lookahead,
            settings.allow_same_day_booking,
            now=self._clock(),
        )
        return DateListing(timezone=zone, dates=dates)

    async def list_available_slots(
        self,
        agent_id: str,
        date: str,
        timezone_override: Optional[str] = None,
    ) -> SlotListing:
        """
        List free slots on ``date`` (``YYYY-MM-DD`` in the effective zone).

        An out-of-policy day (same day without same-day booking, or a
        weekday without rules) yields an empty list, not an error.

        Raises:
            InvalidDayError: If ``date`` is malformed
            InvalidTimezoneError: If the effective zone is not a valid IANA id
            UpstreamUnavailableError: If busy data cannot be fetched
        """
        settings = await self._repository.load_booking_settings(agent_id)
        zone = effective_zone(settings, timezone_override)

        day = parse_iso_date(date, zone)
        day_iso = day.to_date_string()
        empty = SlotListing(timezone=zone, date=day_iso, slots=[])

        today_iso = self._clock().in_timezone(zone).to_date_string()
        if not settings.allow_same_day_booking and day_iso == today_iso:
            logger.debug("Same-day booking disabled for agent %s; %s is closed", agent_id, day_iso)
            return empty

        rules = await self._repository.load_weekly_rules(agent_id)
        window = day_window(rules, day, zone)
        if window is None:
            return empty

        calculator = SlotCalculator(settings.appointment_slot)
        candidates = calculator.generate_candidate_slots(window.rules, day, day, zone)
        if not candidates:
            return empty

        connection = await resolve_calendar_connection(
            self._repository, agent_id, self._gateway.supported_providers
        )
        busy = await self._gateway.query_busy(connection, window.min_local, window.max_local)

        return SlotListing(timezone=zone, date=day_iso, slots=filter_free(candidates, busy))
