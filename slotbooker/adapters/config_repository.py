"""
Agent repository backed by the YAML application configuration.
"""

import logging
from typing import List

from ..config import AgentConfig, AppConfig
from ..domain.exceptions import AgentNotFoundError
from ..domain.models import BookingSettings, CalendarConnection, Credential, WeeklyAvailabilityRule

logger = logging.getLogger(__name__)


class ConfigAgentRepository:
    """Reads weekly rules, booking settings and calendar connections from ``AppConfig``."""

    def __init__(self, config: AppConfig):
        self.config = config

    def _agent(self, agent_id: str) -> AgentConfig:
        agent = self.config.find_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(f"Unknown agent: {agent_id!r}")
        return agent

    async def load_weekly_rules(self, agent_id: str) -> List[WeeklyAvailabilityRule]:
        return [window.to_rule() for window in self._agent(agent_id).weekly_availability]

    async def load_booking_settings(self, agent_id: str) -> BookingSettings:
        return self.config.booking_settings_for(self._agent(agent_id))

    async def load_calendar_connections(self, agent_id: str) -> List[CalendarConnection]:
        return [conn.to_connection() for conn in self._agent(agent_id).calendar_connections]

    def note_refreshed_tokens(self, connection: CalendarConnection, credential: Credential) -> None:
        """
        Record rotated tokens on the in-memory connection config.

        The YAML file itself is not rewritten.
        """
        for agent in self.config.agents:
            for conn in agent.calendar_connections:
                if conn.id == connection.id:
                    conn.access_token = credential.access_token
                    conn.refresh_token = credential.refresh_token or conn.refresh_token
                    conn.access_token_expires_at = credential.expires_at
        logger.debug("[oauth] tokens updated for %s", connection.account_email or connection.id)
