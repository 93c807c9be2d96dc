"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .agent_context import AgentRepositoryProtocol, pick_calendar_connection, validate_calendar_connection
from .availability import AvailabilityService
from .booking import AppointmentStoreProtocol, BookingService
from .calendar_gateway import CalendarClientProtocol, CalendarGateway, CredentialProviderProtocol

__all__ = [
    "AgentRepositoryProtocol",
    "AppointmentStoreProtocol",
    "AvailabilityService",
    "BookingService",
    "CalendarClientProtocol",
    "CalendarGateway",
    "CredentialProviderProtocol",
    "pick_calendar_connection",
    "validate_calendar_connection",
]
