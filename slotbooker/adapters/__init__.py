"""
Adapters layer - External integrations (calendar providers, OAuth, storage, config).
"""

from .appointment_store import SqlAppointmentStore
from .config_repository import ConfigAgentRepository
from .factory import get_authenticator, get_calendar_client
from .google_authenticator import GoogleAuthenticator
from .google_calendar_client import GoogleCalendarClient
from .graph_authenticator import GraphAuthenticator
from .graph_client import GraphClient
from .mock_calendar_client import MockAuthenticator, MockCalendarClient

__all__ = [
    "ConfigAgentRepository",
    "GoogleAuthenticator",
    "GoogleCalendarClient",
    "GraphAuthenticator",
    "GraphClient",
    "MockAuthenticator",
    "MockCalendarClient",
    "SqlAppointmentStore",
    "get_authenticator",
    "get_calendar_client",
]
