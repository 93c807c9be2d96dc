"""
Provider factory: the right client and credential source per calendar provider.
"""

from typing import Optional

from ..config import AppConfig
from ..domain.models import CalendarProvider
from .google_authenticator import RefreshCallback


def get_calendar_client(provider: CalendarProvider, config: AppConfig):
    """
    Build the calendar client for ``provider``.

    Raises:
        ValueError: If the provider is not supported
    """
    timeout = config.defaults.request_timeout_seconds
    if provider == CalendarProvider.GOOGLE:
        from .google_calendar_client import GoogleCalendarClient
        return GoogleCalendarClient(timeout=timeout)
    elif provider == CalendarProvider.MICROSOFT:
        from .graph_client import GraphClient
        return GraphClient(timeout=timeout)
    else:
        raise ValueError(f"Unsupported provider: {provider}")


def get_authenticator(
    provider: CalendarProvider,
    config: AppConfig,
    on_refresh: Optional[RefreshCallback] = None,
):
    """
    Build the credential provider for ``provider``.

    Raises:
        ValueError: If the provider is not supported
    """
    if provider == CalendarProvider.GOOGLE:
        from .google_authenticator import GoogleAuthenticator
        return GoogleAuthenticator(
            client_id=config.google.client_id,
            client_secret=config.google.client_secret,
            token_uri=config.google.token_uri,
            timeout=config.defaults.request_timeout_seconds,
            on_refresh=on_refresh,
        )
    elif provider == CalendarProvider.MICROSOFT:
        from .graph_authenticator import GraphAuthenticator
        return GraphAuthenticator(
            client_id=config.microsoft.client_id,
            tenant_id=config.microsoft.tenant_id,
            client_secret=config.microsoft.client_secret,
            authority_url=config.microsoft.get_authority_url(),
            on_refresh=on_refresh,
        )
    else:
        raise ValueError(f"Unsupported provider: {provider}")
