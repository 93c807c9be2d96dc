"""
Google OAuth 2.0 access-token provider (refresh-token grant).
"""

import asyncio
import functools
import logging
from typing import Callable, Optional

import pendulum
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from ..domain.exceptions import CredentialUnavailableError
from ..domain.models import CalendarConnection, Credential

logger = logging.getLogger(__name__)

# Tokens expiring within this many seconds are refreshed up front
EXPIRY_SKEW_SECONDS = 60

RefreshCallback = Callable[[CalendarConnection, Credential], None]


def stored_credential(connection: CalendarConnection) -> Credential | None:
    """Return the connection's stored access token if it is still usable."""
    if not connection.access_token:
        return None

    expires_at = connection.access_token_expires_at
    if expires_at is not None and expires_at <= pendulum.now("UTC").add(seconds=EXPIRY_SKEW_SECONDS):
        return None

    return Credential(
        access_token=connection.access_token,
        expires_at=expires_at,
        refresh_token=connection.refresh_token,
    )


def notify_refresh(
    on_refresh: Optional[RefreshCallback],
    connection: CalendarConnection,
    credential: Credential,
) -> None:
    """Hand rotated tokens to the owner of the connection; never fails the request."""
    if on_refresh is None:
        return
    try:
        on_refresh(connection, credential)
    except Exception as exc:
        logger.error("[oauth] failed to persist refreshed tokens for %s: %s", connection.id, exc)


class GoogleAuthenticator:
    """
    Supplies valid Google access tokens for calendar connections.

    The stored token is reused until shortly before it expires; after that
    the refresh token is redeemed through google-auth against the OAuth
    token endpoint. Each call returns a fresh immutable ``Credential`` so
    concurrent agents never share token state.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_uri: str = "https://oauth2.googleapis.com/token",
        timeout: float = 30.0,
        on_refresh: Optional[RefreshCallback] = None,
    ):
        """
        Initialize the authenticator.

        Args:
            client_id: OAuth client id from the Google Cloud console
            client_secret: OAuth client secret
            token_uri: Token endpoint used for the refresh-token grant
            timeout: HTTP timeout in seconds
            on_refresh: Optional callback receiving rotated tokens
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri
        self.timeout = timeout
        self.on_refresh = on_refresh

    async def get_valid_credential(self, connection: CalendarConnection) -> Credential:
        """
        Get a valid access token for ``connection``.

        Raises:
            CredentialUnavailableError: If no usable token can be obtained
        """
        credential = stored_credential(connection)
        if credential is not None:
            return credential

        if not connection.refresh_token:
            raise CredentialUnavailableError(
                f"Access token for connection {connection.id} expired and no refresh token is stored"
            )

        credential = await asyncio.to_thread(self._refresh, connection)
        notify_refresh(self.on_refresh, connection, credential)
        return credential

    def _refresh(self, connection: CalendarConnection) -> Credential:
        credentials = Credentials(
            token=None,
            refresh_token=connection.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        request = functools.partial(Request(), timeout=self.timeout)

        try:
            credentials.refresh(request)
        except (RefreshError, TransportError) as e:
            logger.error("[oauth] token refresh failed for %s: %s", connection.account_email or connection.id, e)
            raise CredentialUnavailableError(f"Google token refresh failed: {e}") from e

        if not credentials.token:
            raise CredentialUnavailableError("Google token refresh returned no access token")

        # google-auth reports expiry as a naive UTC datetime
        expires_at = None
        if credentials.expiry is not None:
            expires_at = pendulum.instance(credentials.expiry, tz="UTC")

        logger.debug("[oauth] access token ready for %s", connection.account_email or connection.id)
        return Credential(
            access_token=credentials.token,
            expires_at=expires_at,
            refresh_token=credentials.refresh_token or connection.refresh_token,
        )
