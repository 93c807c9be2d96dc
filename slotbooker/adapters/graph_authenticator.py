"""
Microsoft Graph access-token provider using MSAL (refresh-token grant).
"""

import asyncio
import logging
from typing import Optional

import msal
import pendulum
import requests

from ..domain.exceptions import CredentialUnavailableError
from ..domain.models import CalendarConnection, Credential
from .google_authenticator import RefreshCallback, notify_refresh, stored_credential

logger = logging.getLogger(__name__)


class GraphAuthenticator:
    """
    Supplies valid Microsoft Graph access tokens for calendar connections.

    Connections are authorized out of band; this class only redeems the
    stored refresh token through an MSAL confidential client when the
    access token is missing or about to expire.
    """

    # Required scopes for calendar read/write
    SCOPES = ["Calendars.ReadWrite", "Calendars.Read.Shared"]

    def __init__(
        self,
        client_id: str,
        tenant_id: str,
        client_secret: str,
        authority_url: str | None = None,
        on_refresh: Optional[RefreshCallback] = None,
    ):
        """
        Initialize the authenticator.

        Args:
            client_id: Azure AD application (client) ID
            tenant_id: Azure AD tenant ID
            client_secret: Application secret
            authority_url: Optional custom authority URL
            on_refresh: Optional callback receiving rotated tokens
        """
        self.client_id = client_id
        self.tenant_id = tenant_id
        self.on_refresh = on_refresh

        # Build authority URL
        if authority_url:
            self.authority = authority_url
        else:
            self.authority = f"https://login.microsoftonline.com/{tenant_id}"

        self._client_secret = client_secret
        self._app: msal.ConfidentialClientApplication | None = None

    @property
    def app(self) -> msal.ConfidentialClientApplication:
        """Lazily build the MSAL client (it performs network discovery)."""
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self.client_id,
                client_credential=self._client_secret,
                authority=self.authority,
            )
        return self._app

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
        try:
            result = self.app.acquire_token_by_refresh_token(
                connection.refresh_token,
                scopes=self.SCOPES,
            )
        except (ValueError, requests.exceptions.RequestException) as exc:
            raise CredentialUnavailableError(f"Microsoft token refresh failed: {exc}") from exc

        if not result or "access_token" not in result:
            error = (result or {}).get("error_description", "Unknown error")
            logger.error("[oauth] token refresh failed for %s: %s", connection.account_email or connection.id, error)
            raise CredentialUnavailableError(f"Microsoft token refresh failed: {error}")

        return Credential(
            access_token=result["access_token"],
            expires_at=pendulum.now("UTC").add(seconds=int(result.get("expires_in", 3600))),
            refresh_token=result.get("refresh_token") or connection.refresh_token,
        )
