"""
Google Calendar REST client for free/busy queries and event creation.
"""

import asyncio
import logging
from typing import Any, Dict, List

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import (
    ExternalEventCreationError,
    ExternalEventTimeoutError,
    ProviderUnreachableError,
)
from ..domain.models import Credential, EventDraft, TimeRange

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Client for Google Calendar API v3.

    Uses ``POST /freeBusy`` for busy intervals and
    ``POST /calendars/{id}/events`` for booking. The credential is passed
    per call; the client holds no token state of its own.
    """

    API_ENDPOINT = "https://www.googleapis.com/calendar/v3"

    def __init__(self, timeout: float = 30.0):
        """
        Initialize the Google Calendar client.

        Args:
            timeout: HTTP timeout in seconds for every request
        """
        self.timeout = timeout

    @staticmethod
    def _headers(credential: Credential) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credential.access_token}",
            "Content-Type": "application/json",
        }

    async def query_busy(
        self,
        credential: Credential,
        calendar_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        """Return busy intervals of ``calendar_id`` within ``[start, end)``."""
        return await asyncio.to_thread(self._query_busy, credential, calendar_id, start, end)

    async def insert_event(
        self,
        credential: Credential,
        calendar_id: str,
        event: EventDraft,
    ) -> str:
        """Create an event and return its provider id."""
        return await asyncio.to_thread(self._insert_event, credential, calendar_id, event)

    def _query_busy(
        self,
        credential: Credential,
        calendar_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        url = f"{self.API_ENDPOINT}/freeBusy"
        payload = {
            "timeMin": start.in_timezone("UTC").to_iso8601_string(),
            "timeMax": end.in_timezone("UTC").to_iso8601_string(),
            "items": [{"id": calendar_id}],
        }
        logger.debug(
            "[freebusy] calendarId=%s timeMin=%s timeMax=%s",
            calendar_id,
            payload["timeMin"],
            payload["timeMax"],
        )

        try:
            response = requests.post(
                url,
                headers=self._headers(credential),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("[freebusy] calendarId=%s failed: %s", calendar_id, e)
            raise ProviderUnreachableError(f"Failed to query Google free/busy: {e}") from e

        busy = self._parse_freebusy_response(data, calendar_id)
        logger.debug("[freebusy] busyCount=%d", len(busy))
        return busy

    def _parse_freebusy_response(
        self,
        response_data: Dict[str, Any],
        calendar_id: str,
    ) -> List[TimeRange]:
        """
        Parse the freeBusy response into busy ranges.

        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [{"start": "...Z", "end": "...Z"}],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }
        """
        calendars = response_data.get("calendars") or {}
        if calendar_id not in calendars:
            raise ProviderUnreachableError(
                f"Google free/busy response has no entry for {calendar_id}"
            )
        calendar = calendars[calendar_id] or {}

        # Per-calendar errors mean the provider could not tell us what is busy
        errors = calendar.get("errors") or []
        if errors:
            reasons = ", ".join(str(error.get("reason", "unknown")) for error in errors)
            raise ProviderUnreachableError(
                f"Google free/busy returned errors for {calendar_id}: {reasons}"
            )

        busy_ranges: List[TimeRange] = []
        for item in calendar.get("busy", []):
            try:
                start = pendulum.parse(item["start"])
                end = pendulum.parse(item["end"])
            except (KeyError, ValueError) as e:
                raise ProviderUnreachableError(f"Could not parse busy interval {item!r}: {e}") from e
            if start < end:
                busy_ranges.append(TimeRange(start=start, end=end))

        return sorted(busy_ranges, key=lambda r: r.start)

    def _insert_event(
        self,
        credential: Credential,
        calendar_id: str,
        event: EventDraft,
    ) -> str:
        url = f"{self.API_ENDPOINT}/calendars/{requests.utils.quote(calendar_id, safe='')}/events"
        body: Dict[str, Any] = {
            "summary": event.summary,
            "description": event.description,
            "start": {"dateTime": event.start_utc.to_iso8601_string(), "timeZone": "UTC"},
            "end": {"dateTime": event.end_utc.to_iso8601_string(), "timeZone": "UTC"},
        }
        if event.attendee_email:
            body["attendees"] = [{"email": event.attendee_email}]
        params = {"sendUpdates": "all" if event.attendee_email else "none"}

        logger.debug("[events.insert] calendarId=%s start=%s", calendar_id, body["start"]["dateTime"])

        try:
            response = requests.post(
                url,
                headers=self._headers(credential),
                params=params,
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ExternalEventTimeoutError(
                f"Google event insert timed out; the event may exist: {e}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ExternalEventCreationError(f"Google event insert failed: {e}") from e

        if not response.ok:
            raise ExternalEventCreationError(
                f"Google event insert failed with HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            event_id = response.json().get("id")
        except ValueError as e:
            raise ExternalEventCreationError(f"Google event insert returned unreadable body: {e}") from e
        if not event_id:
            raise ExternalEventCreationError("Google event insert returned no event id")
        return event_id
