"""
Microsoft Graph API client for fetching busy times and creating events.
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

# getSchedule statuses that block a slot
BUSY_STATUSES = ("busy", "tentative", "oof", "workingelsewhere")


def _parse_graph_time(value: Dict[str, str]) -> DateTime:
    # Graph sends seven fractional digits, e.g. 2024-11-25T10:00:00.0000000
    return pendulum.parse(value["dateTime"].split(".")[0], tz="UTC")


class GraphClient:
    """
    Client for Microsoft Graph API calendar operations.

    For Microsoft connections the calendar id is the mailbox address; busy
    time comes from ``/me/calendar/getSchedule`` and events are created in
    that mailbox's default calendar.
    """

    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"

    def __init__(self, timeout: float = 30.0):
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
        return await asyncio.to_thread(self._get_schedule, credential, calendar_id, start, end)

    async def insert_event(
        self,
        credential: Credential,
        calendar_id: str,
        event: EventDraft,
    ) -> str:
        return await asyncio.to_thread(self._create_event, credential, calendar_id, event)

    def _get_schedule(
        self,
        credential: Credential,
        calendar_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        """
        Get busy times for one mailbox.

        Raises:
            ProviderUnreachableError: If the API call fails
        """
        url = f"{self.GRAPH_API_ENDPOINT}/me/calendar/getSchedule"

        # Always ask for UTC so returned wall times need no zone mapping
        payload = {
            "schedules": [calendar_id],
            "startTime": {
                "dateTime": start.in_timezone("UTC").format("YYYY-MM-DD[T]HH:mm:ss"),
                "timeZone": "UTC",
            },
            "endTime": {
                "dateTime": end.in_timezone("UTC").format("YYYY-MM-DD[T]HH:mm:ss"),
                "timeZone": "UTC",
            },
            "availabilityViewInterval": 15,
        }

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
            raise ProviderUnreachableError(f"Failed to fetch schedule from Microsoft Graph: {e}") from e

        return self._parse_schedule_response(data, calendar_id)

    def _parse_schedule_response(
        self,
        response_data: Dict[str, Any],
        calendar_id: str,
    ) -> List[TimeRange]:
        """
        Parse the getSchedule API response into busy ranges.

        Response format:
        {
            "value": [
                {
                    "scheduleId": "user@example.com",
                    "scheduleItems": [
                        {
                            "status": "busy",
                            "start": {"dateTime": "...", "timeZone": "UTC"},
                            "end": {"dateTime": "...", "timeZone": "UTC"}
                        }
                    ]
                }
            ]
        }
        """
        busy_ranges: List[TimeRange] = []
        matched = False

        for schedule in response_data.get("value", []):
            if schedule.get("scheduleId", "").lower() != calendar_id.lower():
                continue
            matched = True

            if "error" in schedule:
                message = schedule["error"].get("message", "unknown error")
                raise ProviderUnreachableError(f"Graph schedule error for {calendar_id}: {message}")

            for item in schedule.get("scheduleItems", []):
                if item.get("status", "").lower() not in BUSY_STATUSES:
                    continue
                try:
                    start = _parse_graph_time(item["start"])
                    end = _parse_graph_time(item["end"])
                except (KeyError, ValueError) as e:
                    raise ProviderUnreachableError(f"Could not parse schedule item: {e}") from e
                if start < end:
                    busy_ranges.append(TimeRange(start=start, end=end))

        if not matched:
            raise ProviderUnreachableError(f"Graph schedule response has no entry for {calendar_id}")

        return sorted(busy_ranges, key=lambda r: r.start)

    def _create_event(
        self,
        credential: Credential,
        calendar_id: str,
        event: EventDraft,
    ) -> str:
        url = f"{self.GRAPH_API_ENDPOINT}/users/{calendar_id}/events"
        body: Dict[str, Any] = {
            "subject": event.summary,
            "body": {"contentType": "text", "content": event.description},
            "start": {"dateTime": event.start_utc.format("YYYY-MM-DD[T]HH:mm:ss"), "timeZone": "UTC"},
            "end": {"dateTime": event.end_utc.format("YYYY-MM-DD[T]HH:mm:ss"), "timeZone": "UTC"},
        }
        if event.attendee_email:
            body["attendees"] = [
                {"emailAddress": {"address": event.attendee_email}, "type": "required"}
            ]

        try:
            response = requests.post(
                url,
                headers=self._headers(credential),
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ExternalEventTimeoutError(
                f"Graph event create timed out; the event may exist: {e}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ExternalEventCreationError(f"Graph event create failed: {e}") from e

        if not response.ok:
            raise ExternalEventCreationError(
                f"Graph event create failed with HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            event_id = response.json().get("id")
        except ValueError as e:
            raise ExternalEventCreationError(f"Graph event create returned unreadable body: {e}") from e
        if not event_id:
            raise ExternalEventCreationError("Graph event create returned no event id")
        return event_id
