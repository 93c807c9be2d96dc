"""
Mock calendar provider for running without OAuth credentials.
"""

import json
import uuid
from pathlib import Path
from typing import Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import CalendarConnection, Credential, EventDraft, TimeRange


class MockCalendarClient:
    """
    In-memory calendar that simulates free/busy and event-insert calls.

    Busy data can be seeded from a JSON file shaped like::

        [{"calendarId": "primary", "start": "2024-11-25T10:00:00Z",
          "end": "2024-11-25T10:30:00Z"}]

    Inserted events become busy time for later queries, so a second
    booking of the same slot is rejected just like against a real provider.
    """

    def __init__(self, data_file: Optional[Path] = None):
        """
        Initialize the mock client.

        Args:
            data_file: Optional JSON file with seeded busy events
        """
        self.events: List[Dict[str, str]] = []
        self.inserted: Dict[str, EventDraft] = {}
        if data_file is not None:
            self._load_calendar_data(data_file)

    def _load_calendar_data(self, data_file: Path) -> None:
        """Load mock calendar data from JSON file."""
        with open(data_file, "r", encoding="utf-8") as f:
            self.events = list(json.load(f))

    def add_busy(self, calendar_id: str, start: DateTime, end: DateTime) -> None:
        self.events.append(
            {
                "calendarId": calendar_id,
                "start": start.to_iso8601_string(),
                "end": end.to_iso8601_string(),
            }
        )

    async def query_busy(
        self,
        credential: Credential,
        calendar_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        """
        Load busy times overlapping the window from the seeded events.
        """
        window = TimeRange(start=start, end=end)
        busy: List[TimeRange] = []

        for event in self.events:
            if event.get("calendarId") != calendar_id:
                continue

            event_range = TimeRange(
                start=pendulum.parse(event["start"], tz="UTC"),
                end=pendulum.parse(event["end"], tz="UTC"),
            )
            if event_range.overlaps(window):
                busy.append(event_range)

        return sorted(busy, key=lambda r: r.start)

    async def insert_event(
        self,
        credential: Credential,
        calendar_id: str,
        event: EventDraft,
    ) -> str:
        event_id = f"mock-{uuid.uuid4().hex[:12]}"
        self.inserted[event_id] = event
        self.add_busy(calendar_id, event.start_utc, event.end_utc)
        return event_id


class MockAuthenticator:
    """
    Mock credential provider that bypasses OAuth entirely.
    """

    async def get_valid_credential(self, connection: CalendarConnection) -> Credential:
        """Return a mock token regardless of the stored connection state."""
        return Credential(access_token="mock_access_token_12345")
