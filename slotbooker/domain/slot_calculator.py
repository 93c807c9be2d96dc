"""
Core business logic for chopping availability windows into candidate slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O).
"""

import logging
from typing import Dict, List, Sequence

from pendulum import DateTime

from .models import CandidateSlot, WeeklyAvailabilityRule, weekday_index
from .weekly_template import local_moment

logger = logging.getLogger(__name__)


class SlotCalculator:
    """
    Generates fixed-length candidate slots from weekly availability rules.

    Algorithm:
    1. Walk every calendar day of the requested range in the booking zone
    2. Pick the rules whose weekday matches that day
    3. For each rule, emit back-to-back slots from its start while a whole
       slot still fits before its end
    4. Return all slots ordered by start time

    Each rule window is expanded on its own, so a day with two disjoint
    windows yields two independent slot sequences.
    """

    def __init__(self, slot_minutes: int):
        if slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be greater than zero, got {slot_minutes}")
        self.slot_minutes = slot_minutes

    def generate_candidate_slots(
        self,
        rules: Sequence[WeeklyAvailabilityRule],
        from_date: DateTime,
        to_date: DateTime,
        zone: str,
    ) -> List[CandidateSlot]:
        """
        Generate candidate slots for every day in ``[from_date, to_date]``.

        Args:
            rules: Weekly availability rules of the agent
            from_date: First day of the range (any time on that day)
            to_date: Last day of the range, inclusive
            zone: IANA zone the rules are expressed in

        Returns:
            Slots ordered by start time ascending
        """
        by_weekday: Dict[int, List[WeeklyAvailabilityRule]] = {}
        for rule in rules:
            by_weekday.setdefault(rule.weekday, []).append(rule)

        slots: List[CandidateSlot] = []
        current = from_date.in_timezone(zone).start_of("day")
        last = to_date.in_timezone(zone).start_of("day")

        while current <= last:
            for rule in by_weekday.get(weekday_index(current), []):
                slots.extend(self._slots_for_rule(rule, current, zone))
            current = current.add(days=1)

        slots.sort(key=lambda slot: slot.start_utc)

        logger.debug(
            "Generated %d candidate slots tz=%s range=[%s..%s] slot_minutes=%d",
            len(slots),
            zone,
            from_date.to_date_string(),
            to_date.to_date_string(),
            self.slot_minutes,
        )
        return slots

    def _slots_for_rule(
        self,
        rule: WeeklyAvailabilityRule,
        day: DateTime,
        zone: str,
    ) -> List[CandidateSlot]:
        """
        Chop one rule window into contiguous slots.

        Example (30 minute slots):
        Window: 09:00 - 10:40
        Result: [09:00-09:30, 09:30-10:00, 10:00-10:30]
        """
        cursor = local_moment(day, rule.start_time, zone)
        window_end = local_moment(day, rule.end_time, zone)

        slots: List[CandidateSlot] = []
        while cursor.add(minutes=self.slot_minutes) <= window_end:
            end = cursor.add(minutes=self.slot_minutes)
            slots.append(
                CandidateSlot(
                    start_utc=cursor.in_timezone("UTC"),
                    end_utc=end.in_timezone("UTC"),
                    local_start=cursor,
                    local_end=end,
                )
            )
            cursor = end

        return slots


def generate_candidate_slots(
    rules: Sequence[WeeklyAvailabilityRule],
    from_date: DateTime,
    to_date: DateTime,
    slot_minutes: int,
    zone: str,
) -> List[CandidateSlot]:
    """Functional shortcut for ``SlotCalculator(slot_minutes).generate_candidate_slots``."""
    return SlotCalculator(slot_minutes).generate_candidate_slots(
        rules=rules,
        from_date=from_date,
        to_date=to_date,
        zone=zone,
    )
