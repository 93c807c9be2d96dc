"""
Removal of candidate slots that collide with externally reported busy time.
"""

import logging
from typing import Iterable, List, Sequence

from .models import CandidateSlot, TimeRange

logger = logging.getLogger(__name__)


def overlaps_any(candidate: TimeRange, busy_intervals: Iterable[TimeRange]) -> bool:
    """True if ``candidate`` strictly intersects at least one busy interval."""
    return any(candidate.overlaps(busy) for busy in busy_intervals)


def filter_free(
    candidates: Sequence[CandidateSlot],
    busy_intervals: Sequence[TimeRange],
) -> List[CandidateSlot]:
    """
    Keep the candidates that overlap no busy interval, preserving order.

    A slot ending exactly when a busy interval starts (or starting exactly
    when one ends) is kept.
    """
    free = [
        slot for slot in candidates
        if not overlaps_any(slot.time_range, busy_intervals)
    ]
    logger.debug(
        "Busy filter input=%d busy=%d free=%d",
        len(candidates),
        len(busy_intervals),
        len(free),
    )
    return free
