"""Meeting status classification.

Single source of truth for deciding whether "now" falls inside one of the
day's events. Intervals are half-open: an event ``[start, end)`` contains
its start instant but not its end instant, so a zero-length event is never
current.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence

from ..models import CalendarEvent, Free, InMeeting, MeetingStatus

logger = logging.getLogger(__name__)


def is_in_progress(event: CalendarEvent, now: datetime.datetime) -> bool:
    """Whether ``now`` lies in ``[event.start, event.end)``."""
    return event.start <= now < event.end


def classify_status(now: datetime.datetime, events: Sequence[CalendarEvent]) -> MeetingStatus:
    """Classify the current instant against the day's events.

    Args:
        now: Current timezone-aware instant
        events: Events of the day; order does not affect the result

    Returns:
        InMeeting for the first event containing ``now``, otherwise
        Free carrying the full, unmodified event sequence
    """
    for index, event in enumerate(events):
        if is_in_progress(event, now):
            logger.debug("Meeting in progress: event %d (%s - %s)", index, event.start, event.end)
            return InMeeting()

    return Free(events=tuple(events))
