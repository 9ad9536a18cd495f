"""Japanese reply text for a meeting status."""

from __future__ import annotations

import datetime
from typing import Optional

from ..models import CalendarEvent, Free, InMeeting, MeetingStatus

IN_MEETING_MESSAGE = "現在会議中です"
FREE_HEADER_TEMPLATE = "本日は会議が{count}件入っていて\n"
EVENT_LINE_TEMPLATE = "\n{start} から {end}まで"


def format_clock_time(value: datetime.datetime, tz: Optional[datetime.tzinfo] = None) -> str:
    """Render a datetime as 24-hour ``HH:MM`` wall-clock time in ``tz``."""
    if tz is not None:
        value = value.astimezone(tz)
    return value.strftime("%H:%M")


def format_event_line(event: CalendarEvent, tz: Optional[datetime.tzinfo] = None) -> str:
    return EVENT_LINE_TEMPLATE.format(
        start=format_clock_time(event.start, tz),
        end=format_clock_time(event.end, tz),
    )


def format_status_message(
    status: MeetingStatus, tz: Optional[datetime.tzinfo] = None
) -> str:
    """Render a MeetingStatus as reply text.

    Args:
        status: Result of ``classify_status``
        tz: Local timezone for event times; None keeps each event's own offset

    Returns:
        Fixed in-meeting text, or a count header followed by one line per event
    """
    if isinstance(status, InMeeting):
        return IN_MEETING_MESSAGE

    if isinstance(status, Free):
        message = FREE_HEADER_TEMPLATE.format(count=len(status.events))
        return message + "".join(format_event_line(event, tz) for event in status.events)

    raise TypeError(f"Unsupported meeting status: {type(status).__name__}")
