"""Time and event builders shared by meetingbot tests."""

import datetime

from meetingbot.models import CalendarEvent

JST = datetime.timezone(datetime.timedelta(hours=9), "JST")

TOKEN_URL = "https://oauth2.example.com/token"
CALENDAR_API_BASE = "https://calendar.example.com/calendar/v3"


def at(hour: int, minute: int = 0, day: int = 17) -> datetime.datetime:
    """Return 2026-10-<day> hour:minute in a fixed +09:00 zone."""
    return datetime.datetime(2026, 10, day, hour, minute, tzinfo=JST)


def event(start_hour: int, end_hour: int, summary: str = "") -> CalendarEvent:
    return CalendarEvent(start=at(start_hour), end=at(end_hour), summary=summary)
