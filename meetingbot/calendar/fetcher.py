"""Google Calendar event list client."""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any
from urllib.parse import quote

import httpx
from dateutil import parser as date_parser

from ..core.http_client import request_with_retry
from ..exceptions import CalendarFetchError, MalformedEventError
from ..models import AccessToken, AllDayValue, CalendarEvent, DateTimeValue, DayWindow

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

ALL_DAY_TIMEZONE_LOCAL = "local"
ALL_DAY_TIMEZONE_UTC = "utc"


def parse_event_time(raw: Any, boundary: str) -> DateTimeValue | AllDayValue:
    """Parse one ``start``/``end`` object into an EventTime variant.

    ``dateTime`` takes precedence over ``date`` when both are present.

    Args:
        raw: The ``start`` or ``end`` object of an event item
        boundary: "start" or "end", used in error messages

    Returns:
        DateTimeValue for timed events, AllDayValue for whole-day events

    Raises:
        MalformedEventError: If neither field is present or the value cannot be parsed
    """
    if not isinstance(raw, dict):
        raise MalformedEventError(f"Event {boundary} is missing")

    date_time = raw.get("dateTime")
    if date_time:
        try:
            return DateTimeValue(value=date_parser.isoparse(date_time))
        except (ValueError, TypeError, OverflowError) as e:
            raise MalformedEventError(f"Invalid {boundary}.dateTime {date_time!r}") from e

    date_only = raw.get("date")
    if date_only:
        try:
            return AllDayValue(value=datetime.date.fromisoformat(date_only))
        except (ValueError, TypeError) as e:
            raise MalformedEventError(f"Invalid {boundary}.date {date_only!r}") from e

    raise MalformedEventError(f"Event {boundary} has neither dateTime nor date")


class CalendarEventFetcher:
    """Retrieves the events of one calendar day using a bearer access token."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base: str = GOOGLE_CALENDAR_API_BASE,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_backoff_factor: float = 1.5,
        all_day_timezone: str = ALL_DAY_TIMEZONE_LOCAL,
    ) -> None:
        """Initialize calendar event fetcher.

        Args:
            client: HTTP client used for the GET
            api_base: Calendar API base URL
            timeout: Per-attempt timeout in seconds
            max_retries: Retries after the first attempt on transient failures
            retry_backoff_factor: Base for exponential backoff between attempts
            all_day_timezone: "local" to anchor all-day events at local midnight, "utc" for UTC
        """
        if all_day_timezone not in (ALL_DAY_TIMEZONE_LOCAL, ALL_DAY_TIMEZONE_UTC):
            raise ValueError(f"Unsupported all_day_timezone: {all_day_timezone!r}")

        self.client = client
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff_factor = retry_backoff_factor
        self.all_day_timezone = all_day_timezone

    def events_url(self, calendar_id: str) -> str:
        return f"{self.api_base}/calendars/{quote(calendar_id, safe='')}/events"

    async def fetch_events(
        self, token: AccessToken, calendar_id: str, window: DayWindow
    ) -> list[CalendarEvent]:
        """Fetch the concrete events of the day, ordered by start time.

        Args:
            token: Access token from the token exchange
            calendar_id: Calendar to read
            window: Local day boundaries

        Returns:
            Well-formed events sorted by start; empty when the day has no items

        Raises:
            CalendarFetchError: HTTP failure or a body that is not a JSON object
            MalformedEventError: An item without a usable start or end
        """
        params = {
            "timeMin": window.start_of_day.isoformat(),
            "timeMax": window.end_of_day.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        headers = {
            "Authorization": f"Bearer {token.value}",
            "Accept": "application/json",
        }

        try:
            response = await request_with_retry(
                self.client,
                "GET",
                self.events_url(calendar_id),
                params=params,
                headers=headers,
                timeout=self.timeout,
                max_retries=self.max_retries,
                backoff_factor=self.retry_backoff_factor,
            )
        except httpx.HTTPStatusError as e:
            raise CalendarFetchError(
                f"Calendar API returned HTTP {e.response.status_code}: {e.response.reason_phrase}",
                e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise CalendarFetchError(f"Calendar request failed: {e}") from e

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CalendarFetchError(
                "Calendar API returned a non-JSON body", response.status_code
            ) from e

        if not isinstance(payload, dict):
            raise CalendarFetchError("Calendar API response is not a JSON object")

        items = payload.get("items") or []
        if not isinstance(items, list):
            raise CalendarFetchError("Calendar API 'items' is not a list")

        events = self.parse_items(items, window.start_of_day.tzinfo)
        logger.debug("Fetched %d events (%d items) for %s", len(events), len(items), calendar_id)
        return events

    def parse_items(
        self, items: list[Any], local_tz: datetime.tzinfo | None
    ) -> list[CalendarEvent]:
        """Convert raw event items into sorted, well-formed CalendarEvents."""
        tz = local_tz or datetime.UTC
        all_day_tz = datetime.UTC if self.all_day_timezone == ALL_DAY_TIMEZONE_UTC else tz

        events: list[CalendarEvent] = []
        for item in items:
            if not isinstance(item, dict):
                raise MalformedEventError("Event item is not an object")

            start = parse_event_time(item.get("start"), "start")
            end = parse_event_time(item.get("end"), "end")
            event = CalendarEvent(
                start=start.resolve(all_day_tz if isinstance(start, AllDayValue) else tz),
                end=end.resolve(all_day_tz if isinstance(end, AllDayValue) else tz),
                summary=str(item.get("summary") or ""),
            )

            if not event.is_well_formed:
                logger.warning(
                    "Skipping event %r: start %s is not before end %s",
                    item.get("id", ""),
                    event.start.isoformat(),
                    event.end.isoformat(),
                )
                continue

            events.append(event)

        events.sort(key=lambda e: e.start)
        return events
