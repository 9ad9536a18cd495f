"""Unit tests for meetingbot.calendar.fetcher."""

import datetime
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from meetingbot.calendar.fetcher import CalendarEventFetcher, parse_event_time
from meetingbot.exceptions import CalendarFetchError, MalformedEventError
from meetingbot.models import AccessToken, AllDayValue, DateTimeValue, DayWindow

from ..helpers import CALENDAR_API_BASE, JST, at

pytestmark = pytest.mark.unit

CALENDAR_ID = "team@example.com"
TOKEN = AccessToken(value="ya29.token")
WINDOW = DayWindow.for_instant(at(12))


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(
        status, request=httpx.Request("GET", CALENDAR_API_BASE + "/calendars"), **kwargs
    )


def _fetcher(*outcomes, **kwargs) -> CalendarEventFetcher:
    client = Mock()
    client.request = AsyncMock(side_effect=list(outcomes))
    return CalendarEventFetcher(client, api_base=CALENDAR_API_BASE, **kwargs)


def _item(start: dict, end: dict, **extra) -> dict:
    return {"start": start, "end": end, **extra}


@pytest.fixture(autouse=True)
def no_backoff_sleep():
    with patch("meetingbot.core.http_client.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


class TestParseEventTime:
    """Tests for start/end boundary parsing."""

    def test_parse_when_date_time_then_date_time_value(self):
        parsed = parse_event_time({"dateTime": "2026-10-17T10:00:00+09:00"}, "start")

        assert isinstance(parsed, DateTimeValue)
        assert parsed.value == at(10)

    def test_parse_when_date_only_then_all_day_value(self):
        parsed = parse_event_time({"date": "2026-10-17"}, "start")

        assert isinstance(parsed, AllDayValue)
        assert parsed.value == datetime.date(2026, 10, 17)

    def test_parse_when_both_present_then_date_time_wins(self):
        parsed = parse_event_time(
            {"dateTime": "2026-10-17T10:00:00Z", "date": "2026-10-17"}, "start"
        )
        assert isinstance(parsed, DateTimeValue)

    @pytest.mark.parametrize("raw", [None, {}, {"timeZone": "Asia/Tokyo"}, "2026-10-17"])
    def test_parse_when_no_usable_field_then_raises(self, raw):
        with pytest.raises(MalformedEventError):
            parse_event_time(raw, "end")

    @pytest.mark.parametrize(
        "raw", [{"dateTime": "tomorrow at ten"}, {"date": "2026-13-40"}, {"date": "17/10/2026"}]
    )
    def test_parse_when_unparseable_then_raises(self, raw):
        with pytest.raises(MalformedEventError):
            parse_event_time(raw, "start")


class TestFetchEvents:
    """Tests for CalendarEventFetcher.fetch_events."""

    async def test_fetch_when_called_then_sends_day_window_query(self):
        fetcher = _fetcher(_response(200, json={"items": []}), timeout=4.0)

        await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        args, kwargs = fetcher.client.request.call_args
        assert args == ("GET", f"{CALENDAR_API_BASE}/calendars/team%40example.com/events")
        assert kwargs["params"] == {
            "timeMin": "2026-10-17T00:00:00+09:00",
            "timeMax": "2026-10-18T00:00:00+09:00",
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        assert kwargs["headers"]["Authorization"] == "Bearer ya29.token"
        assert kwargs["timeout"] == 4.0

    async def test_fetch_when_items_then_events_sorted_by_start(self):
        items = [
            _item({"dateTime": "2026-10-17T14:00:00+09:00"}, {"dateTime": "2026-10-17T15:00:00+09:00"}),
            _item(
                {"dateTime": "2026-10-17T10:00:00+09:00"},
                {"dateTime": "2026-10-17T11:00:00+09:00"},
                summary="standup",
            ),
        ]
        fetcher = _fetcher(_response(200, json={"items": items}))

        events = await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        assert [(e.start, e.end) for e in events] == [(at(10), at(11)), (at(14), at(15))]
        assert events[0].summary == "standup"

    async def test_fetch_when_items_missing_then_empty_list(self):
        fetcher = _fetcher(_response(200, json={"kind": "calendar#events"}))

        assert await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW) == []

    async def test_fetch_when_all_day_event_then_local_midnight_bounds(self):
        items = [_item({"date": "2026-10-17"}, {"date": "2026-10-18"})]
        fetcher = _fetcher(_response(200, json={"items": items}))

        events = await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        assert events[0].start == at(0)
        assert events[0].end == at(0, day=18)
        assert events[0].start.utcoffset() == datetime.timedelta(hours=9)

    async def test_fetch_when_all_day_timezone_utc_then_utc_midnight_bounds(self):
        items = [_item({"date": "2026-10-17"}, {"date": "2026-10-18"})]
        fetcher = _fetcher(_response(200, json={"items": items}), all_day_timezone="utc")

        events = await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        assert events[0].start == datetime.datetime(2026, 10, 17, tzinfo=datetime.UTC)

    async def test_fetch_when_naive_date_time_then_local_tz_attached(self):
        items = [_item({"dateTime": "2026-10-17T10:00:00"}, {"dateTime": "2026-10-17T11:00:00"})]
        fetcher = _fetcher(_response(200, json={"items": items}))

        events = await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        assert events[0].start == at(10)
        assert events[0].start.utcoffset() == JST.utcoffset(None)

    async def test_fetch_when_start_not_before_end_then_skipped_with_warning(self, caplog):
        items = [
            _item(
                {"dateTime": "2026-10-17T11:00:00+09:00"},
                {"dateTime": "2026-10-17T10:00:00+09:00"},
                id="backwards",
            ),
            _item({"dateTime": "2026-10-17T13:00:00+09:00"}, {"dateTime": "2026-10-17T14:00:00+09:00"}),
        ]
        fetcher = _fetcher(_response(200, json={"items": items}))

        with caplog.at_level("WARNING", logger="meetingbot.calendar.fetcher"):
            events = await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        assert len(events) == 1
        assert "backwards" in caplog.text

    async def test_fetch_when_item_has_no_times_then_raises(self):
        items = [{"summary": "no times"}]
        fetcher = _fetcher(_response(200, json={"items": items}))

        with pytest.raises(MalformedEventError):
            await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

    async def test_fetch_when_item_not_object_then_raises(self):
        fetcher = _fetcher(_response(200, json={"items": ["oops"]}))

        with pytest.raises(MalformedEventError):
            await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

    @pytest.mark.parametrize("status", [401, 403, 404])
    async def test_fetch_when_http_error_then_raises_with_status(self, status):
        fetcher = _fetcher(_response(status, json={"error": {"code": status}}))

        with pytest.raises(CalendarFetchError) as exc_info:
            await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

        assert exc_info.value.status_code == status
        assert not isinstance(exc_info.value, MalformedEventError)

    async def test_fetch_when_timeouts_exhaust_retries_then_raises(self):
        fetcher = _fetcher(*[httpx.ReadTimeout("slow")] * 2, max_retries=1)

        with pytest.raises(CalendarFetchError, match="Calendar request failed"):
            await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

    async def test_fetch_when_body_not_json_then_raises(self):
        fetcher = _fetcher(_response(200, text="not json"))

        with pytest.raises(CalendarFetchError, match="non-JSON"):
            await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)

    @pytest.mark.parametrize("body", [["a"], {"items": "nope"}])
    async def test_fetch_when_body_wrong_shape_then_raises(self, body):
        fetcher = _fetcher(_response(200, json=body))

        with pytest.raises(CalendarFetchError):
            await fetcher.fetch_events(TOKEN, CALENDAR_ID, WINDOW)


def test_fetcher_when_unknown_all_day_timezone_then_raises():
    with pytest.raises(ValueError):
        CalendarEventFetcher(Mock(), all_day_timezone="Asia/Tokyo")
