"""Data models for the meeting status pipeline."""

import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class ServiceIdentity(BaseModel):
    """Service account credential used to mint bearer assertions."""

    model_config = ConfigDict(frozen=True)

    client_email: str = Field(..., min_length=1, description="Service account email (iss)")
    private_key_pem: str = Field(..., min_length=1, repr=False, description="PKCS8 PEM key")
    token_endpoint_url: str = Field(default=GOOGLE_TOKEN_URL, description="OAuth2 token URL (aud)")


class AccessToken(BaseModel):
    """Short-lived access token; used for exactly one calendar fetch."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, repr=False)


class DateTimeValue(BaseModel):
    """Event boundary given as a full date-time."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["date_time"] = "date_time"
    value: datetime.datetime

    def resolve(self, tz: datetime.tzinfo) -> datetime.datetime:
        """Return an aware datetime; naive values are taken as wall time in ``tz``."""
        if self.value.tzinfo is None:
            return self.value.replace(tzinfo=tz)
        return self.value


class AllDayValue(BaseModel):
    """Event boundary given as a whole-day calendar date."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["all_day"] = "all_day"
    value: datetime.date

    def resolve(self, tz: datetime.tzinfo) -> datetime.datetime:
        """Return midnight of the date in ``tz``."""
        return datetime.datetime.combine(self.value, datetime.time.min, tzinfo=tz)


EventTime = Annotated[Union[DateTimeValue, AllDayValue], Field(discriminator="kind")]


class CalendarEvent(BaseModel):
    """A single concrete calendar event with resolved boundaries."""

    model_config = ConfigDict(frozen=True)

    start: datetime.datetime
    end: datetime.datetime
    summary: str = ""

    @property
    def is_well_formed(self) -> bool:
        """Whether the event spans a positive interval."""
        return self.start < self.end


class DayWindow(BaseModel):
    """Local calendar-day boundaries around an instant."""

    model_config = ConfigDict(frozen=True)

    start_of_day: datetime.datetime
    end_of_day: datetime.datetime

    @model_validator(mode="after")
    def _check_order(self) -> "DayWindow":
        if self.start_of_day > self.end_of_day:
            raise ValueError("start_of_day must not be after end_of_day")
        return self

    @classmethod
    def for_instant(cls, now: datetime.datetime) -> "DayWindow":
        """Build the window from local midnight of ``now`` to the next local midnight.

        Args:
            now: Timezone-aware instant expressed in the local timezone

        Returns:
            DayWindow covering the calendar day that contains ``now``
        """
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        tz = now.tzinfo
        today = now.date()
        start = datetime.datetime.combine(today, datetime.time.min, tzinfo=tz)
        end = datetime.datetime.combine(
            today + datetime.timedelta(days=1), datetime.time.min, tzinfo=tz
        )
        return cls(start_of_day=start, end_of_day=end)


class InMeeting(BaseModel):
    """The calendar owner is in a meeting right now."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["in_meeting"] = "in_meeting"


class Free(BaseModel):
    """No meeting is in progress; carries every event of the day."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["free"] = "free"
    events: tuple[CalendarEvent, ...] = ()


MeetingStatus = Annotated[Union[InMeeting, Free], Field(discriminator="kind")]
