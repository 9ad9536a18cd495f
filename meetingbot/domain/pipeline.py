"""Meeting status pipeline.

One query runs every stage in order and fails fast:
parse key -> build assertion -> sign -> exchange token -> fetch events ->
classify -> format. Nothing is cached between queries; the pipeline object
holds only read-only configuration and the HTTP connection pool.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

import httpx

from ..auth.assertion import CALENDAR_READONLY_SCOPE, mint_signed_assertion
from ..auth.keys import parse_private_key
from ..auth.token_exchange import TokenExchangeClient
from ..calendar.fetcher import CalendarEventFetcher
from ..core.config_manager import MeetingBotConfig
from ..core.credentials import CredentialProvider
from ..core.timezone_utils import TimeProvider
from ..models import DayWindow, MeetingStatus
from .message_formatter import format_status_message
from .status_classifier import classify_status

logger = logging.getLogger(__name__)


@dataclass
class MeetingStatusPipeline:
    """Answers "am I in a meeting, and if not what is on today?" per query."""

    credentials: CredentialProvider
    calendar_id: str
    token_client: TokenExchangeClient
    event_fetcher: CalendarEventFetcher
    time_provider: TimeProvider
    scopes: Sequence[str] = (CALENDAR_READONLY_SCOPE,)

    @classmethod
    def from_config(
        cls,
        config: MeetingBotConfig,
        client: httpx.AsyncClient,
        time_provider: Optional[TimeProvider] = None,
    ) -> MeetingStatusPipeline:
        """Build a pipeline from validated configuration.

        Raises:
            ConfigurationError: If credentials or the calendar ID are missing
        """
        return cls(
            credentials=config.credential_provider(),
            calendar_id=config.require_calendar_id(),
            token_client=TokenExchangeClient(
                client,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
                retry_backoff_factor=config.retry_backoff_factor,
            ),
            event_fetcher=CalendarEventFetcher(
                client,
                api_base=config.calendar_api_base,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
                retry_backoff_factor=config.retry_backoff_factor,
                all_day_timezone=config.all_day_timezone,
            ),
            time_provider=time_provider or TimeProvider(),
        )

    async def get_status(self, now: Optional[datetime.datetime] = None) -> MeetingStatus:
        """Run the pipeline up to classification.

        Args:
            now: Instant to classify (defaults to the time provider's current time)

        Returns:
            InMeeting or Free

        Raises:
            MeetingBotError: Any stage failure; no partial result is returned
        """
        now = now or self.time_provider.now()

        identity = self.credentials.get_identity()
        # Key problems surface here, before any network call
        key = parse_private_key(identity.private_key_pem)
        signed = mint_signed_assertion(identity, key, self.scopes, now)

        token = await self.token_client.exchange(signed, identity.token_endpoint_url)

        window = DayWindow.for_instant(now)
        events = await self.event_fetcher.fetch_events(token, self.calendar_id, window)

        status = classify_status(now, events)
        logger.debug("Classified %s with %d events today", status.kind, len(events))
        return status

    async def get_status_message(self, now: Optional[datetime.datetime] = None) -> str:
        """Run the full pipeline and render the reply text."""
        now = now or self.time_provider.now()
        status = await self.get_status(now)
        return format_status_message(status, now.tzinfo)
