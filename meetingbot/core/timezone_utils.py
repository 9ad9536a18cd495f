"""Local clock helpers for meetingbot.

The deployment's local clock is the only timezone source; there is no
per-request or per-calendar timezone setting.
"""

from __future__ import annotations

import datetime
import logging
import os

from dateutil import parser as date_parser
from dateutil import tz as date_tz

logger = logging.getLogger(__name__)

TEST_TIME_ENV_VAR = "MEETINGBOT_TEST_TIME"


def get_local_timezone() -> datetime.tzinfo:
    """Return the server's local timezone; its UTC offset follows DST per instant."""
    return date_tz.tzlocal()


class TimeProvider:
    """Provides current local time with test time override support."""

    def __init__(self, tz: datetime.tzinfo | None = None):
        """Initialize time provider.

        Args:
            tz: Timezone to report times in (defaults to the server's local timezone)
        """
        self.tz = tz

    def now(self) -> datetime.datetime:
        """Return the current timezone-aware local time.

        Can be overridden for testing via MEETINGBOT_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2025-10-27T09:30:00+09:00").
        Naive values are taken as local wall time.
        """
        tz = self.tz or get_local_timezone()

        test_time = os.environ.get(TEST_TIME_ENV_VAR)
        if test_time:
            try:
                dt = date_parser.isoparse(test_time)
                if dt.tzinfo is None:
                    return dt.replace(tzinfo=tz)
                return dt.astimezone(tz)
            except (ValueError, OverflowError) as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV_VAR, test_time, e)

        return datetime.datetime.now(tz)

