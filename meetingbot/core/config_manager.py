"""Configuration management for the meetingbot server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..calendar.fetcher import GOOGLE_CALENDAR_API_BASE
from ..exceptions import ConfigurationError
from ..models import GOOGLE_TOKEN_URL
from .credentials import (
    CredentialProvider,
    EnvFieldsCredentialProvider,
    ServiceAccountFileCredentialProvider,
)

logger = logging.getLogger(__name__)


LINE_API_BASE = "https://api.line.me"


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class MeetingBotConfig(BaseModel):
    """Validated runtime configuration, built once at startup."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Credentials: separate fields or a combined service account document
    google_client_email: Optional[str] = None
    google_private_key: Optional[str] = Field(default=None, repr=False)
    google_service_account_json: Optional[str] = Field(default=None, repr=False)
    calendar_id: str = ""

    # Upstream endpoints
    token_endpoint_url: str = GOOGLE_TOKEN_URL
    calendar_api_base: str = GOOGLE_CALENDAR_API_BASE

    # Network policy for both pipeline stages
    request_timeout: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_backoff_factor: float = Field(default=1.5, ge=1.0)

    all_day_timezone: Literal["local", "utc"] = "local"

    # Chat platform
    line_channel_access_token: Optional[str] = Field(default=None, repr=False)
    line_channel_secret: Optional[str] = Field(default=None, repr=False)
    line_api_base: str = LINE_API_BASE

    # Server
    server_bind: str = "0.0.0.0"  # nosec B104 - bind all interfaces for webhook delivery
    server_port: int = 8080
    log_level: Optional[str] = None

    def credential_provider(self) -> CredentialProvider:
        """Select the credential source; a service account document wins when set.

        Raises:
            ConfigurationError: If no credential source is configured
        """
        if self.google_service_account_json:
            return ServiceAccountFileCredentialProvider(
                self.google_service_account_json, self.token_endpoint_url
            )
        if self.google_client_email or self.google_private_key:
            return EnvFieldsCredentialProvider(
                self.google_client_email, self.google_private_key, self.token_endpoint_url
            )
        raise ConfigurationError(
            "Google service account credentials are not set "
            "(client email and private key, or a service account JSON document)"
        )

    def require_calendar_id(self) -> str:
        """Return the calendar ID or raise ConfigurationError when it is empty."""
        if not self.calendar_id or not self.calendar_id.strip():
            raise ConfigurationError("Google calendar ID is not set")
        return self.calendar_id.strip()


# Environment variable -> config key. The first variable that is set wins.
_STRING_SETTINGS: dict[str, tuple[str, ...]] = {
    "google_client_email": ("MEETINGBOT_GOOGLE_CLIENT_EMAIL", "GOOGLE_CLIENT_EMAIL"),
    "google_private_key": ("MEETINGBOT_GOOGLE_PRIVATE_KEY", "GOOGLE_PRIVATE_KEY"),
    "google_service_account_json": (
        "MEETINGBOT_GOOGLE_SERVICE_ACCOUNT_JSON",
        "GOOGLE_SERVICE_ACCOUNT_JSON",
    ),
    "calendar_id": ("MEETINGBOT_GOOGLE_CALENDAR_ID", "GOOGLE_CALENDAR_ID"),
    "token_endpoint_url": ("MEETINGBOT_TOKEN_URL",),
    "calendar_api_base": ("MEETINGBOT_CALENDAR_API_BASE",),
    "all_day_timezone": ("MEETINGBOT_ALL_DAY_TIMEZONE",),
    "line_channel_access_token": (
        "MEETINGBOT_LINE_CHANNEL_ACCESS_TOKEN",
        "LINE_CHANNEL_ACCESS_TOKEN",
    ),
    "line_channel_secret": ("MEETINGBOT_LINE_CHANNEL_SECRET", "LINE_CHANNEL_SECRET"),
    "server_bind": ("MEETINGBOT_WEB_HOST", "MEETINGBOT_SERVER_BIND"),
    "log_level": ("MEETINGBOT_LOG_LEVEL",),
}

_NUMERIC_SETTINGS: dict[str, tuple[tuple[str, ...], type]] = {
    "request_timeout": (("MEETINGBOT_REQUEST_TIMEOUT",), float),
    "max_retries": (("MEETINGBOT_MAX_RETRIES",), int),
    "retry_backoff_factor": (("MEETINGBOT_RETRY_BACKOFF_FACTOR",), float),
    "server_port": (("MEETINGBOT_WEB_PORT", "MEETINGBOT_SERVER_PORT", "PORT"), int),
}


def _first_env(names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Unprefixed names (GOOGLE_CLIENT_EMAIL, LINE_CHANNEL_SECRET, ...) are
        accepted as fallbacks for the MEETINGBOT_* names.

        Returns:
            Configuration dictionary suitable for MeetingBotConfig
        """
        cfg: dict[str, Any] = {}

        for key, names in _STRING_SETTINGS.items():
            value = _first_env(names)
            if value is not None:
                cfg[key] = value

        for key, (names, cast) in _NUMERIC_SETTINGS.items():
            raw = _first_env(names)
            if raw is None:
                continue
            try:
                cfg[key] = cast(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", names[0], raw)

        if "all_day_timezone" in cfg:
            cfg["all_day_timezone"] = cfg["all_day_timezone"].strip().lower()

        if os.environ.get("MEETINGBOT_DEBUG", "").lower() in ("1", "true", "yes"):
            cfg["log_level"] = "DEBUG"

        return cfg

    def load_full_config(self) -> MeetingBotConfig:
        """Load .env file and build validated configuration from environment.

        Returns:
            MeetingBotConfig

        Raises:
            ConfigurationError: If a value fails validation
        """
        self.load_env_file()
        return build_config(self.build_config_from_env())


def build_config(cfg: dict[str, Any]) -> MeetingBotConfig:
    """Validate a configuration dictionary.

    Raises:
        ConfigurationError: If a value fails validation
    """
    try:
        return MeetingBotConfig.model_validate(cfg)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
