"""Exception hierarchy for the meeting status pipeline.

Every pipeline stage raises its own error type so callers can tell a bad
configuration apart from an upstream outage. Library errors are always
chained with ``raise ... from`` so the original traceback is preserved.
"""

from typing import Optional


class MeetingBotError(Exception):
    """Base exception for all meetingbot errors.

    The webhook layer catches this type per inbound event; anything else
    escaping the pipeline is a programming error.
    """


class ConfigurationError(MeetingBotError):
    """Required configuration is missing or invalid.

    Raised when:
    - Client email, private key or calendar ID are missing or empty
    - A service account document cannot be read or parsed
    """


class KeyParsingError(MeetingBotError):
    """The private key string could not be turned into a signing key.

    Raised when:
    - The key string is empty
    - The body between the PEM markers is not valid base64
    - The decoded bytes are not an unencrypted PKCS8 RSA private key
    """


class SigningError(MeetingBotError):
    """The cryptographic backend rejected the key or the signing input."""


class TokenExchangeError(MeetingBotError):
    """The signed assertion could not be exchanged for an access token.

    Raised when:
    - The token endpoint cannot be reached or returns an HTTP error
    - The response body is not JSON
    - The response has no ``access_token`` field
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CalendarFetchError(MeetingBotError):
    """The event list could not be retrieved from the calendar provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedEventError(CalendarFetchError):
    """An event item has no usable start or end time.

    Raised when an item lacks both ``dateTime`` and ``date`` or when one of
    those values cannot be parsed.
    """


class WebhookError(MeetingBotError):
    """Inbound chat webhook request could not be handled."""


class WebhookSignatureError(WebhookError):
    """The ``X-Line-Signature`` header is missing or does not match the body.

    Should result in HTTP 401 Unauthorized response.
    """
