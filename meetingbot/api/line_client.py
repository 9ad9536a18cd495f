"""LINE Messaging API helpers: webhook signature check and reply sending."""

import base64
import hashlib
import hmac
import logging
from typing import Optional

import httpx

from ..exceptions import WebhookError, WebhookSignatureError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Line-Signature"
REPLY_PATH = "/v2/bot/message/reply"
MAX_TEXT_LENGTH = 5000


def compute_signature(body: bytes, channel_secret: str) -> str:
    """Return base64(HMAC-SHA256(channel_secret, body))."""
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature: Optional[str], channel_secret: str) -> None:
    """Check the ``X-Line-Signature`` header against the raw request body.

    Raises:
        WebhookSignatureError: If the header is missing or does not match
    """
    if not signature:
        raise WebhookSignatureError(f"Missing {SIGNATURE_HEADER} header")

    expected = compute_signature(body, channel_secret)
    if not hmac.compare_digest(expected, signature):
        raise WebhookSignatureError("Webhook signature does not match request body")


class LineReplyClient:
    """Sends a single text reply for a reply token."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        channel_access_token: str,
        api_base: str = "https://api.line.me",
        timeout: float = 10.0,
    ) -> None:
        self.client = client
        self.channel_access_token = channel_access_token
        self.reply_url = api_base.rstrip("/") + REPLY_PATH
        self.timeout = timeout

    async def reply_text(self, reply_token: str, text: str) -> None:
        """Reply to a message event with one text message.

        Reply tokens are single-use, so the call is never retried.

        Raises:
            WebhookError: If the reply API call fails
        """
        body = {
            "replyToken": reply_token,
            "messages": [{"type": "text", "text": text[:MAX_TEXT_LENGTH]}],
        }
        headers = {"Authorization": f"Bearer {self.channel_access_token}"}

        try:
            response = await self.client.post(
                self.reply_url, json=body, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise WebhookError(
                f"Reply API returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise WebhookError(f"Reply API request failed: {e}") from e

        logger.debug("Sent reply (%d chars)", len(text))
