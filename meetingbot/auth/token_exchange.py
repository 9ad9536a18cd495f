"""OAuth2 JWT-bearer token exchange (RFC 7523)."""

import json
import logging

import httpx

from ..core.http_client import request_with_retry
from ..exceptions import TokenExchangeError
from ..models import AccessToken

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class TokenExchangeClient:
    """Trades a signed assertion for a short-lived access token."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_backoff_factor: float = 1.5,
    ) -> None:
        """Initialize token exchange client.

        Args:
            client: HTTP client used for the POST
            timeout: Per-attempt timeout in seconds
            max_retries: Retries after the first attempt on transient failures
            retry_backoff_factor: Base for exponential backoff between attempts
        """
        self.client = client
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff_factor = retry_backoff_factor

    async def exchange(self, signed_assertion: str, token_endpoint_url: str) -> AccessToken:
        """Exchange a signed assertion for an access token.

        Args:
            signed_assertion: Compact RS256 token from ``sign_assertion``
            token_endpoint_url: OAuth2 token endpoint

        Returns:
            AccessToken parsed from the ``access_token`` response field

        Raises:
            TokenExchangeError: HTTP failure, non-JSON body, or missing ``access_token``
        """
        form = {"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": signed_assertion}

        try:
            response = await request_with_retry(
                self.client,
                "POST",
                token_endpoint_url,
                data=form,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                max_retries=self.max_retries,
                backoff_factor=self.retry_backoff_factor,
            )
        except httpx.HTTPStatusError as e:
            # Error body names the OAuth failure (invalid_grant etc.)
            detail = _error_detail(e.response)
            raise TokenExchangeError(
                f"Token endpoint returned HTTP {e.response.status_code}: {detail}",
                e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"Token request failed: {e}") from e

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TokenExchangeError(
                "Token endpoint returned a non-JSON body", response.status_code
            ) from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise TokenExchangeError(
                "Token endpoint response has no access_token", response.status_code
            )

        logger.debug("Obtained access token from %s", token_endpoint_url)
        return AccessToken(value=token)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error_description") or body.get("error") or response.reason_phrase)
    return response.reason_phrase
