"""Shared HTTP client and bounded retry helper.

Both network stages of the pipeline (token exchange and event fetch) go
through ``request_with_retry`` so they share one timeout and retry policy.
The client itself is a connection pool only; it carries no per-query state.
"""

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from .. import __version__

logger = logging.getLogger(__name__)

# Process-wide clients keyed by purpose (server, CLI)
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(max_connections=10, max_keepalive_connections=5)

# Per-request timeouts passed to request_with_retry override the read timeout
DEFAULT_TIMEOUT = httpx.Timeout(connect=5.0, read=10.0, write=5.0, pool=10.0)

DEFAULT_HEADERS = {"User-Agent": f"meetingbot/{__version__}"}

MAX_BACKOFF_SECONDS = 10.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3

# Upstream statuses worth another attempt; everything else fails immediately
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


async def get_shared_client(
    client_id: str = "default",
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Return the pooled client for ``client_id``, creating it on first use.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        limits: Custom connection limits
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient
    """
    async with _client_lock:
        client = _shared_clients.get(client_id)
        if client is None or client.is_closed:
            effective_limits = limits or DEFAULT_LIMITS
            client = httpx.AsyncClient(
                limits=effective_limits,
                timeout=timeout or DEFAULT_TIMEOUT,
                headers=DEFAULT_HEADERS,
            )
            _shared_clients[client_id] = client
            logger.debug(
                "Created shared HTTP client '%s' (max_connections=%d)",
                client_id,
                effective_limits.max_connections,
            )
        return client


async def close_all_clients() -> None:
    """Close all shared HTTP clients; call during application shutdown."""
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            if client.is_closed:
                continue
            try:
                await client.aclose()
            except Exception as e:  # noqa: PERF203
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)
        _shared_clients.clear()


def calculate_backoff(attempt: int, backoff_factor: float) -> float:
    """Calculate exponential backoff time with jitter.

    Args:
        attempt: Current retry attempt number (0-indexed)
        backoff_factor: Base factor for exponential backoff calculation

    Returns:
        Backoff time in seconds including jitter, capped at MAX_BACKOFF_SECONDS
    """
    base_backoff = min(backoff_factor**attempt, MAX_BACKOFF_SECONDS)
    jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
    return base_backoff + jitter


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    timeout: float,
    max_retries: int,
    backoff_factor: float,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request with an explicit timeout and a bounded retry budget.

    Transport errors and 429/5xx responses are retried up to ``max_retries``
    times; any other HTTP error is raised at once.

    Args:
        client: HTTP client to use
        method: HTTP method (GET, POST, etc.)
        url: URL to request
        timeout: Per-attempt timeout in seconds
        max_retries: Retries after the first attempt (0 disables retry)
        backoff_factor: Base for exponential backoff between attempts
        **kwargs: Additional arguments for ``client.request``

    Returns:
        Successful (2xx) response

    Raises:
        httpx.HTTPStatusError: Non-retryable status, or retryable status on the last attempt
        httpx.TimeoutException: Timed out on the last attempt
        httpx.NetworkError: Network failure on the last attempt
    """
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, timeout=timeout, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            if attempt >= max_retries:
                logger.debug("All %d attempts failed for %s %s", attempt + 1, method, url)
                raise
            reason = f"{type(e).__name__}: {e}"
        else:
            if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= max_retries:
                response.raise_for_status()
                return response
            reason = f"HTTP {response.status_code}"

        backoff_time = calculate_backoff(attempt, backoff_factor)
        logger.warning(
            "%s %s failed with %s (attempt %d/%d), retrying in %.1fs",
            method,
            url,
            reason,
            attempt + 1,
            max_retries + 1,
            backoff_time,
        )
        await asyncio.sleep(backoff_time)
        attempt += 1
