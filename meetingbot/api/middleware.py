"""Request correlation ID middleware.

Every inbound webhook delivery gets an ID, taken from ``X-Request-ID`` when
the caller sends one, so that the log lines of all events in one delivery can
be grouped. The ID lives in a ContextVar for the duration of the request.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "no-request-id"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Bind a correlation ID to the request and echo it in the response.

    The ID is exposed as ``request["correlation_id"]`` and through
    ``get_request_id()`` while the handler runs.
    """
    correlation_id = (
        request.headers.get(REQUEST_ID_HEADER)
        or request.headers.get("X-Line-Request-Id")
        or uuid.uuid4().hex
    )
    request["correlation_id"] = correlation_id

    token = request_id_var.set(correlation_id)
    started = time.monotonic()
    try:
        response = await handler(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        logger.debug(
            "%s %s -> %d in %.1fms",
            request.method,
            request.path,
            response.status,
            (time.monotonic() - started) * 1000,
        )
        return response
    finally:
        request_id_var.reset(token)


def get_request_id() -> str:
    """Current request correlation ID, or "no-request-id" outside a request."""
    return request_id_var.get() or NO_REQUEST_ID
