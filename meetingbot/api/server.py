"""aiohttp server exposing the chat webhook."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
from typing import Any, Optional, Protocol

from aiohttp import web

from ..core.config_manager import MeetingBotConfig
from ..core.http_client import close_all_clients, get_shared_client
from ..domain.pipeline import MeetingStatusPipeline
from ..exceptions import MeetingBotError, WebhookError, WebhookSignatureError
from .line_client import SIGNATURE_HEADER, LineReplyClient, verify_signature
from .middleware import correlation_id_middleware

logger = logging.getLogger(__name__)

HTTP_CLIENT_ID = "meetingbot"


class StatusMessageSource(Protocol):
    """Anything that can render the current status message."""

    async def get_status_message(self) -> str: ...


class ReplySender(Protocol):
    """Anything that can send a text reply for a reply token."""

    async def reply_text(self, reply_token: str, text: str) -> None: ...


def _is_text_message_event(event: Any) -> bool:
    if not isinstance(event, dict) or event.get("type") != "message":
        return False
    message = event.get("message")
    return isinstance(message, dict) and message.get("type") == "text"


async def handle_message_event(
    event: dict[str, Any],
    status_source: StatusMessageSource,
    reply_sender: Optional[ReplySender],
) -> bool:
    """Answer one inbound event with the current meeting status.

    Args:
        event: One entry of the webhook ``events`` array
        status_source: Pipeline producing the reply text
        reply_sender: Reply API client

    Returns:
        True when a reply was sent, False when the event was ignored

    Raises:
        MeetingBotError: Pipeline or reply failure for this event
    """
    if not _is_text_message_event(event):
        event_type = event.get("type") if isinstance(event, dict) else None
        logger.debug("Ignoring webhook event of type %r", event_type)
        return False

    reply_token = event.get("replyToken")
    if not reply_token:
        raise WebhookError("Message event has no replyToken")
    if reply_sender is None:
        raise WebhookError("LINE channel access token is not configured")

    text = await status_source.get_status_message()
    await reply_sender.reply_text(reply_token, text)
    return True


def create_app(
    status_source: StatusMessageSource,
    reply_sender: Optional[ReplySender],
    channel_secret: Optional[str],
) -> web.Application:
    """Build the web application.

    Args:
        status_source: Pipeline producing the reply text
        reply_sender: Reply API client (None disables replies)
        channel_secret: Secret for ``X-Line-Signature`` checks (None disables the check)

    Returns:
        aiohttp application with ``/``, ``/health`` and ``/webhook`` routes
    """
    app = web.Application(middlewares=[correlation_id_middleware])

    if not channel_secret:
        logger.warning("LINE channel secret is not set; webhook signatures will not be verified")

    async def index(_request: web.Request) -> web.Response:
        return web.json_response({"message": "Hello, World!"})

    async def health(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def webhook(request: web.Request) -> web.Response:
        """Verify, parse and answer every event of one webhook delivery."""
        body = await request.read()

        if channel_secret:
            try:
                verify_signature(body, request.headers.get(SIGNATURE_HEADER), channel_secret)
            except WebhookSignatureError as e:
                logger.warning("Rejected webhook: %s", e)
                return web.json_response({"error": "invalid signature"}, status=401)

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.json_response({"error": "invalid json"}, status=400)

        events = payload.get("events") if isinstance(payload, dict) else None
        if not isinstance(events, list):
            return web.json_response({"error": "missing events"}, status=400)

        # Each event runs its own pipeline; one failure must not affect the others
        results = await asyncio.gather(
            *(handle_message_event(event, status_source, reply_sender) for event in events),
            return_exceptions=True,
        )

        failed = 0
        for result in results:
            if isinstance(result, MeetingBotError):
                failed += 1
                logger.error("Failed to handle webhook event: %s", result, exc_info=result)
            elif isinstance(result, BaseException):
                failed += 1
                logger.error("Unexpected error handling webhook event", exc_info=result)

        if failed:
            return web.json_response({"status": "error", "failed": failed}, status=500)
        return web.json_response({"status": "ok"})

    app.router.add_get("/", index)
    app.router.add_get("/health", health)
    app.router.add_post("/webhook", webhook)
    return app


async def _serve(config: MeetingBotConfig, stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the server until a shutdown signal (or ``stop_event``) arrives."""
    client = await get_shared_client(HTTP_CLIENT_ID)
    pipeline = MeetingStatusPipeline.from_config(config, client)

    reply_sender = None
    if config.line_channel_access_token:
        reply_sender = LineReplyClient(
            client,
            config.line_channel_access_token,
            api_base=config.line_api_base,
            timeout=config.request_timeout,
        )
    else:
        logger.warning("LINE channel access token is not set; replies are disabled")

    app = create_app(pipeline, reply_sender, config.line_channel_secret)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", config.server_bind, config.server_port)
        await runner.cleanup()
        await close_all_clients()
        raise

    logger.info("Server started on %s:%d", config.server_bind, config.server_port)

    external_stop = stop_event is not None
    stop_event = stop_event or asyncio.Event()

    if not external_stop:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    try:
        await stop_event.wait()
        logger.info("Stop event received, shutting down")
    finally:
        await runner.cleanup()
        await close_all_clients()
        logger.info("Server stopped")


def start_server(config: MeetingBotConfig) -> None:
    """Blocking entry point used by the CLI."""
    asyncio.run(_serve(config))
