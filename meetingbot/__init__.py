"""meetingbot - answers "am I in a meeting right now?" from a Google Calendar.

The package keeps top-level imports light; the server and pipeline are
imported on demand by ``run_server`` and ``print_status``.
"""

__version__ = "0.1.0"

from typing import Optional


def _load_config(args: Optional[object] = None):
    """Load configuration from .env/environment and apply CLI overrides."""
    import logging

    from .core.config_manager import ConfigManager, build_config

    manager = ConfigManager()
    manager.load_env_file()
    cfg = manager.build_config_from_env()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            cfg["server_port"] = int(port)
            logging.getLogger(__name__).debug("Applied command line port override: %d", port)

    return build_config(cfg)


def run_server(args: Optional[object] = None) -> None:
    """Start the webhook server and block until shutdown.

    Raises:
        ConfigurationError: If required configuration is missing
    """
    import logging
    import os

    from .logging_config import configure_logging

    configure_logging(os.environ.get("MEETINGBOT_LOG_LEVEL"))
    config = _load_config(args)
    if config.log_level:
        configure_logging(config.log_level)

    from .api.server import start_server

    logger = logging.getLogger(__name__)
    logger.info("Starting meetingbot %s", __version__)
    # Only surface non-secret keys
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: getattr(config, k) for k in ("calendar_id", "server_bind", "server_port", "log_level")},
    )
    start_server(config)


def print_status(args: Optional[object] = None) -> str:
    """Run one status query against the configured calendar and return the text."""
    import asyncio
    import os

    from .logging_config import configure_logging

    configure_logging(os.environ.get("MEETINGBOT_LOG_LEVEL", "WARNING"))
    config = _load_config(args)

    async def _once() -> str:
        from .core.http_client import close_all_clients, get_shared_client
        from .domain.pipeline import MeetingStatusPipeline

        client = await get_shared_client("meetingbot-cli")
        try:
            pipeline = MeetingStatusPipeline.from_config(config, client)
            return await pipeline.get_status_message()
        finally:
            await close_all_clients()

    return asyncio.run(_once())
