"""Command-line entry for meetingbot."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import print_status, run_server
from .exceptions import ConfigurationError, MeetingBotError


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for meetingbot CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="meetingbot",
        description="meetingbot - replies with your current Google Calendar meeting status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m meetingbot                    # Start webhook server on default port (8080)
  python -m meetingbot --port 3000        # Start webhook server on port 3000
  python -m meetingbot --once             # Print the current status message and exit
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from MEETINGBOT_WEB_PORT env var)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single status query, print the message and exit",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the meetingbot CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        if args.once:
            print(print_status(args))
        else:
            run_server(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    except MeetingBotError as exc:
        print(f"Status query failed: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    sys.exit(0)


if __name__ == "__main__":
    main()
