"""
=============================================================================
SNOOZE CLI ENTRY POINT
=============================================================================

=============================================================================
USAGE
=============================================================================

    # Defaults (0.0.0.0:80, "Hello from snooze!")
    snooze

    # Custom port and message
    snooze --port 8080 --message "I am awake"

    # Environment wins over flags (containers)
    PORT=9000 MESSAGE="from env" snooze --port 8080

    # Let several clients snooze at once
    snooze --port 8080 --workers 8

    # Human readable logs with request dumps
    snooze --port 8080 --log-level DEBUG --log-format text

=============================================================================
EXIT STATUS
=============================================================================

    0   Clean shutdown (SIGINT / SIGTERM)
    1   Fatal setup error: invalid configuration, port in use, no
        permission to bind, ...

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_FORMATS, LOG_LEVELS
from .errors import ConfigError
from .logging import setup_logging
from .server import SnoozeServer


logger = logging.getLogger("snooze")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser. Every option defaults to None (unset)."""
    parser = argparse.ArgumentParser(
        prog="snooze",
        description="HTTP endpoint that answers /snooze/<N> after N seconds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables (override the flags when set):
  PORT, MESSAGE, HOST, LOG_LEVEL, LOG_FORMAT, SNOOZE_WORKERS, READ_TIMEOUT

Examples:
  snooze --port 8080                     # Listen on 8080
  snooze -m "hello"                      # Custom default message
  curl localhost:8080/snooze/5           # Answer after 5 seconds
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--message", "-m",
        dest="default_message",
        metavar="TEXT",
        help="Message to send for every non-snooze path",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 80)",
    )

    parser.add_argument(
        "--host", "-H",
        help="Address to bind to (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Worker threads for concurrent handling (default: 0, one connection at a time)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Log output format (default: json)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"snooze {__version__}",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    1. Parse flags
    2. Resolve configuration (env > flags > defaults)
    3. Configure logging
    4. Run the server until a stop signal

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.resolve(args)
    except ConfigError as e:
        # Logging is not configured yet; this goes straight to stderr
        print(f"snooze: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, config.log_format)

    try:
        SnoozeServer(config).run()
    except OSError as e:
        logger.error(f"Fatal: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
