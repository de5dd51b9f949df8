"""
=============================================================================
SNOOZE - An HTTP endpoint that answers when you tell it to
=============================================================================

snooze is a tiny HTTP/1.1 server for testing how clients behave when a
server is slow: timeouts, retries, progress indicators, load balancer
health checks.

    GET /snooze/5     → waits 5 seconds, then "Snoozed for 5 seconds!\\n"
    GET /anything     → the configured default message, immediately

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. RAW SOCKETS                                                     │
    │      - Accept loop with signal-driven, two-stage shutdown            │
    │      - Bounded request reading (never waits for a body)              │
    │      - Half-close + drain before close, so clients never see RST     │
    │                                                                      │
    │   2. BEST-EFFORT HTTP                                                │
    │      - Single-pass request line + header scan, never raises          │
    │      - One response shape: 200 OK, exact Content-Length,             │
    │        Connection: close                                             │
    │                                                                      │
    │   3. PREDICTABLE TIMING                                              │
    │      - One connection at a time by default                           │
    │      - Opt-in worker pool (--workers N)                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    snooze/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m snooze)
    ├── server.py            # SnoozeServer, per-connection pipeline
    ├── config.py            # ServerConfig (env > CLI > defaults)
    ├── logging.py           # Access log entries, JSON/text formatting
    ├── errors.py            # Exception types
    ├── core/                # Socket-level components
    │   ├── socket_server.py # Accept loop, signals
    │   ├── connection.py    # Read / write / half-close
    │   ├── shutdown.py      # ShutdownToken
    │   └── thread_pool.py   # Opt-in worker pool
    ├── http/                # Protocol components (no I/O)
    │   ├── request.py       # Request parsing
    │   ├── routes.py        # /snooze/<N> matching
    │   └── response.py      # Response framing
    └── handlers/
        └── snooze.py        # Delay + body selection

=============================================================================
QUICK START
=============================================================================

    from snooze import SnoozeServer, ServerConfig

    SnoozeServer(ServerConfig(port=8080, default_message="hi\\n")).run()

    # or from a shell
    $ snooze --port 8080 --message "hi"
    $ curl -i localhost:8080/snooze/3

=============================================================================
"""

__version__ = "1.0.0"

from .server import SnoozeServer
from .config import ServerConfig

__all__ = ["SnoozeServer", "ServerConfig", "__version__"]
