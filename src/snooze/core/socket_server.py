"""
=============================================================================
TCP ACCEPT LOOP
=============================================================================

Owns the listening socket and hands every accepted client to a callback.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create the listening socket
    2. bind()      Reserve HOST:PORT       ← fails if the port is taken
    3. listen()    Start queueing connections (backlog)
    4. accept()    One new socket per client
    5. close()     Release the listening socket on shutdown

=============================================================================
ONE CONNECTION AT A TIME
=============================================================================

In the default (serial) mode the callback handles the connection
completely, snooze included, before accept() is called again. A client
that asks for /snooze/10 holds the whole server for ten seconds, and
every caller gets deterministic timing with no contention.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop) escalate the ShutdownToken:

    1st signal → stop accepting; the current connection finishes normally
    2nd signal → abort; a running snooze is cut short

accept() runs with a short timeout so the loop notices a stop request
without needing a connection to arrive first.

Python only allows installing signal handlers from the main thread. When
the server runs in a background thread (as in the tests) the handlers are
simply not installed and the token is driven directly.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection
from .shutdown import ShutdownToken


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket(), SO_REUSEADDR, timeout       │
    │        ├──► bind(), listen()   OSError propagates (fatal)            │
    │        ├──► _setup_signals()   main thread only                      │
    │        └──► _accept_loop()     until token.stop_requested            │
    │                 └──► handler(Connection(...))                        │
    │                                                                      │
    │    _cleanup()                  restore signals, close socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        token = ShutdownToken()
        server = SocketServer(config, token)
        server.start(handle_connection)  # Blocks until token stops it
    """

    def __init__(
        self,
        config: ServerConfig,
        token: Optional[ShutdownToken] = None,
        poll_interval: float = 1.0,
    ):
        """
        Args:
            config: Server configuration (host, port, backlog, read_timeout).
            token: Shutdown token. A fresh one is created if not given.
            poll_interval: accept() timeout, i.e. how quickly a stop
                           request is noticed while idle.
        """
        self.config = config
        self.token = token or ShutdownToken()
        self.poll_interval = poll_interval

        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None
        self._ready = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound. With port 0 this carries the port the
        OS picked. Falls back to the configured address before start().
        """
        return self._address or (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: restart immediately instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up every poll_interval to check the token
        sock.settimeout(self.poll_interval)
        return sock

    def _setup_signals(self):
        """Install SIGINT/SIGTERM handlers that escalate the token."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            stage = self.token.escalate()
            if stage == "stopping":
                logger.info(f"Received {signal_name}, finishing current work before exit...")
            else:
                logger.warning(f"Received {signal_name} again, aborting in-progress requests")

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        Blocks until the token requests a stop.

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            OSError: If the socket cannot be bound or put in listening mode.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._address = self._socket.getsockname()[:2]
        self._setup_signals()

        logger.info(f"snooze is listening on {self._address[0]}:{self._address[1]}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept until a stop is requested.

        ┌─────────────────────────────────────────────────────────────────┐
        │   while not token.stop_requested:                                │
        │       accept()                                                   │
        │         ├── timeout → loop (re-check token)                      │
        │         ├── OSError → log, back off briefly, loop                │
        │         └── client → connection_handler(Connection(client))      │
        └─────────────────────────────────────────────────────────────────┘
        """
        while not self.token.stop_requested:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.token.stop_requested:
                    break
                # EMFILE and friends: don't spin at 100% CPU
                logger.error(f"Accept error: {e}")
                self.token.wait_for_stop(0.1)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                read_timeout=self.config.read_timeout,
            )
            connection_handler(conn)

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready.clear()
        logger.info("Stopped accepting connections")
