"""
=============================================================================
SNOOZE SERVER
=============================================================================

Ties the pieces together into the per-connection pipeline.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer (accept loop)                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   SnoozeServer.handle_connection(conn)   ◄── inline, or on a worker │
    │        │                                     thread with --workers  │
    │        ├──► READING     conn.read_request()                         │
    │        ├──► ROUTING     RequestParser.parse() + resolve_snooze()    │
    │        ├──► RESPONDING  SnoozeHandler.handle()  (maybe snooze)      │
    │        │                ResponseBuilder.build() + send_response()   │
    │        ├──► CLOSING     conn.close()  half-close + drain            │
    │        └──► DONE        AccessLog.record(RequestLog)                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
EVERY PATH ENDS THE SAME WAY
=============================================================================

    peer sent nothing           → CLOSING → DONE (logged, no write)
    garbage request             → default message → CLOSING → DONE
    header block too large      → no write → CLOSING → DONE
    client gone during write    → CLOSING → DONE
    shutdown abort mid-snooze   → no write → CLOSING → DONE
    unexpected exception        → logged → CLOSING → DONE

Nothing that happens inside one connection stops the server.

=============================================================================
"""

import logging
import time
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, ShutdownToken, SocketServer, ThreadPool
from .errors import ResponseFramingError
from .handlers import SnoozeHandler
from .handlers.snooze import Delay
from .http import Request, RequestParser, ResponseBuilder, resolve_snooze
from .logging import AccessLog, RequestLog


logger = logging.getLogger(__name__)


class SnoozeServer:
    """
    The snooze HTTP server.

    =========================================================================
    USAGE
    =========================================================================

        server = SnoozeServer(ServerConfig(port=8080))
        server.run()  # Blocks until SIGINT/SIGTERM

    From another thread (tests):

        server = SnoozeServer(ServerConfig(host="127.0.0.1", port=0))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.stop()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        token: Optional[ShutdownToken] = None,
        access_log: Optional[AccessLog] = None,
        delay: Optional[Delay] = None,
        poll_interval: float = 1.0,
    ):
        """
        Args:
            config: Server configuration. Defaults if not provided.
            token: Shutdown token shared with the accept loop.
            access_log: Sink for per-connection entries.
            delay: Suspension function for snoozes. Defaults to
                   token.sleep, which a second stop signal can cut short.
            poll_interval: How often the idle accept loop checks the token.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.token = token or ShutdownToken()

        self._socket_server = SocketServer(self.config, self.token, poll_interval=poll_interval)
        self._parser = RequestParser()
        self._builder = ResponseBuilder(server_name=self.config.server_name)
        self._handler = SnoozeHandler(
            self.config.default_message,
            delay=delay or self.token.sleep,
        )
        self._access_log = access_log or AccessLog()

        self._pool: Optional[ThreadPool] = None
        if self.config.is_concurrent:
            self._pool = ThreadPool(workers=self.config.workers)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Stop accepting; in-flight connections finish normally."""
        self.token.request_stop()

    def abort(self):
        """Stop accepting and cut in-progress snoozes short."""
        self.token.abort()

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the listening socket cannot be set up.
        """
        mode = f"{self.config.workers} workers" if self._pool else "serial"
        logger.info(f"Starting snooze ({mode}) on {self.config.host}:{self.config.port}")

        if self._pool:
            self._pool.start()

        try:
            self._socket_server.start(self._dispatch)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _shutdown(self):
        """
        Wait for in-flight work, escalating to an abort on timeout.

        In serial mode there is nothing left to wait for: the accept loop
        only returns between connections.
        """
        self.token.request_stop()

        if self._pool:
            if not self._pool.shutdown(timeout=self.config.shutdown_timeout):
                logger.warning("In-flight requests still running, aborting them")
                self.token.abort()
                self._pool.shutdown(timeout=5.0)
            logger.info(f"Worker pool stats at exit: {self._pool.stats}")

        logger.info("snooze shut down")

    def _dispatch(self, conn: Connection):
        if self._pool:
            self._pool.submit(self.handle_connection, conn)
        else:
            self.handle_connection(conn)

    # =========================================================================
    # PER-CONNECTION PIPELINE
    # =========================================================================

    def handle_connection(self, conn: Connection) -> RequestLog:
        """
        Run one connection through READING → ... → DONE.

        Never raises. Always closes the connection and records exactly
        one access log entry.

        Returns:
            The RequestLog that was recorded.
        """
        # Time spent queued for a worker is not part of the request.
        conn.started_at = time.monotonic()
        request = Request()
        responded = False

        with conn:
            try:
                raw = conn.read_request()

                if not raw:
                    logger.debug(f"[{conn.id}] Peer closed before sending anything")
                else:
                    self._dump_request(conn, raw)

                    conn.state = ConnectionState.ROUTING
                    request = resolve_snooze(self._parser.parse(raw))

                    conn.state = ConnectionState.RESPONDING
                    body = self._handler.handle(request)
                    if body is not None:
                        responded = self._respond(conn, body)

            except Exception as e:
                logger.exception(f"[{conn.id}] Error handling connection: {e}")

        entry = RequestLog(
            exec_time_seconds=conn.elapsed,
            method=request.method,
            path=request.path,
            user_agent=request.user_agent,
            other_headers=list(request.other_headers),
            client_ip=conn.client_ip,
            snooze_seconds=request.snooze_seconds,
            responded=responded,
        )
        self._access_log.record(entry)
        return entry

    def _respond(self, conn: Connection, body: str) -> bool:
        """Frame and send body. Returns True if it was fully written."""
        try:
            response = self._builder.build(body)
        except ResponseFramingError as e:
            logger.error(f"[{conn.id}] {e}; closing without a response")
            return False

        return conn.send_response(response.to_bytes())

    def _dump_request(self, conn: Connection, raw: bytes):
        """Log the raw request as one contiguous block (DEBUG only)."""
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(
            f"=== request dump from {conn.peer} ===\n"
            f"{raw.decode('iso-8859-1')}\n"
            f"=== end request dump ==="
        )
