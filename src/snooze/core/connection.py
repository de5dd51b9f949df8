"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for its entire (short) life:

    accept → read request → [snooze] → write response → half-close → close

No connection is ever reused. Every response says "Connection: close".

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:
        "GET /snooze/3 HTTP/1.1\r\nHost: x\r\n\r\n"

    Server might receive:
        recv() → "GET /sno"
        recv() → "oze/3 HTTP/1.1\r\nHo"
        recv() → "st: x\r\n\r\n"

So we keep reading until we see the header terminator \r\n\r\n. The
difference from a general purpose server is what happens when we DON'T see
it: the buffer has a hard capacity, and when it is full (or the client
hangs up, or the read times out) we stop and hand over whatever we have.
The parser copes with partial input.

=============================================================================
WHY HALF-CLOSE BEFORE CLOSE?
=============================================================================

If we close() a socket while unread client bytes are still sitting in the
kernel receive buffer, the kernel answers with a TCP RST instead of a FIN.
The client may then throw away the response it already received and
report a truncated body (browsers show ERR_CONTENT_LENGTH_MISMATCH).

    ┌─────────────────────────────────────────────────────────────────┐
    │                    Half-close + drain                            │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   Server                              Client                     │
    │      │   response bytes ─────────────► │                         │
    │      │   FIN ────────────────────────► │  shutdown(SHUT_WR)      │
    │      │                                 │                         │
    │      │ ◄──────────── leftover bytes    │  recv(), discarded      │
    │      │                                 │  (non-blocking)         │
    │      │                                 │                         │
    │   close()                              │                         │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► ROUTING ──► RESPONDING ──► CLOSING ──► DONE
               │                        │             ▲
               │  (zero bytes)          │  (error)    │
               └────────────────────────┴─────────────┘

Every path ends in CLOSING, and CLOSING always runs the half-close
sequence. No state is ever re-entered.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
import uuid


logger = logging.getLogger(__name__)


REQUEST_CAPACITY = 8192
"""Hard ceiling on the bytes read for one request."""

RECV_CHUNK = 4096
DRAIN_CHUNK = 256
HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states."""

    NEW = "new"                # Just accepted
    READING = "reading"        # Accumulating request bytes
    ROUTING = "routing"        # Parsing and resolving the route
    RESPONDING = "responding"  # Snoozing and/or writing the response
    CLOSING = "closing"        # Half-close + drain in progress
    DONE = "done"              # Socket closed, descriptor released


@dataclass
class Connection:
    """
    Represents a single client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BOUNDED READING                                                  │
    │     └── read_request(): until \r\n\r\n, capacity, EOF or error       │
    │                                                                      │
    │  2. COMPLETE WRITES                                                  │
    │     └── send_response(): loop until every byte is out                │
    │                                                                      │
    │  3. GRACEFUL CLOSE                                                   │
    │     └── close(): half-close, drain, close. Exactly once.             │
    │                                                                      │
    │  4. TIMING                                                           │
    │     └── elapsed: seconds since handling started (access log)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The accepted client socket.
        address: Client address as returned by accept().
        id: Short connection identifier for log correlation.
        state: Current ConnectionState.
        read_timeout: Socket timeout while reading (None = block).
        capacity: Maximum request bytes to accumulate.
    """

    socket: socket.socket
    address: tuple = ("", 0)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    started_at: float = field(default_factory=time.monotonic)

    read_timeout: float = 30.0
    capacity: int = REQUEST_CAPACITY
    chunk_size: int = RECV_CHUNK

    def __post_init__(self):
        self.socket.settimeout(self.read_timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Client IP address ("" for non-IP sockets)."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return ""

    @property
    def peer(self) -> str:
        """Client address as "ip:port" for log lines."""
        if isinstance(self.address, tuple) and len(self.address) >= 2:
            return f"{self.address[0]}:{self.address[1]}"
        return str(self.address) or "unknown"

    @property
    def elapsed(self) -> float:
        """Seconds since started_at (accept, reset when handling starts)."""
        return time.monotonic() - self.started_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.DONE

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read request bytes from the socket.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_request() Flow                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while buffer not full:                                         │
        │       recv()                                                     │
        │         ├── InterruptedError → retry                             │
        │         ├── timeout / OSError → stop, return what we have        │
        │         ├── b"" (peer closed) → stop, return what we have        │
        │         └── data → append; \r\n\r\n in buffer? → stop            │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        The request body, if any, is never read. Whatever the
        client sent beyond the headers is discarded by close().

        Returns:
            The accumulated bytes, possibly empty. Never raises.
        """
        self.state = ConnectionState.READING
        buffer = bytearray()

        while len(buffer) < self.capacity:
            want = min(self.chunk_size, self.capacity - len(buffer))
            try:
                chunk = self.socket.recv(want)
            except InterruptedError:
                continue
            except socket.timeout:
                logger.debug(f"[{self.id}] Read timed out after {len(buffer)} bytes")
                break
            except OSError as e:
                logger.debug(f"[{self.id}] Read failed after {len(buffer)} bytes: {e}")
                break

            if not chunk:
                break  # Peer closed its side

            # Only the tail can complete a terminator that was not there before
            search_from = max(0, len(buffer) - len(HEADER_TERMINATOR) + 1)
            buffer.extend(chunk)
            if buffer.find(HEADER_TERMINATOR, search_from) != -1:
                break

        return bytes(buffer)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write all of data to the socket.

        socket.send() may write only part of what it is given, so we loop
        until everything is out.

        Returns:
            True if every byte was sent, False if the peer went away or a
            socket error occurred. Never raises.
        """
        self.state = ConnectionState.RESPONDING
        view = memoryview(data)
        sent = 0

        while sent < len(view):
            try:
                n = self.socket.send(view[sent:])
            except InterruptedError:
                continue
            except OSError as e:
                # BrokenPipeError, ConnectionResetError, timeout, ...
                logger.warning(f"[{self.id}] Send failed after {sent} bytes: {e}")
                return False

            if n == 0:
                logger.warning(f"[{self.id}] Peer closed during send after {sent} bytes")
                return False
            sent += n

        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Half-close, drain and close the connection.

        1. shutdown(SHUT_WR): no more data from us, read side stays open.
        2. Non-blocking recv() loop, discarding everything, until EOF,
           would-block, or an error.
        3. close(): release the descriptor.

        Safe to call more than once; only the first call does anything.
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.DONE):
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone, nothing to signal

        try:
            self._drain()
        finally:
            try:
                self.socket.close()
            except OSError:
                pass
            self.state = ConnectionState.DONE

        logger.debug(f"[{self.id}] Connection closed after {self.elapsed:.3f}s")

    def _drain(self):
        """Discard unread bytes without ever blocking."""
        try:
            self.socket.setblocking(False)
        except OSError:
            return

        while True:
            try:
                chunk = self.socket.recv(DRAIN_CHUNK)
            except InterruptedError:
                continue
            except BlockingIOError:
                break  # Nothing more right now
            except OSError:
                break  # Reset or otherwise unusable

            if not chunk:
                break  # Peer finished sending

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows:

            with conn:
                data = conn.read_request()
                conn.send_response(response)
            # half-closed and closed here, whatever happened
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
