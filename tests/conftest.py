"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from snooze import SnoozeServer, ServerConfig
from snooze.core import Connection
from snooze.logging import AccessLog, RequestLog


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /hello HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_snooze_request() -> bytes:
    """Sample request for the snooze route."""
    return (
        b"GET /snooze/3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: curl/8.5.0\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """POST with a body that must never be read."""
    body = b'{"name": "John"}'
    return (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + b"Content-Length: %d\r\n" % len(body)
        + b"\r\n"
        + body
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """Connected (server side, client side) sockets, no network involved."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for s in (server_side, client_side):
        try:
            s.close()
        except OSError:
            pass


@pytest.fixture
def connection(socket_pair) -> Connection:
    """Connection wrapping the server side of a socketpair."""
    server_side, _ = socket_pair
    return Connection(socket=server_side, address=("127.0.0.1", 40000), read_timeout=2.0)


class RecordingAccessLog(AccessLog):
    """AccessLog that keeps entries in memory instead of logging them."""

    def __init__(self):
        super().__init__()
        self.entries: List[RequestLog] = []
        self._changed = threading.Condition()

    def record(self, entry: RequestLog) -> None:
        with self._changed:
            self.entries.append(entry)
            self._changed.notify_all()

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        """
        Block until at least count entries exist.

        Entries are recorded after the socket is closed, so a client can
        see EOF slightly before its entry shows up.
        """
        with self._changed:
            return self._changed.wait_for(lambda: len(self.entries) >= count, timeout)


class FakeDelay:
    """
    Stand-in for ShutdownToken.sleep that returns immediately.

    Records every requested delay; result is what the "sleep" reports
    (False simulates an abort).
    """

    def __init__(self, result: bool = True):
        self.result = result
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> bool:
        self.calls.append(seconds)
        return self.result


@pytest.fixture
def access_log() -> RecordingAccessLog:
    return RecordingAccessLog()


@pytest.fixture
def fake_delay() -> FakeDelay:
    return FakeDelay()


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: SnoozeServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self, timeout: float = 5.0):
        """Request a stop and wait for the accept loop to exit."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def request(self, raw: bytes, timeout: float = 10.0) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with socket.create_connection(self.address, timeout=timeout) as s:
            s.sendall(raw)
            return recv_all(s)


def recv_all(sock: socket.socket) -> bytes:
    """Read until EOF."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> Tuple[bytes, bytes]:
    """Split a raw response into (header block, body)."""
    header, _, body = raw.partition(b"\r\n\r\n")
    return header, body


def make_server(access_log: Optional[AccessLog] = None, **overrides) -> SnoozeServer:
    config = ServerConfig(host="127.0.0.1", port=0, log_level="WARNING", **overrides)
    return SnoozeServer(config, access_log=access_log, poll_interval=0.1)


@pytest.fixture
def running_server(access_log) -> Generator[RunningServer, None, None]:
    """A serial snooze server on an ephemeral port."""
    test_srv = RunningServer(make_server(access_log, default_message="Hello from the test!\n"))
    test_srv.start()

    yield test_srv

    test_srv.stop()
