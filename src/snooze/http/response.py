"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the one response shape snooze ever sends.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                                              │
    │    Server: snooze\r\n                                               │
    │    Content-Type: text/plain; charset=utf-8\r\n                      │
    │    Content-Length: 23\r\n            ← bytes, not characters!       │
    │    Connection: close\r\n             ← no keep-alive, ever          │
    │    \r\n                                                             │
    │    Snoozed for 5 seconds!\n                                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The status is always 200: there is no 4xx/5xx path. Garbage in still gets
the default message out.

=============================================================================
CONTENT-LENGTH IS A BYTE COUNT
=============================================================================

    len("héllo")                  → 5
    len("héllo".encode("utf-8"))  → 6   ← this is what goes on the wire

Getting this wrong makes clients either hang waiting for a byte that never
comes, or report a truncated body.

=============================================================================
HEADER CAPACITY
=============================================================================

The header block is formatted into a fixed-capacity buffer
(HEADER_CAPACITY bytes). For any realistic body this is far more than
enough; if it ever does not fit, build() raises ResponseFramingError and
the caller must close the connection without sending anything. A half
written header block is worse than no response at all.

=============================================================================
"""

from dataclasses import dataclass
from typing import Union

from ..errors import ResponseFramingError


HEADER_CAPACITY = 256
STATUS_LINE = "HTTP/1.1 200 OK"
CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class HTTPResponse:
    """
    A framed response ready to be written to the socket.

    Attributes:
        header: Status line + headers + blank line, already encoded.
        body:   Body bytes.
    """

    header: bytes
    body: bytes

    @property
    def content_length(self) -> int:
        return len(self.body)

    def to_bytes(self) -> bytes:
        """Complete response as a single bytes object."""
        return self.header + self.body


class ResponseBuilder:
    """
    Formats snooze responses.

    Usage:
        builder = ResponseBuilder(server_name="snooze")
        response = builder.build("Hello from snooze!\\n")
        conn.send_response(response.to_bytes())
    """

    def __init__(
        self,
        server_name: str = "snooze",
        header_capacity: int = HEADER_CAPACITY,
    ):
        """
        Args:
            server_name: Value of the Server header.
            header_capacity: Maximum size of the encoded header block.
        """
        self.server_name = server_name
        self.header_capacity = header_capacity

    def build(self, body: Union[str, bytes]) -> HTTPResponse:
        """
        Build a 200 response around body.

        Args:
            body: Response body. Strings are encoded as UTF-8.

        Returns:
            The framed HTTPResponse.

        Raises:
            ResponseFramingError: If the header block exceeds header_capacity.
        """
        body_bytes = body.encode("utf-8") if isinstance(body, str) else body

        lines = [
            STATUS_LINE,
            f"Server: {self.server_name}",
            f"Content-Type: {CONTENT_TYPE}",
            f"Content-Length: {len(body_bytes)}",
            "Connection: close",
            "",
            "",
        ]
        header = "\r\n".join(lines).encode("utf-8")

        if len(header) > self.header_capacity:
            raise ResponseFramingError(
                f"Response header block is {len(header)} bytes, "
                f"capacity is {self.header_capacity}",
                header_size=len(header),
                capacity=self.header_capacity,
            )

        return HTTPResponse(header=header, body=body_bytes)


# =============================================================================
# BODY HELPERS
# =============================================================================

def snooze_message(seconds: int) -> str:
    """Body for a snooze route."""
    return f"Snoozed for {seconds} seconds!\n"
