"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read off a connection into a structured Request.

This is NOT an RFC 7230 parser. snooze only needs four things
out of a request (method, path, User-Agent and "everything else" for the
access log), and it must produce them for ANY input, including garbage.

=============================================================================
WHAT WE LOOK AT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /snooze/5 HTTP/1.1\r\n        ← request line                 │
    │    ─┬─ ────┬──── ────┬───                                           │
    │     │      │         └── ignored                                    │
    │   method  path                                                      │
    │                                                                      │
    │    Host: localhost\r\n                ← other_headers[0]            │
    │    User-Agent: curl/8.5.0\r\n         ← user_agent                  │
    │    Accept: */*\r\n                    ← other_headers[1]            │
    │    \r\n                               ← stop here                   │
    │    (body, if any, is never looked at)                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BEST-EFFORT RULES
=============================================================================

1. NEVER RAISE. Every field has a default and keeps it when the input
   does not say otherwise:
       method="GET", path="/", user_agent="unknown", other_headers=[]

2. ONE PASS. Lines are classified as they are scanned: the User-Agent
   header is pulled out, every other header is appended in encounter
   order. There is no header dict followed by a second lookup.

3. BOUNDED FIELDS. Each field has a fixed capacity. Longer values are
   truncated silently; headers past MAX_OTHER_HEADERS are dropped.

4. NO DECODE ERRORS. Bytes are decoded as ISO-8859-1, which maps every
   byte to a code point, so decoding cannot fail.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Tuple


# =============================================================================
# FIELD CAPACITIES (characters)
# =============================================================================

METHOD_CAPACITY = 15
PATH_CAPACITY = 1023
USER_AGENT_CAPACITY = 255
HEADER_NAME_CAPACITY = 63
HEADER_VALUE_CAPACITY = 255
MAX_OTHER_HEADERS = 64

DEFAULT_METHOD = "GET"
DEFAULT_PATH = "/"
DEFAULT_USER_AGENT = "unknown"


@dataclass
class Request:
    """
    A parsed (best-effort) HTTP request.

    Created once per connection and thrown away after the response is
    sent. The route resolver fills in snooze_seconds after parsing.

    Attributes:
        method:         Request method token, "GET" if missing.
        path:           Request target as sent (query string included).
        user_agent:     Value of the User-Agent header, "unknown" if absent.
        other_headers:  Every other header as (name, value), in the order
                        the client sent them. Only used for logging.
        snooze_seconds: Delay requested through /snooze/<N>, 0 otherwise.
    """

    method: str = DEFAULT_METHOD
    path: str = DEFAULT_PATH
    user_agent: str = DEFAULT_USER_AGENT
    other_headers: List[Tuple[str, str]] = field(default_factory=list)
    snooze_seconds: int = 0

    @property
    def is_snooze(self) -> bool:
        """True when the request asked for a delayed response."""
        return self.snooze_seconds > 0


class RequestParser:
    """
    Single-pass, never-failing request parser.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        raw bytes
            │
            ▼
        decode ISO-8859-1 ─────────────── cannot fail
            │
            ▼
        split on \\r\\n
            │
            ├──► line 0: request line ─── method + path (or defaults)
            │
            └──► line 1..n: headers ───── stop at first empty line
                    │
                    ├── "User-Agent" ───► user_agent
                    └── anything else ──► other_headers.append(...)

    ==========================================================================
    """

    def __init__(
        self,
        method_capacity: int = METHOD_CAPACITY,
        path_capacity: int = PATH_CAPACITY,
        user_agent_capacity: int = USER_AGENT_CAPACITY,
        name_capacity: int = HEADER_NAME_CAPACITY,
        value_capacity: int = HEADER_VALUE_CAPACITY,
        max_other_headers: int = MAX_OTHER_HEADERS,
    ):
        self.method_capacity = method_capacity
        self.path_capacity = path_capacity
        self.user_agent_capacity = user_agent_capacity
        self.name_capacity = name_capacity
        self.value_capacity = value_capacity
        self.max_other_headers = max_other_headers

    def parse(self, data: bytes) -> Request:
        """
        Parse raw request bytes.

        Args:
            data: Whatever the request reader accumulated. May be empty,
                  truncated mid-line, or not HTTP at all.

        Returns:
            A Request with every field set.
        """
        request = Request()
        if not data:
            return request

        text = data.decode("iso-8859-1")
        lines = text.split("\r\n")

        self._parse_request_line(lines[0], request)

        for line in lines[1:]:
            if not line:
                break  # End of headers

            # ─────────────────────────────────────────────────────────────
            # "Name: value" - split on the FIRST colon only, so values like
            # "Host: localhost:8080" keep their own colons.
            # ─────────────────────────────────────────────────────────────
            name, sep, value = line.partition(":")
            if not sep:
                continue  # Not a header line, skip it

            value = value.lstrip(" \t")

            if name.lower() == "user-agent":
                request.user_agent = value[:self.user_agent_capacity]
            elif len(request.other_headers) < self.max_other_headers:
                request.other_headers.append(
                    (name[:self.name_capacity], value[:self.value_capacity])
                )

        return request

    def _parse_request_line(self, line: str, request: Request) -> None:
        """
        Extract method and target from the request line.

            METHOD SP TARGET [SP VERSION]

        If the line has no space, or either part is empty, both fields
        keep their defaults. The version token is ignored.
        """
        method, sep, rest = line.partition(" ")
        if not sep:
            return

        target = rest.partition(" ")[0]
        if not method or not target:
            return

        request.method = method[:self.method_capacity]
        request.path = target[:self.path_capacity]


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

_default_parser = RequestParser()


def parse_request(data: bytes) -> Request:
    """
    Parse raw request bytes with the default capacities.

    Use RequestParser directly to change the field capacities.
    """
    return _default_parser.parse(data)
