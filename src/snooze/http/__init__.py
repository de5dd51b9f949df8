"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The protocol side of snooze, with no socket I/O in it:

    request.py   Raw bytes → Request (best-effort, never raises)
    routes.py    Request.path → snooze_seconds
    response.py  Body → framed HTTP/1.1 200 response

Everything here works on plain bytes and strings, so it is tested without
opening a single socket.

=============================================================================
"""

from .request import Request, RequestParser, parse_request
from .routes import match_snooze, resolve_snooze
from .response import HTTPResponse, ResponseBuilder, snooze_message

__all__ = [
    # Request parsing
    "Request",
    "RequestParser",
    "parse_request",

    # Routing
    "match_snooze",
    "resolve_snooze",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "snooze_message",
]
