"""
=============================================================================
ROUTE RESOLUTION
=============================================================================

snooze has exactly two routes:

    ┌────────────────────────┬──────────────────────────────────────────────┐
    │  Path                  │  Result                                      │
    ├────────────────────────┼──────────────────────────────────────────────┤
    │  /snooze/<digits>      │  snooze route, delay = int(<digits>)         │
    │  anything else         │  default route, delay = 0                    │
    └────────────────────────┴──────────────────────────────────────────────┘

The match is exact. No query strings, no trailing slash, no sign:

    /snooze/5       → 5
    /snooze/0       → 0   (recognized, but nothing to wait for)
    /snooze/007     → 7
    /snooze/        → default
    /snooze         → default
    /snooze/12a     → default
    /snooze/-3      → default
    /snooze/+3      → default
    /snooze/5?x=1   → default

A path that does not match is never an error. It simply is not a snooze.

=============================================================================
WHY [0-9] AND NOT \\d?
=============================================================================

In Python 3 regexes, \\d matches any Unicode decimal digit ("٣" is a \\d).
Only ASCII digits are accepted here, so the class is spelled out.

=============================================================================
"""

import re
from typing import Optional

from .request import Request


SNOOZE_PREFIX = "/snooze/"
SNOOZE_PATTERN = re.compile(r"/snooze/([0-9]+)")


def match_snooze(path: str) -> Optional[int]:
    """
    Match a path against the snooze route.

    Args:
        path: Request target as parsed.

    Returns:
        The requested delay in seconds if the path is a snooze route,
        otherwise None. Any number of digits is accepted as is.
    """
    match = SNOOZE_PATTERN.fullmatch(path)
    if match is None:
        return None
    return int(match.group(1))


def resolve_snooze(request: Request) -> Request:
    """
    Set request.snooze_seconds from request.path.

    Returns the same request for chaining:

        request = resolve_snooze(parser.parse(raw))
    """
    seconds = match_snooze(request.path)
    request.snooze_seconds = seconds if seconds is not None else 0
    return request
