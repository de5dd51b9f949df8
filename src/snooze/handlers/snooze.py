"""
=============================================================================
SNOOZE HANDLER
=============================================================================

Decides what to answer and when:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request.snooze_seconds > 0                                        │
    │       │                                                              │
    │       ├── yes ──► delay(N) ──► "Snoozed for N seconds!\n"           │
    │       │              │                                               │
    │       │              └── aborted ──► None (no response)             │
    │       │                                                              │
    │       └── no ───► /snooze/0 ? "Snoozed for 0 seconds!\n"            │
    │                              : default_message (verbatim)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The delay is a blocking wait in the calling thread. In serial mode that
is the accept loop itself, so nobody else is served meanwhile. Data the
client sends during the wait does not wake it up.

=============================================================================
"""

import logging
import threading
import time
from typing import Callable, Optional

from ..http.request import Request
from ..http.routes import match_snooze
from ..http.response import snooze_message


logger = logging.getLogger(__name__)

Delay = Callable[[float], bool]
"""Suspend for N seconds; return False if the wait was cancelled."""


def blocking_delay(seconds: float) -> bool:
    """Uncancellable delay, for use without a ShutdownToken."""
    remaining = seconds
    while remaining > 0:
        step = min(remaining, int(threading.TIMEOUT_MAX))
        time.sleep(step)
        remaining -= step
    return True


class SnoozeHandler:
    """
    Produces the response body for a routed request.

    Usage:
        handler = SnoozeHandler("Hello from snooze!\\n", delay=token.sleep)
        body = handler.handle(request)
        if body is None:
            ...  # delay aborted, close without responding
    """

    def __init__(self, default_message: str, delay: Optional[Delay] = None):
        """
        Args:
            default_message: Body for every non-snooze path, sent unmodified.
            delay: Suspension function. Defaults to an uncancellable sleep.
        """
        self.default_message = default_message
        self.delay = delay or blocking_delay

    def handle(self, request: Request) -> Optional[str]:
        """
        Run the (optional) delay and return the body to send.

        Returns:
            The body, or None if the delay was aborted by a shutdown.
        """
        if request.snooze_seconds > 0:
            logger.debug(f"Snoozing for {request.snooze_seconds}s ({request.path})")
            if not self.delay(request.snooze_seconds):
                logger.info(f"Snooze of {request.snooze_seconds}s aborted by shutdown")
                return None
            return snooze_message(request.snooze_seconds)

        # /snooze/0 is still a snooze route, just one without a wait
        if match_snooze(request.path) == 0:
            return snooze_message(0)

        return self.default_message
