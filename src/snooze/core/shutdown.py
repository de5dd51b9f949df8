"""
=============================================================================
SHUTDOWN COORDINATION
=============================================================================

A ShutdownToken is handed to everything that needs to know when the server
is stopping. It replaces a process-wide "keep running" flag.

=============================================================================
TWO STAGES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   running ──(1st SIGINT/SIGTERM)──► stopping ──(2nd signal)──► aborted
    │                                                                      │
    │   stopping:  accept loop exits, the connection being handled         │
    │              (even mid-snooze) runs to completion and is answered.   │
    │                                                                      │
    │   aborted:   in-progress snoozes wake up immediately, their          │
    │              connections are closed without a response.              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The first Ctrl+C is polite. The second one means it.

=============================================================================
THE SNOOZE IS A SUSPENSION POINT
=============================================================================

Handlers never call time.sleep(). They call token.sleep(seconds), which
waits on a threading.Event. Data arriving on the client socket cannot
wake it; only abort() can. That gives the delay a well defined
cancellation contract and works the same in serial and pooled mode.

=============================================================================
"""

import threading
from typing import Optional


class ShutdownToken:
    """
    Two-stage cancellation token.

    Usage:
        token = ShutdownToken()

        # accept loop
        while not token.stop_requested:
            ...

        # connection handler
        if not token.sleep(5):
            ...  # aborted, give up on this response

        # signal handler
        token.escalate()
    """

    def __init__(self):
        self._stop = threading.Event()
        self._abort = threading.Event()

    @property
    def stop_requested(self) -> bool:
        """True once the server should stop accepting connections."""
        return self._stop.is_set()

    @property
    def aborted(self) -> bool:
        """True once in-progress work should be abandoned."""
        return self._abort.is_set()

    def request_stop(self) -> None:
        """Stop accepting new connections. Idempotent."""
        self._stop.set()

    def abort(self) -> None:
        """Abandon in-progress work. Implies request_stop()."""
        self._stop.set()
        self._abort.set()

    def escalate(self) -> str:
        """
        Move one stage further: running → stopping → aborted.

        Called from the signal handler so that repeated signals escalate.

        Returns:
            The new stage name, for logging.
        """
        if not self.stop_requested:
            self.request_stop()
            return "stopping"
        self.abort()
        return "aborted"

    def sleep(self, seconds: float) -> bool:
        """
        Suspend the calling thread for the given number of seconds.

        Event.wait() refuses timeouts above threading.TIMEOUT_MAX, so long
        delays are waited out in slices of at most that size.

        Returns:
            True if the full delay elapsed, False if abort() cut it short.
        """
        if seconds <= 0:
            return not self.aborted

        remaining = seconds
        while remaining > 0:
            step = min(remaining, int(threading.TIMEOUT_MAX))
            if self._abort.wait(step):
                return False
            remaining -= step
        return True

    def wait_for_stop(self, timeout: Optional[float] = None) -> bool:
        """Block until a stop is requested. Returns False on timeout."""
        return self._stop.wait(timeout)
