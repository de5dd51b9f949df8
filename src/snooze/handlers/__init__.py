"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    SnoozeHandler   snooze route → delay + confirmation body
                    anything else → configured default message

=============================================================================
"""

from .snooze import SnoozeHandler, blocking_delay

__all__ = [
    "SnoozeHandler",
    "blocking_delay",
]
