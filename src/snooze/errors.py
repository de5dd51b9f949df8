"""
=============================================================================
SNOOZE EXCEPTIONS
=============================================================================

Very few things are allowed to go wrong in snooze. Malformed requests are
never errors (they fall back to defaults), and peer disconnects only cut
the current connection short. What is left:

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │  Exception           │  Raised when                                 │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │  ConfigError         │  ServerConfig.validate() rejects a value     │
    │                      │  (fatal, process exits with status 1)        │
    │  ResponseFramingError│  The response header block does not fit its  │
    │                      │  formatting buffer (connection is closed     │
    │                      │  without sending anything)                   │
    └──────────────────────┴──────────────────────────────────────────────┘

Bind/listen failures surface as the OSError raised by the socket module.

=============================================================================
"""


class SnoozeError(Exception):
    """Base class for snooze errors."""


class ConfigError(SnoozeError, ValueError):
    """
    Raised when the resolved configuration is invalid.

    Subclasses ValueError so callers validating plain values can keep
    catching the builtin.
    """


class ResponseFramingError(SnoozeError):
    """
    Raised when a response header block exceeds its formatting capacity.

    Carries the sizes involved so the handler can log something useful
    before going straight to the close sequence.
    """

    def __init__(self, message: str, header_size: int = 0, capacity: int = 0):
        super().__init__(message)
        self.header_size = header_size
        self.capacity = capacity
