"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The socket-facing half of snooze:

    socket_server.py  Listening socket, accept loop, signal handling
    connection.py     One client socket: bounded read, full write,
                      half-close + drain
    shutdown.py       Two-stage shutdown token (stop, then abort)
    thread_pool.py    Fixed worker pool for the opt-in concurrent mode

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, REQUEST_CAPACITY
from .shutdown import ShutdownToken
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",      # Accept loop
    "Connection",        # Client socket wrapper
    "ConnectionState",   # Connection lifecycle states
    "REQUEST_CAPACITY",  # Request read ceiling in bytes
    "ShutdownToken",     # Stop/abort coordination
    "ThreadPool",        # Opt-in worker threads
]
