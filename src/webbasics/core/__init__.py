"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

Transport and concurrency plumbing. Nothing in here knows about HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer    listening socket + accept loop                      │
    │        │                                                             │
    │        │ one Connection per accepted socket                          │
    │        ▼                                                             │
    │  ThreadPool      bounded queue + worker threads                      │
    │        │                                                             │
    │        ▼                                                             │
    │  Connection      buffered reads, timeouts, graceful close            │
    │                                                                      │
    │  ReadWriteLock   many readers or one writer (guards the route table) │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .locks import ReadWriteLock
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # accepts connections
    "Connection",       # wraps one client socket
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",       # runs connections on worker threads
    "ReadWriteLock",    # shared/exclusive lock
]
