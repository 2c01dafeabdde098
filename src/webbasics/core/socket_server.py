"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The bottom of the stack: bind a listening socket, accept connections,
hand each one to a callback. It knows nothing about HTTP.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket()  ──►  bind()  ──►  listen()  ──►  accept() loop           │
    │                                                │                     │
    │                                                ▼                     │
    │                                    Connection(client_socket)         │
    │                                                │                     │
    │                                                ▼                     │
    │                                    on_connection(conn)               │
    │                                    (HTTPServer → thread pool)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

accept() is given a 1 second timeout so the loop notices shutdown()
within a second instead of blocking forever.

=============================================================================
READINESS
=============================================================================

start() blocks, so callers running it in a background thread need to
know when the socket is actually listening:

    thread = threading.Thread(target=server.start, args=(on_connection,))
    thread.start()
    server.wait_until_ready(timeout=5)
    host, port = server.address        # the real port, even for port=0

=============================================================================
SIGNALS
=============================================================================

SIGTERM (docker stop, systemd) and SIGINT (Ctrl+C) trigger a graceful
shutdown. Python only lets the main thread install signal handlers, so
when start() runs anywhere else (tests, embedding) signals are left to
whoever owns the main thread.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionCallback = Callable[[Connection], None]


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        (host, port) actually bound.

        Before start() this is the configured address. After bind it is
        what getsockname() reports, so port 0 resolves to the real port.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart without waiting out TIME_WAIT on the old socket
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in one sendall(); don't let Nagle hold them
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(1.0)
        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def start(self, on_connection: ConnectionCallback):
        """
        Bind, listen and accept until shutdown() is called.

        Raises:
            OSError: The address could not be bound (in use, no permission).
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(on_connection)
        finally:
            self._cleanup()

    def _accept_loop(self, on_connection: ConnectionCallback):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
                write_timeout=self.config.write_timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            on_connection(conn)

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """Stop accepting. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._running = False
        self._ready.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)
