"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: a SocketServer accepting connections, a
ThreadPool serving them, a RequestParser turning bytes into requests,
and ONE root handler (usually a Router) producing responses.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► ThreadPool ──worker──► _serve(conn)       │
    │                                                      │               │
    │                   ┌──────────────────────────────────┘               │
    │                   ▼                                                  │
    │   conn.read_request() ──► RequestParser ──► middleware ──► handler   │
    │                                                              │       │
    │   conn.send_response() ◄── response.to_bytes() ◄─────────────┘       │
    │         │                                                            │
    │         └── keep-alive? loop for the next request : close            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server does not own a route table. It is handed a handler:

    router = Router()
    router.add("/foo", hello)
    HTTPServer(router, config).run()

=============================================================================
ERROR MAPPING
=============================================================================

    malformed request (HTTPParseError)   its status (400/413/501/505), close
    request larger than max_request_size 413, close
    first request not sent in time       408, close
    handler raised                       500 {"error": "Internal Server Error"}
    every worker busy and queue full     503, close

The handler never sees the first four; the client always gets an answer.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    ResponseBuilder,
    Router,
    error_json,
)
from .http.router import Handler
from .middleware import Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a single root handler.

    Usage:
        server = HTTPServer(router, ServerConfig(port=8000))
        server.use(LoggingMiddleware())
        server.run()   # blocks until Ctrl+C / SIGTERM / shutdown()

    In tests, run it on a background thread:

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        host, port = server.address
    """

    def __init__(self, handler: Handler, config: Optional[ServerConfig] = None):
        if not callable(handler):
            raise TypeError(f"handler must be callable, got {handler!r}")

        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = handler
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        self._socket_server: Optional[SocketServer] = None
        self._thread_pool: Optional[ThreadPool] = None
        self._chain: Optional[Handler] = None
        self._running = False
        self._started = threading.Event()

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; first added runs outermost. Call before run()."""
        if self._running:
            raise RuntimeError("Cannot add middleware to a running server")
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port) once running; the configured one before that."""
        if self._socket_server is not None:
            return self._socket_server.address
        return (self.config.host, self.config.port)

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until shutdown() or a termination signal.

        Args:
            host: Override config.host for this run.
            port: Override config.port for this run.
        """
        if self._running:
            raise RuntimeError("Server is already running")

        self.config = self.config.replace(host=host, port=port)
        self._setup_logging()

        self._chain = self._middleware.wrap(self.handler)
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._thread_pool.start()
        self._running = True
        self._started.set()

        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port}")
        self._print_startup_banner()

        try:
            self._socket_server.start(self._dispatch_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._stop()

    def shutdown(self):
        """Ask a running server to stop. Returns at once; run() winds down."""
        if self._socket_server is not None:
            self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the server is accepting connections.

        Returns False on timeout, or if run() failed before listening.
        """
        if not self._started.wait(timeout):
            return False
        server = self._socket_server
        return server is not None and server.wait_until_ready(timeout)

    def _stop(self):
        logger.info("Shutting down server...")
        self._running = False
        if self._thread_pool is not None:
            self._thread_pool.shutdown(wait=True, timeout=self.config.write_timeout)
        self._started.clear()
        logger.info("Server stopped")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("webbasics").setLevel(level)

    def _print_startup_banner(self):
        logger.info(
            f"{self.config.server_name}: workers {self.config.min_workers}-{self.config.max_workers}, "
            f"keep-alive {'on' if self.config.keep_alive else 'off'}"
        )
        if isinstance(self.handler, Router):
            self.handler.print_routes()

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _dispatch_connection(self, conn: Connection):
        """Accept-loop callback: queue the connection, or refuse it with 503."""
        if self._thread_pool.submit(self._serve, args=(conn,), block=False):
            return

        logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _serve(self, conn: Connection):
        """Worker thread: request/response loop for one connection."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    logger.debug(f"[{conn.id}] Timed out waiting for request")
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request Timeout")
                    break
                except RequestTooLarge as e:
                    logger.debug(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Payload Too Large")
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                response = self._respond(conn, request)
                keep_alive = request.is_keep_alive and self.config.keep_alive and self._running

                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
                else:
                    response.headers["Connection"] = "close"

                data = response.to_bytes(self.config.server_name, include_body=request.method != "HEAD")
                if not conn.send_response(data):
                    break
                if not keep_alive or response.headers.get("Connection") == "close":
                    break
                conn.set_keep_alive()

    def _respond(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._chain(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.path}: {e}")
            return error_json(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    def _send_error(self, conn: Connection, status: int, message: str):
        response = (ResponseBuilder()
            .status(HTTPStatus(status))
            .json({"error": message})
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))
