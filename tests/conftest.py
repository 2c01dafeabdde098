"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webbasics import HTTPServer, ServerConfig
from webbasics.handlers import hello
from webbasics.http import HTTPRequest, HTTPResponse, Router, ok


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /foo/bar?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b'{"name": "gopher"}'
    return (
        b"POST /foo HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration: OS-assigned port, small pool, short timeouts."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        read_timeout=5.0,
        write_timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs an HTTPServer in a background thread for integration tests."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        return socket.create_connection(self.address, timeout=timeout)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes on a fresh connection and read until the server closes it."""
        with self.connect(timeout) as sock:
            sock.sendall(raw)
            return recv_all(sock)

    def get(self, path: str) -> bytes:
        return self.request(
            f"GET {path} HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n".encode("latin-1")
        )


def recv_all(sock: socket.socket) -> bytes:
    """Read until EOF."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def split_response(raw: bytes) -> Tuple[str, dict, bytes]:
    """Split a raw response into (status line, lower-cased headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def calls() -> List[str]:
    """Records which handlers ran."""
    return []


@pytest.fixture
def router(calls: List[str]) -> Router:
    """The /foo → hello, /foobar → shadowed, /boom → raises table."""
    router = Router()
    router.add("/foo", hello)

    def shadowed(request: HTTPRequest) -> HTTPResponse:
        calls.append("shadowed")
        return ok("shadowed")

    def boom(request: HTTPRequest) -> HTTPResponse:
        raise RuntimeError("handler exploded")

    router.add("/foobar", shadowed)
    router.add("/boom", boom)
    return router


@pytest.fixture
def running_server(router: Router, config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A real server on an OS-assigned port, stopped after the test."""
    server_thread = ServerThread(HTTPServer(router, config))
    server_thread.start()

    yield server_thread

    server_thread.stop()
