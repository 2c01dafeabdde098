"""
=============================================================================
CLIENT CONNECTIONS
=============================================================================

One accepted TCP socket, wrapped so the HTTP layer can ask for "the next
request" and "send this response" instead of juggling recv() calls.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever the kernel has, not "one message":

    Client sends:     "GET / HTTP/1.1\r\nHost: x\r\n\r\n"

    Server may see:   recv() → "GET / HT"
                      recv() → "TP/1.1\r\nHost: x\r\n\r\n"

So bytes are buffered until the blank line that ends the headers shows
up, then Content-Length more bytes are read for the body. Anything past
that belongs to the NEXT request (pipelining) and stays in the buffer.

=============================================================================
TIMEOUTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   phase                      timeout              on expiry         │
    ├─────────────────────────────────────────────────────────────────────┤
    │   first request              read_timeout         TimeoutError      │
    │   later requests (idle)      keep_alive_timeout   None (just close) │
    │   sending a response         write_timeout        send fails        │
    └─────────────────────────────────────────────────────────────────────┘

A client that connects and says nothing is misbehaving (→ 408). A
keep-alive client that goes quiet is simply done.

=============================================================================
STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
             ▲                                                   │
             └───────────────────────────────────────────────────┘
    any state ──► CLOSING ──► CLOSED

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"

# Upper bound on draining unread client bytes in close()
DRAIN_TIMEOUT = 0.5


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


class ConnectionState(Enum):
    """Where a connection is in its lifecycle (for logs and debugging)."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection with buffered reads and phase-specific timeouts.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port).
        id: Short random id used to correlate log lines.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    read_timeout: float = 30.0
    write_timeout: float = 60.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.read_timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (headers + body) from the socket.

        Returns:
            The raw request bytes, or None when the client closed the
            connection or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request didn't arrive within read_timeout.
            RequestTooLarge: The request exceeded max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # HEADERS: buffer until the blank line
            # ─────────────────────────────────────────────────────────────
            while HEADER_TERMINATOR not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            # Once the first byte of a request is here, the rest of it
            # gets the full read timeout, not the keep-alive one.
            self.socket.settimeout(self.read_timeout)

            header_end = self._buffer.find(HEADER_TERMINATOR)
            body_start = header_end + len(HEADER_TERMINATOR)
            content_length = _content_length(self._buffer[:header_end])

            # ─────────────────────────────────────────────────────────────
            # BODY: exactly Content-Length bytes
            # ─────────────────────────────────────────────────────────────
            # A short body is handed on as-is; the parser reports it.
            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.state = ConnectionState.PROCESSING
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout") from None

        finally:
            self.socket.settimeout(self.read_timeout)

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.last_activity = time.time()
        return data

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send all of data within write_timeout.

        Returns:
            True on success, False if the client went away or stalled.
        """
        self.state = ConnectionState.WRITING
        self.socket.settimeout(self.write_timeout)
        try:
            self.socket.sendall(data)
        except socket.timeout:
            logger.warning(f"[{self.id}] Write timeout after {self.write_timeout}s")
            return False
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        finally:
            if not self.is_closed:
                self.socket.settimeout(self.read_timeout)

        self.last_activity = time.time()
        return True

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close gracefully: send FIN, drain what the client still sends, close.

        Safe to call more than once.
        """
        if self.is_closed:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _content_length(header_section: bytes) -> int:
    """
    Content-Length from raw header bytes, or 0.

    Only used to know how many body bytes to wait for. A malformed value
    reads as 0 here; RequestParser rejects it properly.
    """
    for line in header_section.split(b"\r\n")[1:]:
        name, sep, value = line.partition(b":")
        if sep and name.strip().lower() == b"content-length":
            try:
                return max(int(value.strip()), 0)
            except ValueError:
                return 0
    return 0
