"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes a Connection read off the socket into an HTTPRequest
that handlers (and the router) can work with.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /foo/bar?page=1 HTTP/1.1\r\n        ← request line             │
    │   ─┬─ ──────┬──────── ────┬───                                       │
    │    │        │             │                                          │
    │  method    URI         version                                       │
    │                                                                      │
    │   Host: localhost:3000\r\n                ← headers                  │
    │   User-Agent: curl/8.0\r\n                                           │
    │   Content-Length: 5\r\n                                              │
    │   \r\n                                    ← blank line               │
    │   hello                                   ← body (Content-Length)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The router only ever looks at `path`. Everything else is here so that
handlers and middleware (access logging, keep-alive) have what they need.

=============================================================================
PARSE ERRORS
=============================================================================

Each way a request can be malformed maps to a status code that the
server sends back before closing the connection:

    400 Bad Request                 request line or headers are garbage,
                                    or a bad %-escape in the path
    413 Payload Too Large           bigger than max_request_size
    501 Not Implemented             method we have never heard of
    505 HTTP Version Not Supported  anything but HTTP/1.0 and HTTP/1.1

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the HTTP status code the server should answer with, so the
    connection loop can turn it straight into a response.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lower-cased: HTTP header names are
    case-insensitive, and normalizing once at parse time saves a
    .lower() at every lookup.

    Only `method` and `path` are required, which keeps hand-built
    requests in tests short:

        HTTPRequest(method="GET", path="/foo")
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def content_length(self) -> int:
        """Content-Length as an int, 0 when missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Should the connection stay open after this request?

            HTTP/1.1: yes, unless "Connection: close"
            HTTP/1.0: no, unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or default."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    The parser is stateless apart from its size limit, so one instance is
    shared by every worker thread.
    """

    VALID_METHODS = frozenset({
        "GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "CONNECT", "TRACE",
    })
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    # METHOD SP REQUEST-TARGET SP HTTP-VERSION
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Za-z]+) (\S+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*)$")
    # "%" not followed by two hex digits
    BAD_ESCAPE_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse one complete request.

        Steps:
            1. size check
            2. split head and body at the first \\r\\n\\r\\n
            3. request line → method, path, query, version
            4. header lines → lower-cased dict
            5. body trimmed to Content-Length

        Raises:
            HTTPParseError: with the status code to reply with.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes are ASCII on the wire; latin-1 never fails to decode
        head = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = head.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", "0"))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']!r}") from None
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, Dict[str, list[str]], str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        method = method.upper()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Unknown method: {method}", status_code=501)
        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        # "/foo%20bar?page=1" → path "/foo bar", query {"page": ["1"]}
        parts = urlsplit(target)
        if self.BAD_ESCAPE_PATTERN.search(parts.path):
            raise HTTPParseError(f"Invalid URL escape in path: {parts.path!r}")
        path = unquote(parts.path) or "/"
        query_params = parse_qs(parts.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2).
        Lines that don't look like headers are skipped.
        """
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue
            name, value = match.groups()
            name = name.lower()
            value = value.strip()
            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value
        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """One-shot helper around RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
