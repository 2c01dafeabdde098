"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them to bytes for the socket.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 404 Not Found\r\n              ← status line              │
    │   Content-Type: text/plain; charset=utf-8\r\n                        │
    │   X-Content-Type-Options: nosniff\r\n                                │
    │   Content-Length: 18\r\n                  ← added by to_bytes()      │
    │   Date: Mon, 19 Oct 2026 09:00:00 GMT\r\n ← added by to_bytes()      │
    │   Server: webbasics/1.0\r\n               ← added by to_bytes()      │
    │   \r\n                                                               │
    │   404 page not found                      ← body                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers build an HTTPResponse (directly, through ResponseBuilder, or
with one of the helpers at the bottom of this module) and return it. The
server calls to_bytes() and writes the result to the connection.

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be sent.

    Header names keep the case they were set with; the framing headers
    (Content-Length, Date, Server) are only filled in at serialization
    time and never overwrite a value a handler set explicitly.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK" """
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (tests and logging)."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body, encoding str as UTF-8."""
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self, server_name: str = "webbasics/1.0", include_body: bool = True) -> bytes:
        """
        Serialize to wire format.

        Content-Length is always sent so the client knows where the body
        ends on a keep-alive connection. For a HEAD request pass
        include_body=False: the headers still describe the full body, but
        no body bytes follow.
        """
        headers = dict(self.headers)
        headers.setdefault("Content-Length", str(len(self.body)))
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        head = "\r\n".join(lines) + "\r\n\r\n"

        if not include_body:
            return head.encode("latin-1")
        return head.encode("latin-1") + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Cache-Control", "no-store")
            .text("Hello")
            .build())

    Every method returns the builder, build() returns the response.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        """Plain-text body."""
        return self.content_type(content_type).body(text)

    def html(self, html: str) -> "ResponseBuilder":
        """HTML body."""
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """JSON body, compact unless pretty=True."""
        if pretty:
            encoded = json.dumps(data, indent=2, ensure_ascii=False)
        else:
            encoded = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        return self.text(encoded, "application/json; charset=utf-8")

    def close_connection(self) -> "ResponseBuilder":
        """Tell the client this connection closes after the response."""
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=dict(self._headers), body=self._body)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

    Always GMT, always English day and month names, whatever the locale:
    "Mon, 19 Oct 2026 09:00:00 GMT".
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK with the body type guessed from the value:
    dict/list → JSON, str → text/plain, bytes → as given.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)
    return builder.build()


def plain_error(status: HTTPStatus, message: str) -> HTTPResponse:
    """
    Plain-text error response.

    The nosniff header stops browsers from guessing a different content
    type for the message and rendering it as HTML.
    """
    return (ResponseBuilder()
        .status(status)
        .header("X-Content-Type-Options", "nosniff")
        .text(message)
        .build())


def not_found(message: str = "404 page not found") -> HTTPResponse:
    """404 Not Found, plain text."""
    return plain_error(HTTPStatus.NOT_FOUND, message)


def error_json(status: HTTPStatus, message: str) -> HTTPResponse:
    """{"error": message} with the given status."""
    return ResponseBuilder().status(status).json({"error": message}).build()


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500, JSON body. Keep the message generic; details belong in the log."""
    return error_json(HTTPStatus.INTERNAL_SERVER_ERROR, message)
