"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between "bytes arrived on a socket" and "bytes go back out":

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP Request-Response Cycle                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   raw bytes ──► RequestParser ──► HTTPRequest                        │
    │                                        │                             │
    │                                        ▼                             │
    │                                     Router  (first matching prefix)  │
    │                                        │                             │
    │                                        ▼                             │
    │                                     handler(request)                 │
    │                                        │                             │
    │                                        ▼                             │
    │   raw bytes ◄── to_bytes() ◄──── HTTPResponse                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    request.py       HTTPRequest, RequestParser, HTTPParseError
    response.py      HTTPResponse, ResponseBuilder, helpers
    router.py        Router, Route (prefix routing)
    status_codes.py  HTTPStatus

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,               # 200 OK
    plain_error,      # any status, text/plain
    not_found,        # 404 Not Found
    error_json,       # any status, {"error": ...}
    internal_error,   # 500 Internal Server Error
)
from .router import Router, Route, Handler
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "plain_error",
    "not_found",
    "error_json",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "Handler",

    # Status codes
    "HTTPStatus",
]
