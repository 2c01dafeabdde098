"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request on the "webbasics.access" logger, in one of
two formats:

    text (default, Apache-like):

        127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "GET /foo" 200 13 0.42ms

    json (for log aggregators):

        {"request_id": "a1b2c3d4", "method": "GET", "path": "/foo",
         "client_ip": "127.0.0.1", "status_code": 200, ...}

Every response also gets an X-Request-ID header carrying the same id as
the log line, so a client can quote it in a bug report.

Route the access log somewhere of its own with plain logging config:

    logging.getLogger("webbasics.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


logger = logging.getLogger("webbasics.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with timing and request ids.

    Put it first in the pipeline so its timing covers everything after it.

    Args:
        log_format: "text" or "json".
        include_request_id: Set X-Request-ID on responses.
        log_level: Level access lines are logged at.
        skip_paths: Exact paths not to log (health probes and the like).
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=_format_query(request),
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response


def _format_query(request: HTTPRequest) -> str:
    return "&".join(
        f"{name}={value}"
        for name, values in request.query_params.items()
        for value in values
    )
