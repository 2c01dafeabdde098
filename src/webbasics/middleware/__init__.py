"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

Cross-cutting behaviour wrapped around the root handler.

    server.use(LoggingMiddleware(log_format="json"))

    base.py      Middleware, MiddlewarePipeline, function_middleware
    logging.py   LoggingMiddleware (access log, X-Request-ID)

=============================================================================
"""

from .base import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
]
