"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps the root handler to do something before and/or after
every request, without the handlers knowing about it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► [ MW1 before ] ──► [ MW2 before ] ──► handler          │
    │                                                        │             │
    │   response ◄── [ MW1 after ] ◄── [ MW2 after ] ◄───────┘             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A middleware is called with the request and `next`, the rest of the
chain. It may return early without calling next (short-circuit), or call
next and adjust the response it gets back.

    class Timing(Middleware):
        def __call__(self, request, next):
            start = time.time()
            response = next(request)
            response.set_header("X-Elapsed", f"{time.time() - start:.3f}")
            return response

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The rest of the chain: the next middleware, or finally the handler.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """Base class: implement __call__(request, next) -> response."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle request, usually by calling next(request)."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware, first added = outermost.

        pipeline = MiddlewarePipeline().use(LoggingMiddleware(), Timing())
        handler = pipeline.wrap(router)
        # LoggingMiddleware → Timing → router
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around handler.

        Wrapped innermost-first, so for [A, B] the result is
        A(B(handler)).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = _bind(middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)
    return wrapped


class FunctionMiddleware(Middleware):
    """
    A plain function used as middleware.

        @function_middleware
        def add_header(request, next):
            response = next(request)
            response.set_header("X-Custom", "value")
            return response
    """

    def __init__(self, func: Callable[[HTTPRequest, NextHandler], HTTPResponse], name: Optional[str] = None):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[[HTTPRequest, NextHandler], HTTPResponse]) -> FunctionMiddleware:
    return FunctionMiddleware(func)
