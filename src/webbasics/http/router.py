"""
=============================================================================
PREFIX ROUTER
=============================================================================

The simplest router that is still useful: an ordered list of
(prefix, handler) pairs. A request goes to the FIRST handler whose prefix
the request path starts with. If none matches, the client gets a 404.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /foobar                                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER  (scanned top to bottom, registration order)        │   │
    │   │                                                              │   │
    │   │   1. "/foo"     → handler_a    "/foobar".startswith("/foo")  │   │
    │   │                                 ← MATCH! stop scanning        │   │
    │   │   2. "/foobar"  → handler_b    (never reached)               │   │
    │   │   3. "/baz"     → handler_c    (never reached)               │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   handler_a(request)                                                 │
    │                                                                      │
    │   GET /qux  → no prefix matches → 404 "404 page not found"          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

1. PLAIN STRING PREFIX: path.startswith(prefix)

   Prefix:  /foo
   Matches: /foo, /foo/, /foo/bar, /foobar     ← not segment-aware!
   Doesn't: /fo, /Foo, /bar/foo                ← case-sensitive

2. ORDER BEATS SPECIFICITY

   "/foo" registered before "/foobar" means /foobar goes to "/foo".
   Register the more specific prefixes FIRST if you want them to win.

3. THE EMPTY PREFIX MATCHES EVERYTHING

   Every string starts with "". Registering "" (or "/" for any absolute
   path) last gives you a catch-all; registering it first shadows every
   route after it.

=============================================================================
CONCURRENCY
=============================================================================

Worker threads call handle() concurrently while routes may still be
being added. The route list is guarded by a ReadWriteLock:

    handle()  → shared lock, only while scanning the list
    add()     → exclusive lock, only while appending one Route

The matched handler runs AFTER the shared lock is released, so a slow
handler never holds up registration, and a handler may add routes
itself without deadlocking.

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "What's the complexity of a lookup?"
A: "O(R × P): R routes, each a prefix comparison of up to P characters.
   A trie gets it to O(P), but then 'first registered wins' has to be
   tracked per node. For a handful of routes the list is faster anyway."

Q: "Why not longest-prefix match?"
A: "It's what most routers do, but it hides ordering bugs behind
   'magic'. First-match makes the table read exactly like the code that
   built it."

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..core.locks import ReadWriteLock
from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Handler: anything that turns a request into a response.
# Plain functions, bound methods, and Router instances all qualify.
Handler = Callable[[HTTPRequest], HTTPResponse]

NOT_FOUND_MESSAGE = "404 page not found"


@dataclass(frozen=True)
class Route:
    """
    A prefix bound to a handler.

    Frozen: once registered, a Route never changes. The router only ever
    appends new ones.
    """

    prefix: str
    handler: Handler

    def matches(self, path: str) -> bool:
        """Exact, case-sensitive string prefix test."""
        return path.startswith(self.prefix)


class Router:
    """
    First-match prefix router.

    =========================================================================
    USAGE
    =========================================================================

        router = Router()
        router.add("/foo", foo_handler)

        @router.route("/bar")
        def bar(request):
            return ok("bar")

        server = HTTPServer(router, config)   # the router IS a handler
        server.run()

    =========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._lock = ReadWriteLock()

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add(self, prefix: str, handler: Handler) -> Route:
        """
        Append a route to the end of the table.

        Args:
            prefix: Path prefix to match. "" matches every path.
            handler: Callable taking an HTTPRequest, returning an HTTPResponse.

        Returns:
            The registered Route.
        """
        if not callable(handler):
            raise TypeError(f"handler for {prefix!r} is not callable: {handler!r}")

        route = Route(prefix=prefix, handler=handler)
        with self._lock.write_locked():
            self._routes.append(route)
            position = len(self._routes)

        logger.debug(f"Registered route #{position}: {prefix!r} → {_handler_name(handler)}")
        return route

    def route(self, prefix: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of add().

            @router.route("/hello")
            def hello(request):
                ...

        Returns the handler unchanged so decorators can be stacked.
        """
        def decorator(handler: Handler) -> Handler:
            self.add(prefix, handler)
            return handler
        return decorator

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def match(self, path: str) -> Optional[Route]:
        """
        Find the first route whose prefix matches path.

        Holds the shared lock for the scan only.
        """
        with self._lock.read_locked():
            for route in self._routes:
                if route.matches(path):
                    return route
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        At most one handler runs. When nothing matches, no handler runs
        and a 404 with body "404 page not found" is returned.
        Exceptions raised by the handler propagate to the caller.
        """
        route = self.match(request.path)
        if route is None:
            logger.debug(f"No route for {request.path!r}")
            return not_found(NOT_FOUND_MESSAGE)
        return route.handler(request)

    # A Router is itself a Handler, so it can be the server's root handler
    # or be mounted inside another Router.
    __call__ = handle

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """Snapshot of the route table, in match order."""
        with self._lock.read_locked():
            return list(self._routes)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._routes)

    def print_routes(self) -> None:
        """
        Print the route table (shown in the server's startup banner).

        Example output:
            Registered Routes:
            ------------------------------------------------------------
              1. /foo                     → hello
              2. (empty)                  → catch_all
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for position, route in enumerate(self.routes(), start=1):
            prefix = route.prefix if route.prefix else "(empty)"
            print(f"  {position}. {prefix:24} → {_handler_name(route.handler)}")
        print("-" * 60)


def _handler_name(handler: Handler) -> str:
    """Readable name for logs: function name, or class name for instances."""
    return getattr(handler, "__qualname__", None) or type(handler).__name__


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# Route   = (prefix, handler), frozen
# Router  = ordered list of Routes behind a ReadWriteLock
#
#   add(prefix, handler)   append (exclusive lock)
#   handle(request)        first match wins (shared lock for the scan),
#                          404 "404 page not found" when nothing matches
#   router(request)        same as handle(): a Router is a Handler
#
# No removal, no re-ordering, no longest-prefix preference.
# =============================================================================
