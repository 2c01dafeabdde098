"""
=============================================================================
EXAMPLE: PREFIX ROUTING
=============================================================================

Mounts a few handlers on a Router to show first-match prefix routing.

    python examples/routing_server.py

    $ curl localhost:3000/foo/anything     → Hello, "/foo/anything"
    $ curl localhost:3000/foobar           → Hello, "/foobar"   (still /foo!)
    $ curl localhost:3000/time             → {"time": "..."}
    $ curl localhost:3000/nope             → 404 page not found

ROUTE TABLE (scanned top to bottom):

    1. /foo     → hello          catches /foo, /foo/x AND /foobar
    2. /foobar  → shadowed       never reached: /foo matched first
    3. /time    → current time
    4. /admin   → nested Router  a Router is itself a handler

=============================================================================
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Run from a checkout without installing
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from webbasics import HTTPServer, Router, ServerConfig
from webbasics.handlers import hello
from webbasics.http import ok
from webbasics.middleware import LoggingMiddleware


def shadowed(request):
    return ok("unreachable: /foo was registered first")


def main():
    router = Router()
    router.add("/foo", hello)
    router.add("/foobar", shadowed)

    @router.route("/time")
    def current_time(request):
        return ok({"time": datetime.now(timezone.utc).isoformat()})

    admin = Router()

    @admin.route("/admin/status")
    def status(request):
        return ok({"routes": len(router)})

    router.add("/admin", admin)

    server = HTTPServer(router, ServerConfig.load())
    server.use(LoggingMiddleware())
    server.run()


if __name__ == "__main__":
    main()
