"""
=============================================================================
WEBBASICS
=============================================================================

Web programming basics on top of raw sockets: a threaded HTTP/1.1 server,
a first-match prefix router, a hello-world handler and layered
configuration. Each piece is small enough to read in one sitting.

=============================================================================
QUICK START
=============================================================================

    from webbasics import HTTPServer, Router, ServerConfig
    from webbasics.handlers import hello

    router = Router()
    router.add("/foo", hello)

    HTTPServer(router, ServerConfig(port=3000)).run()

    $ curl localhost:3000/foo/bar
    Hello, "/foo/bar"
    $ curl localhost:3000/baz
    404 page not found

Or from the shell:

    python -m webbasics --route /foo --port 3000

=============================================================================
PACKAGE LAYOUT
=============================================================================

    config.py      ServerConfig: defaults → JSON file → env → CLI
    server.py      HTTPServer: connections, workers, error mapping
    core/          sockets, connections, thread pool, read-write lock
    http/          request parsing, responses, status codes, Router
    middleware/    pipeline + access logging
    handlers/      hello

=============================================================================
"""

__version__ = "1.0.0"

from .config import ConfigError, ServerConfig
from .http import HTTPRequest, HTTPResponse, HTTPStatus, Route, Router
from .server import HTTPServer

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "ConfigError",
    "Router",
    "Route",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "__version__",
]
