"""
=============================================================================
REQUEST HANDLERS
=============================================================================

Ready-made handlers to mount on a Router.

A handler is any callable with the signature:

    def handler(request: HTTPRequest) -> HTTPResponse

No base class, no registration magic. Functions, bound methods and
Router instances all fit.

    hello   Greets the caller and echoes the request path.

=============================================================================
"""

from .hello import escape_html, hello, quote

__all__ = ["escape_html", "hello", "quote"]
