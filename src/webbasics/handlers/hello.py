"""
=============================================================================
HELLO HANDLER
=============================================================================

The "hello world" of web programming: answer every request with a
greeting that echoes the path back.

    $ curl http://localhost:3000/world
    Hello, "/world"

    $ curl 'http://localhost:3000/<script>'
    Hello, "/&lt;script&gt;"

Two things happen to the path before it is echoed:

1. HTML-ESCAPED: anything a browser could treat as markup (< > & " ')
   becomes an entity. Echoing raw input is how reflected XSS happens,
   even when the content type says text/plain.

2. QUOTED: wrapped in double quotes with backslash escapes for
   quotes, backslashes and non-printable characters, so a stray newline
   or control byte in the URL shows up as "\\n" instead of breaking the
   output.

=============================================================================
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


# Quotes become numeric entities (&#34; &#39;), not &quot; / &#x27;.
_HTML_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&#34;",
    "'": "&#39;",
})

_SHORT_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def escape_html(text: str) -> str:
    """Replace the five HTML-special characters with numeric or named entities."""
    return text.translate(_HTML_ESCAPES)


def quote(text: str) -> str:
    """
    Double-quoted string literal for text.

        say "hi"<newline>   →   "say \\"hi\\"\\n"

    Printable characters (including non-ASCII letters) are kept as-is.
    """
    parts = ['"']
    for ch in text:
        if ch in _SHORT_ESCAPES:
            parts.append(_SHORT_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        elif ord(ch) < 0x80:
            parts.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(f"\\U{ord(ch):08x}")
    parts.append('"')
    return "".join(parts)


def hello(request: HTTPRequest) -> HTTPResponse:
    """Say hello and echo the (escaped, quoted) request path."""
    return ok(f"Hello, {quote(escape_html(request.path))}")
