"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this toolkit actually sends, grouped by class:

    1xx  Informational   (none sent here)
    2xx  Success         200 OK
    3xx  Redirection     301, 302, 304
    4xx  Client error    400, 404, 405, 408, 413
    5xx  Server error    500, 501, 503, 505

The first digit is all a client strictly needs to understand; the reason
phrase ("Not Found") is for humans reading the status line.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with their reason phrases.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200

    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

        Derived from the member name: NOT_FOUND -> "Not Found".
        A few phrases don't follow the naming rule and are listed
        explicitly.
        """
        special = {
            HTTPStatus.OK: "OK",
            HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
        }
        if self in special:
            return special[self]
        return self.name.replace("_", " ").title()

    @property
    def is_success(self) -> bool:
        """2xx"""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """4xx: the request was wrong."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """5xx: the server failed a valid request."""
        return 500 <= self < 600
