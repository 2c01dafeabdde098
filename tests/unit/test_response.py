"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from webbasics.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_json,
    format_http_date,
    internal_error,
    not_found,
    ok,
    plain_error,
)
from webbasics.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_status_line_accepts_plain_int(self):
        """Test that a plain int status still gets its phrase."""
        assert HTTPResponse(status=503).status_line == "HTTP/1.1 503 Service Unavailable"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: webbasics/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_without_body(self):
        """Test that include_body=False keeps the real Content-Length but drops the body."""
        response = HTTPResponse(body=b"hello")

        result = response.to_bytes(include_body=False)

        assert b"Content-Length: 5\r\n" in result
        assert result.endswith(b"\r\n\r\n")
        assert b"hello" not in result

    def test_to_bytes_keeps_explicit_headers(self):
        """Test that framing headers set by a handler are not overwritten."""
        response = HTTPResponse(headers={"Server": "custom"}, body=b"x")

        result = response.to_bytes(server_name="ignored")

        assert b"Server: custom\r\n" in result
        assert b"ignored" not in result

    def test_to_bytes_does_not_mutate_headers(self):
        """Test that serialization leaves the response's own headers alone."""
        response = HTTPResponse(body=b"x")
        response.to_bytes()

        assert response.headers == {}

    def test_set_header_chaining(self):
        """Test chained setters."""
        response = HTTPResponse().set_header("A", "1").set_header("B", "2").set_body("hé")

        assert response.headers == {"A": "1", "B": "2"}
        assert response.body == "hé".encode("utf-8")
        assert response.text == "hé"


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_status(self):
        """Test setting the status."""
        response = ResponseBuilder().status(HTTPStatus.FOUND).build()

        assert response.status == 302

    def test_text_body(self):
        """Test a plain-text body."""
        response = ResponseBuilder().text("hello").build()

        assert response.body == b"hello"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_html_body(self):
        """Test an HTML body."""
        response = ResponseBuilder().html("<p>hi</p>").build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_json_body(self):
        """Test a JSON body."""
        response = ResponseBuilder().json({"a": 1, "b": [1, 2]}).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert response.body == b'{"a":1,"b":[1,2]}'

    def test_json_pretty(self):
        """Test indented JSON."""
        response = ResponseBuilder().json({"a": 1}, pretty=True).build()

        assert json.loads(response.body) == {"a": 1}
        assert b"\n" in response.body

    def test_close_connection(self):
        """Test the Connection: close helper."""
        assert ResponseBuilder().close_connection().build().headers["Connection"] == "close"

    def test_builds_independent_responses(self):
        """Test that two builds don't share a headers dict."""
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.set_header("X-B", "2")

        assert "X-B" not in builder.build().headers


class TestConvenienceFunctions:
    """Tests for helper constructors."""

    def test_ok_text(self):
        """Test ok() with a string."""
        response = ok("hi")

        assert response.status == HTTPStatus.OK
        assert response.text == "hi"
        assert response.headers["Content-Type"].startswith("text/plain")

    def test_ok_json(self):
        """Test ok() with a dict."""
        response = ok({"x": 1})

        assert json.loads(response.body) == {"x": 1}
        assert response.headers["Content-Type"].startswith("application/json")

    def test_ok_bytes(self):
        """Test ok() with raw bytes and an explicit type."""
        response = ok(b"\x89PNG", content_type="image/png")

        assert response.body == b"\x89PNG"
        assert response.headers["Content-Type"] == "image/png"

    def test_not_found(self):
        """Test the default 404."""
        response = not_found()

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_plain_error(self):
        """Test a plain-text error with any status."""
        response = plain_error(HTTPStatus.BAD_REQUEST, "nope")

        assert response.status == 400
        assert response.text == "nope"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_error_json(self):
        """Test a JSON error body."""
        response = error_json(HTTPStatus.SERVICE_UNAVAILABLE, "busy")

        assert response.status == 503
        assert json.loads(response.body) == {"error": "busy"}

    def test_internal_error(self):
        """Test the generic 500."""
        response = internal_error()

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Internal Server Error"}


class TestHTTPStatus:
    """Tests for HTTPStatus."""

    @pytest.mark.parametrize("status, phrase", [
        (HTTPStatus.OK, "OK"),
        (HTTPStatus.NOT_FOUND, "Not Found"),
        (HTTPStatus.REQUEST_TIMEOUT, "Request Timeout"),
        (HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"),
        (HTTPStatus.HTTP_VERSION_NOT_SUPPORTED, "HTTP Version Not Supported"),
    ])
    def test_status_phrases(self, status, phrase):
        """Test reason phrases."""
        assert status.phrase == phrase

    def test_status_categories(self):
        """Test the category helpers."""
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert not HTTPStatus.NOT_FOUND.is_server_error
        assert HTTPStatus.SERVICE_UNAVAILABLE.is_server_error

    def test_compares_with_int(self):
        """Test IntEnum equality."""
        assert HTTPStatus.NOT_FOUND == 404


class TestFormatHTTPDate:
    """Tests for format_http_date."""

    def test_format(self):
        """Test RFC 7231 formatting."""
        dt = datetime(2026, 10, 19, 9, 5, 3, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Mon, 19 Oct 2026 09:05:03 GMT"

    def test_converts_to_gmt(self):
        """Test that other time zones are converted."""
        dt = datetime(2026, 10, 19, 11, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_http_date(dt) == "Mon, 19 Oct 2026 09:00:00 GMT"
