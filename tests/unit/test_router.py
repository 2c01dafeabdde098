"""
Unit tests for the prefix router.
"""

import logging
import threading
from typing import List

import pytest

from webbasics.handlers import hello
from webbasics.http.request import HTTPRequest
from webbasics.http.response import HTTPResponse, ok
from webbasics.http.router import NOT_FOUND_MESSAGE, Route, Router
from webbasics.http.status_codes import HTTPStatus


def make_request(path: str, method: str = "GET") -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def recording_handler(name: str, calls: List[str]):
    """Handler that records its name when invoked and answers with it."""
    def handler(request: HTTPRequest) -> HTTPResponse:
        calls.append(name)
        return ok(name)
    handler.__qualname__ = name
    return handler


class TestRoute:
    """Tests for Route."""

    def test_prefix_match(self):
        """Test plain string prefix matching."""
        route = Route("/foo", hello)

        assert route.matches("/foo")
        assert route.matches("/foo/")
        assert route.matches("/foo/bar")
        assert route.matches("/foobar")

    def test_no_match(self):
        """Test paths the prefix is not a prefix of."""
        route = Route("/foo", hello)

        assert not route.matches("/fo")
        assert not route.matches("/bar/foo")
        assert not route.matches("")

    def test_case_sensitive(self):
        """Test that matching is case-sensitive."""
        route = Route("/foo", hello)

        assert not route.matches("/Foo")
        assert not route.matches("/FOO/bar")

    def test_empty_prefix_matches_everything(self):
        """Test that the empty prefix matches any path."""
        route = Route("", hello)

        assert route.matches("")
        assert route.matches("/")
        assert route.matches("/anything/at/all")

    def test_frozen(self):
        """Test that routes can't be changed after creation."""
        route = Route("/foo", hello)

        with pytest.raises(AttributeError):
            route.prefix = "/bar"


class TestRouterRegistration:
    """Tests for Router.add and Router.route."""

    def test_new_router_is_empty(self):
        """Test that a new router has no routes."""
        router = Router()

        assert len(router) == 0
        assert router.routes() == []

    def test_add_appends_in_order(self):
        """Test that routes keep registration order."""
        router = Router()
        router.add("/b", hello)
        router.add("/a", hello)
        router.add("", hello)

        assert [r.prefix for r in router.routes()] == ["/b", "/a", ""]

    def test_add_returns_route(self):
        """Test that add returns the registered Route."""
        router = Router()
        route = router.add("/foo", hello)

        assert route == Route("/foo", hello)
        assert router.routes() == [route]

    def test_duplicate_prefixes_are_kept(self):
        """Test that registering the same prefix twice keeps both entries."""
        router = Router()
        router.add("/foo", hello)
        router.add("/foo", hello)

        assert len(router) == 2

    def test_non_callable_handler_rejected(self):
        """Test that a handler must be callable."""
        router = Router()

        with pytest.raises(TypeError):
            router.add("/foo", "not a handler")
        assert len(router) == 0

    def test_route_decorator(self):
        """Test the decorator form."""
        router = Router()

        @router.route("/deco")
        def handler(request):
            return ok("decorated")

        assert router.routes() == [Route("/deco", handler)]
        # The decorator hands the function back unchanged
        assert handler(make_request("/deco")).text == "decorated"

    def test_routes_is_a_snapshot(self):
        """Test that mutating the returned list doesn't touch the router."""
        router = Router()
        router.add("/foo", hello)

        snapshot = router.routes()
        snapshot.clear()

        assert len(router) == 1

    def test_registration_logged(self, caplog):
        """Test that registration is logged at DEBUG."""
        caplog.set_level(logging.DEBUG, logger="webbasics.http.router")
        router = Router()
        router.add("/foo", hello)

        assert "'/foo'" in caplog.text
        assert "hello" in caplog.text


class TestRouterDispatch:
    """Tests for Router.handle."""

    def test_first_registered_wins(self):
        """Test /foo then /foobar: /foobar goes to /foo's handler."""
        calls: List[str] = []
        router = Router()
        router.add("/foo", recording_handler("A", calls))
        router.add("/foobar", recording_handler("B", calls))

        response = router.handle(make_request("/foobar"))

        assert response.text == "A"
        assert calls == ["A"]

    def test_later_route_used_when_earlier_does_not_match(self):
        """Test that the scan continues past non-matching routes."""
        calls: List[str] = []
        router = Router()
        router.add("/foobar", recording_handler("B", calls))
        router.add("/foo", recording_handler("A", calls))

        assert router.handle(make_request("/foobar")).text == "B"
        assert router.handle(make_request("/foo/x")).text == "A"
        assert calls == ["B", "A"]

    def test_exact_path_matches(self):
        """Test that a path equal to the prefix matches."""
        calls: List[str] = []
        router = Router()
        router.add("/foo", recording_handler("A", calls))

        assert router.handle(make_request("/foo")).status == HTTPStatus.OK
        assert calls == ["A"]

    def test_no_match_returns_404(self):
        """Test the not-found fallback."""
        calls: List[str] = []
        router = Router()
        router.add("/foo", recording_handler("A", calls))
        router.add("/foobar", recording_handler("B", calls))

        response = router.handle(make_request("/baz"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert calls == []

    def test_empty_router_returns_404(self):
        """Test that an empty router answers 404 to everything."""
        response = Router().handle(make_request("/"))

        assert response.status == 404
        assert response.text == NOT_FOUND_MESSAGE

    def test_empty_prefix_is_catch_all(self):
        """Test that "" catches whatever earlier routes don't."""
        calls: List[str] = []
        router = Router()
        router.add("/foo", recording_handler("A", calls))
        router.add("", recording_handler("ALL", calls))

        assert router.handle(make_request("/foo/1")).text == "A"
        assert router.handle(make_request("/other")).text == "ALL"
        assert router.handle(make_request("/")).text == "ALL"
        assert calls == ["A", "ALL", "ALL"]

    def test_empty_prefix_first_shadows_everything(self):
        """Test that a leading "" route makes later routes unreachable."""
        calls: List[str] = []
        router = Router()
        router.add("", recording_handler("ALL", calls))
        router.add("/foo", recording_handler("A", calls))

        assert router.handle(make_request("/foo")).text == "ALL"
        assert calls == ["ALL"]

    def test_case_sensitive_dispatch(self):
        """Test that /Foo doesn't reach the /foo handler."""
        calls: List[str] = []
        router = Router()
        router.add("/foo", recording_handler("A", calls))

        assert router.handle(make_request("/Foo")).status == HTTPStatus.NOT_FOUND
        assert calls == []

    def test_method_is_ignored(self):
        """Test that routing looks at the path only."""
        calls: List[str] = []
        router = Router()
        router.add("/foo", recording_handler("A", calls))

        for method in ("GET", "POST", "DELETE"):
            assert router.handle(make_request("/foo", method)).text == "A"
        assert calls == ["A", "A", "A"]

    def test_handler_response_returned_unmodified(self):
        """Test that the handler's response object is passed straight through."""
        expected = HTTPResponse(status=HTTPStatus.FOUND, headers={"Location": "/x"})
        router = Router()
        router.add("/r", lambda request: expected)

        assert router.handle(make_request("/r")) is expected

    def test_handler_exception_propagates(self):
        """Test that handler errors are not swallowed by the router."""
        def boom(request):
            raise ValueError("boom")

        router = Router()
        router.add("/boom", boom)

        with pytest.raises(ValueError, match="boom"):
            router.handle(make_request("/boom"))

    def test_router_is_callable(self):
        """Test that router(request) is the same as router.handle(request)."""
        router = Router()
        router.add("/foo", hello)

        assert router(make_request("/foo")).text == 'Hello, "/foo"'
        assert router(make_request("/nope")).status == HTTPStatus.NOT_FOUND

    def test_nested_router(self):
        """Test mounting a Router inside another Router."""
        inner = Router()
        inner.add("/api/v1", lambda request: ok("v1"))

        outer = Router()
        outer.add("/api", inner)

        assert outer(make_request("/api/v1/users")).text == "v1"
        assert outer(make_request("/api/v2")).status == HTTPStatus.NOT_FOUND

    def test_not_found_logged(self, caplog):
        """Test that a miss is logged at DEBUG."""
        caplog.set_level(logging.DEBUG, logger="webbasics.http.router")
        Router().handle(make_request("/missing"))

        assert "No route for '/missing'" in caplog.text

    def test_print_routes(self, capsys):
        """Test the route table printout."""
        router = Router()
        router.add("/foo", hello)
        router.add("", hello)

        router.print_routes()
        out = capsys.readouterr().out

        assert "1. /foo" in out
        assert "2. (empty)" in out
        assert "hello" in out


class TestRouterConcurrency:
    """Tests for concurrent dispatch and registration."""

    def test_concurrent_dispatch_is_consistent(self):
        """Test that identical paths get identical decisions across threads."""
        router = Router()
        router.add("/foo", lambda request: ok("A"))
        router.add("/foobar", lambda request: ok("B"))
        router.add("/baz", lambda request: ok("C"))

        paths = ["/foobar", "/foo", "/baz/1", "/nope"] * 50
        expected = [router.handle(make_request(p)).text for p in paths]
        results = {}

        def worker(index: int):
            results[index] = [router.handle(make_request(p)).text for p in paths]

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(results) == 8
        assert all(result == expected for result in results.values())

    def test_concurrent_registration_loses_nothing(self):
        """Test that parallel add() calls all land in the table."""
        router = Router()

        def register(worker_id: int):
            for i in range(50):
                router.add(f"/w{worker_id}/r{i}", hello)

        threads = [threading.Thread(target=register, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(router) == 400
        # Per-thread order is preserved
        for w in range(8):
            prefixes = [r.prefix for r in router.routes() if r.prefix.startswith(f"/w{w}/")]
            assert prefixes == [f"/w{w}/r{i}" for i in range(50)]

    def test_dispatch_during_registration(self):
        """Test that dispatch keeps working while routes are being added."""
        router = Router()
        router.add("/stable", lambda request: ok("stable"))
        errors = []
        done = threading.Event()

        def dispatch():
            while not done.is_set():
                try:
                    assert router.handle(make_request("/stable/x")).text == "stable"
                except Exception as e:  # pragma: no cover - reported below
                    errors.append(e)
                    return

        readers = [threading.Thread(target=dispatch) for _ in range(4)]
        for t in readers:
            t.start()
        for i in range(200):
            router.add(f"/dynamic/{i}", hello)
        done.set()
        for t in readers:
            t.join(timeout=10)

        assert errors == []
        assert router.handle(make_request("/dynamic/199")).text == 'Hello, "/dynamic/199"'

    def test_handler_may_register_routes(self):
        """Test that a handler can call add() without deadlocking."""
        router = Router()

        def registrar(request):
            router.add("/added", lambda r: ok("added later"))
            return ok("registered")

        router.add("/register", registrar)

        result = {}
        thread = threading.Thread(
            target=lambda: result.setdefault("response", router.handle(make_request("/register")))
        )
        thread.start()
        thread.join(timeout=5)

        assert not thread.is_alive(), "handler deadlocked registering a route"
        assert result["response"].text == "registered"
        assert router.handle(make_request("/added")).text == "added later"

    def test_slow_handler_does_not_block_registration(self):
        """Test that the lock is released before the handler runs."""
        router = Router()
        entered = threading.Event()
        release = threading.Event()

        def slow(request):
            entered.set()
            release.wait(5)
            return ok("slow")

        router.add("/slow", slow)
        thread = threading.Thread(target=router.handle, args=(make_request("/slow"),))
        thread.start()
        try:
            assert entered.wait(5)
            # Would block forever if the read lock were still held
            adder = threading.Thread(target=router.add, args=("/new", hello))
            adder.start()
            adder.join(timeout=2)
            assert not adder.is_alive()
            assert len(router) == 2
        finally:
            release.set()
            thread.join(timeout=5)
