"""Tests for perch.routing.router: registration and resolution outcomes."""

import pytest

from perch.errors import (
    ConfigurationError,
    DuplicateRouteName,
    HTTPError,
    MethodNotAllowed,
    NotFound,
)
from perch.routing.route import RouteMatch
from perch.routing.router import Router


def _show() -> str:
    return "show"


def _other() -> str:
    return "other"


class TestResolveMatch:
    def test_match_with_attributes(self) -> None:
        router = Router()
        route = router.get("/user/:id", _show)
        outcome = router.resolve("GET", "/user/42")
        assert isinstance(outcome, RouteMatch)
        assert outcome.route is route
        assert outcome.attributes == {"id": "42"}

    def test_exact_beats_pattern(self) -> None:
        router = Router()
        router.get("/user/:id", _show)
        me = router.get("/user/me", _other)
        outcome = router.resolve("GET", "/user/me")
        assert isinstance(outcome, RouteMatch)
        assert outcome.route is me

    def test_first_pattern_wins(self) -> None:
        router = Router()
        first = router.get("/a/:x", _show)
        router.get("/b/:y", _other)
        router.get("/a/:z", _other)
        outcome = router.resolve("GET", "/a/1")
        assert isinstance(outcome, RouteMatch)
        assert outcome.route is first
        assert outcome.attributes == {"x": "1"}

    def test_lowercase_method(self) -> None:
        router = Router()
        router.register("get", "/a", _show)
        assert isinstance(router.resolve("get", "/a"), RouteMatch)

    def test_head_and_options_find_route(self) -> None:
        router = Router()
        route = router.get("/a", _show)
        for method in ("HEAD", "OPTIONS"):
            outcome = router.resolve(method, "/a")
            assert isinstance(outcome, RouteMatch)
            assert outcome.route is route

    def test_patch_bucket(self) -> None:
        router = Router()
        router.patch("/a", _show)
        assert isinstance(router.resolve("PATCH", "/a"), RouteMatch)


class TestResolveErrors:
    def test_method_not_allowed(self) -> None:
        router = Router()
        router.get("/a", _show)
        outcome = router.resolve("POST", "/a")
        assert isinstance(outcome, MethodNotAllowed)
        assert outcome.status == 405
        assert dict(outcome.headers) == {"Allow": "GET, HEAD, OPTIONS"}

    def test_not_found(self) -> None:
        router = Router()
        router.get("/a", _show)
        outcome = router.resolve("GET", "/missing")
        assert isinstance(outcome, NotFound)
        assert outcome.status == 404
        assert "/missing" in outcome.detail

    def test_custom_not_found_instance(self) -> None:
        gone = HTTPError(410, "gone")
        router = Router().not_found(gone)
        assert router.resolve("GET", "/x") is gone

    def test_custom_not_found_class(self) -> None:
        router = Router().not_found(LookupError)
        assert isinstance(router.resolve("GET", "/x"), LookupError)

    def test_custom_method_not_allowed(self) -> None:
        router = Router().method_not_allowed(HTTPError(405, "nope"))
        router.get("/a", _show)
        outcome = router.resolve("DELETE", "/a")
        assert isinstance(outcome, HTTPError)
        assert outcome.detail == "nope"

    def test_invalid_error_spec(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown class"):
            Router().not_found("not an error")  # type: ignore[arg-type]


class TestRegistration:
    def test_uri_canonicalized(self) -> None:
        assert Router().get("/users/", _show).uri == "/users"

    def test_single_middleware_wrapped(self) -> None:
        def mw(request, next):
            return next(request)

        route = Router().get("/a", _show, mw)
        assert route.middlewares == (mw,)

    def test_duplicate_name(self) -> None:
        router = Router()
        router.get("/", _show, name="home")
        with pytest.raises(DuplicateRouteName) as exc_info:
            router.post("/other", _other, name="home")
        assert str(exc_info.value) == (
            "Route name `home` has already been used for route `GET /`"
        )

    def test_duplicate_name_is_configuration_error(self) -> None:
        router = Router()
        router.get("/", _show, name="home")
        with pytest.raises(ConfigurationError):
            router.get("/b", _show, name="home")

    def test_unnamed_routes_never_collide(self) -> None:
        router = Router()
        router.get("/a", _show)
        router.post("/a", _other)
        assert len(router.routes) == 2

    def test_routes_listed_once(self) -> None:
        router = Router()
        a = router.get("/a", _show)
        b = router.put("/b", _other)
        assert router.routes == [a, b]

    def test_frozen_rejects_registration(self) -> None:
        router = Router()
        router.freeze()
        with pytest.raises(ConfigurationError):
            router.get("/a", _show)


class TestIntrospection:
    def test_allowed_methods_union(self) -> None:
        router = Router()
        router.get("/a", _show)
        router.post("/a", _other)
        assert router.allowed_methods("/a") == frozenset({"GET", "POST", "HEAD", "OPTIONS"})

    def test_allowed_methods_unknown_path(self) -> None:
        assert Router().allowed_methods("/nope") == frozenset()

    def test_url_for_named(self) -> None:
        router = Router()
        router.get("/user/:id", _show, name="user.show")
        assert router.url_for("user.show", id=7) == "/user/7"

    def test_url_for_default_name(self) -> None:
        router = Router()
        router.get("/user/:id", _show)
        assert router.url_for("/user/:id", id=3) == "/user/3"

    def test_url_for_unknown(self) -> None:
        with pytest.raises(KeyError):
            Router().url_for("nope")
