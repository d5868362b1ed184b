"""Tests for perch.server.handler: the synchronous dispatch pipeline."""

import json

from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.http.uri import Uri
from perch.routing.router import Router
from perch.server.handler import Dispatcher, Exchange, Stage


def _request(method: str = "GET", path: str = "/") -> Request:
    return Request(method=method, uri=Uri(host="testserver", path=path))


def _user_router() -> Router:
    router = Router()
    router.get("/user/:id", lambda id: {"id": id})
    return router


class UserController:
    def show(self, id: int) -> dict:
        return {"id": id, "kind": "controller"}


class TestDispatchRouting:
    def test_handler_result_reduced(self) -> None:
        response = Dispatcher(_user_router()).dispatch(_request(path="/user/42"))
        assert response.status == 200
        assert json.loads(response.text) == {"id": "42"}

    def test_options_answers_no_content(self) -> None:
        response = Dispatcher(_user_router()).dispatch(_request("OPTIONS", "/user/42"))
        assert response.status == 204
        assert response.content == ""
        assert response.get_header("Allow") == ["GET, HEAD, OPTIONS"]

    def test_head_answers_no_content(self) -> None:
        response = Dispatcher(_user_router()).dispatch(_request("HEAD", "/user/42"))
        assert response.status == 204

    def test_wrong_method(self) -> None:
        response = Dispatcher(_user_router()).dispatch(_request("POST", "/user/42"))
        assert response.status == 405
        assert response.get_header("Allow") == ["GET, HEAD, OPTIONS"]

    def test_not_found(self) -> None:
        response = Dispatcher(_user_router()).dispatch(_request(path="/nope"))
        assert response.status == 404

    def test_explicit_options_route_runs(self) -> None:
        router = Router()
        router.register("OPTIONS", "/a", lambda: "custom options")
        response = Dispatcher(router).dispatch(_request("OPTIONS", "/a"))
        assert response.status == 200
        assert response.text == "custom options"

    def test_custom_405_gets_allow(self) -> None:
        router = _user_router().method_not_allowed(HTTPError(405, "nope"))
        response = Dispatcher(router).dispatch(_request("DELETE", "/user/1"))
        assert response.status == 405
        assert response.get_header("Allow") == ["GET, HEAD, OPTIONS"]

    def test_class_handler(self) -> None:
        router = Router()
        router.get("/user/:id", (UserController, "show"))
        response = Dispatcher(router).dispatch(_request(path="/user/7"))
        assert json.loads(response.text) == {"id": 7, "kind": "controller"}


class TestDispatchResults:
    def test_handler_exception_is_500(self) -> None:
        router = Router()

        def broken() -> str:
            raise RuntimeError("boom")

        router.get("/", broken)
        assert Dispatcher(router).dispatch(_request()).status == 500

    def test_handler_http_error(self) -> None:
        router = Router()

        def forbidden() -> str:
            raise HTTPError(403, "no")

        router.get("/", forbidden)
        assert Dispatcher(router).dispatch(_request()).status == 403

    def test_unencodable_header_is_500(self) -> None:
        router = Router()
        router.get("/", lambda response: response.with_header("X-Name", "日本"))
        assert Dispatcher(router).dispatch(_request()).status == 500

    def test_none_result_is_500(self) -> None:
        router = Router()
        router.get("/", lambda: None)
        assert Dispatcher(router).dispatch(_request()).status == 500

    def test_response_injected_and_returned(self) -> None:
        router = Router()
        router.get("/", lambda response: response.with_status(201).with_content("made"))
        response = Dispatcher(router).dispatch(_request())
        assert response.status == 201
        assert response.text == "made"

    def test_seed_with_content_wins(self) -> None:
        router = Router()
        router.get("/", lambda: {"ignored": True})
        seed = Response(content="seeded")
        assert Dispatcher(router).dispatch(_request(), seed=seed).text == "seeded"

    def test_seed_headers_reach_response(self) -> None:
        router = Router()
        router.get("/", lambda: "ok")
        seed = Response().with_header("X-Request-Id", "abc")
        response = Dispatcher(router).dispatch(_request(), seed=seed)
        assert response.get_header("X-Request-Id") == ["abc"]


class TestDispatchMiddleware:
    def test_app_middleware_order(self) -> None:
        def outer(request, next):
            return next(request).with_added_header("X-Order", "outer")

        def inner(request, next):
            return next(request).with_added_header("X-Order", "inner")

        router = Router()
        router.get("/", lambda: "ok")
        response = Dispatcher(router, middleware=(outer, inner)).dispatch(_request())
        assert response.get_header("X-Order") == ["inner", "outer"]

    def test_middleware_attribute_reaches_handler(self) -> None:
        def auth(request, next):
            return next(request.with_attribute("user", "ada"))

        router = Router()
        router.get("/user/:id", lambda request: f"{request.get_attribute('user')}:{request.id}")
        response = Dispatcher(router, middleware=(auth,)).dispatch(_request(path="/user/3"))
        assert response.text == "ada:3"

    def test_route_middleware(self) -> None:
        def tag(request, next):
            return next(request).with_header("X-Route", "yes")

        router = Router()
        router.get("/", lambda: "ok").middleware(tag)
        router.get("/other", lambda: "ok")
        dispatcher = Dispatcher(router)
        assert dispatcher.dispatch(_request()).get_header("X-Route") == ["yes"]
        assert not dispatcher.dispatch(_request(path="/other")).has_header("X-Route")

    def test_short_circuit_value(self) -> None:
        def gate(request, next):
            return {"blocked": True}

        router = Router()
        router.get("/", lambda: "never")
        response = Dispatcher(router, middleware=(gate,)).dispatch(_request())
        assert json.loads(response.text) == {"blocked": True}

    def test_middleware_raising(self) -> None:
        def gate(request, next):
            raise HTTPError(401, "login required")

        router = Router()
        router.get("/", lambda: "never")
        assert Dispatcher(router, middleware=(gate,)).dispatch(_request()).status == 401

    def test_middleware_runs_for_unrouted_requests(self) -> None:
        def tag(request, next):
            return next(request).with_header("X-Seen", "1")

        response = Dispatcher(Router(), middleware=(tag,)).dispatch(_request(path="/x"))
        assert response.status == 404
        assert response.get_header("X-Seen") == ["1"]


class TestExchange:
    def test_final_request_and_stage(self) -> None:
        exchange = Exchange(_request(path="/user/42"))
        Dispatcher(_user_router()).process(exchange)
        assert exchange.request.get_attribute("id") == "42"
        assert exchange.stage is Stage.RESPONSE_REDUCED

    def test_outcome_resolved_once(self) -> None:
        router = _user_router()
        exchange = Exchange(_request(path="/user/42"))
        first = exchange.outcome(router)
        assert exchange.outcome(router) is first
