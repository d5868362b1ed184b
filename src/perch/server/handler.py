"""Request dispatch: routing, middleware, handler resolution, reduction.

``Dispatcher.process`` is synchronous and has no suspension points. The
ASGI entry ``handle_request`` reads the body, builds the Request, runs
``process`` in a worker thread, and sends the result. It is the only
function here that touches raw ASGI directly.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import anyio.to_thread

from perch._internal.asgi import Receive, Scope, Send, read_body
from perch._internal.invoke import invoke
from perch.config import AppConfig
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.resolver import ProviderResolver, Resolver
from perch.routing.route import IMPLICIT_METHODS, RouteMatch
from perch.routing.router import NoContent, Router, RouteOutcome
from perch.server.negotiation import negotiate
from perch.server.sender import send_response

logger = logging.getLogger("perch.server")


class Stage(Enum):
    """Progress of one exchange. Each stage is entered at most once."""

    ROUTED = "routed"
    HANDLER_RESOLVED = "handler_resolved"
    RESPONSE_REDUCED = "response_reduced"
    SENT = "sent"


_UNRESOLVED: Any = object()


@dataclass(slots=True)
class Exchange:
    """Per-request state threaded through the dispatch.

    ``request`` is the current request: every middleware that calls
    ``next`` with a new Request replaces it, so the sender sees the final
    one. ``response`` is the seed response handed to handlers and used as
    the base of every reduction.
    """

    request: Request
    response: Response = field(default_factory=Response)
    stage: Stage | None = None
    _outcome: Any = field(default=_UNRESOLVED, repr=False)

    def outcome(self, router: Router) -> RouteOutcome:
        """Route outcome for this exchange, resolved once."""
        if self._outcome is _UNRESOLVED:
            self._outcome = router.resolve(self.request.method, self.request.path)
        return self._outcome


def _no_content(response: Response, allowed: frozenset[str]) -> Response:
    """Empty 204 answering an automatic HEAD or OPTIONS request."""
    response = response.with_status(204).without_content()
    if allowed:
        response = response.with_header("Allow", ", ".join(sorted(allowed)))
    return response


class Dispatcher:
    """Runs one exchange from routing to a reduced Response.

    Usage::

        dispatcher = Dispatcher(router, middleware=(timing,))
        response = dispatcher.dispatch(request)
    """

    __slots__ = ("_config", "_middleware", "_resolver", "_router")

    def __init__(
        self,
        router: Router,
        *,
        resolver: Resolver | None = None,
        middleware: Sequence[Callable[..., Any]] = (),
        config: AppConfig | None = None,
    ) -> None:
        self._router = router
        self._resolver: Resolver = resolver if resolver is not None else ProviderResolver()
        self._middleware = tuple(middleware)
        self._config = config if config is not None else AppConfig()

    def dispatch(self, request: Request, *, seed: Response | None = None) -> Response:
        """Process *request* in a fresh exchange."""
        exchange = Exchange(request) if seed is None else Exchange(request, seed)
        return self.process(exchange)

    def process(self, exchange: Exchange) -> Response:
        """Run app middleware around routing and reduce the final value."""
        handler: Next = lambda request: self._route(exchange, request)  # noqa: E731
        for mw in reversed(self._middleware):
            handler = self._wrap(exchange, mw, handler)

        response = self._call(exchange, handler, exchange.request)
        if response.status == 405 and not response.has_header("Allow"):
            allowed = self._router.allowed_methods(exchange.request.path)
            response = response.with_header("Allow", ", ".join(sorted(allowed)))
        exchange.stage = Stage.RESPONSE_REDUCED
        return response

    # -- Stages --

    def _route(self, exchange: Exchange, request: Request) -> Response:
        exchange.request = request
        outcome = exchange.outcome(self._router)
        exchange.stage = Stage.ROUTED

        match outcome:
            case NoContent(allowed=allowed):
                return _no_content(exchange.response, allowed)
            case RouteMatch(route=route, attributes=attributes):
                if request.method in IMPLICIT_METHODS and route.method != request.method:
                    allowed = self._router.allowed_methods(request.path)
                    return _no_content(exchange.response, allowed)
                request = request.with_attributes({**request.attributes, **attributes})
                handler: Next = lambda req: self._run_handler(exchange, route.handler, req)  # noqa: E731
                for mw in reversed(route.middlewares):
                    handler = self._wrap(exchange, mw, handler)
                return self._call(exchange, handler, request)
            case _:
                return self._reduce(exchange, outcome)

    def _run_handler(self, exchange: Exchange, handler_ref: Any, request: Request) -> Response:
        exchange.request = request
        try:
            call = self._resolver.resolve(handler_ref, request, exchange.response, request.attributes)
            exchange.stage = Stage.HANDLER_RESOLVED
            result = invoke(call)
        except Exception as exc:
            result = exc
        return self._reduce(exchange, result)

    # -- Helpers --

    def _wrap(self, exchange: Exchange, mw: Callable[..., Any], next_: Next) -> Next:
        def step(request: Request) -> Response:
            exchange.request = request
            try:
                result = invoke(mw, request, next_)
            except Exception as exc:
                result = exc
            return self._reduce(exchange, result)

        return step

    def _call(self, exchange: Exchange, handler: Next, request: Request) -> Response:
        try:
            result = handler(request)
        except Exception as exc:
            result = exc
        return self._reduce(exchange, result)

    def _reduce(self, exchange: Exchange, value: Any) -> Response:
        return negotiate(value, seed=exchange.response, config=self._config)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    try:
        body = await read_body(receive, max_length=config.max_content_length)
    except HTTPError as exc:
        logger.debug("%d %s %s: %s", exc.status, scope.get("method"), scope.get("path"), exc.detail)
        request = Request.from_scope(scope)
        response = negotiate(exc, config=config)
        await send_response(response, request, send, mirror_cookies=False)
        return

    exchange = Exchange(Request.from_scope(scope, body))
    response = await anyio.to_thread.run_sync(dispatcher.process, exchange)
    await send_response(
        response,
        exchange.request,
        send,
        mirror_cookies=config.mirror_request_cookies,
    )
    exchange.stage = Stage.SENT
