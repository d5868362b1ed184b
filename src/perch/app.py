"""Perch application class.

Mutable during setup (route registration, middleware, providers).
Frozen at runtime when ``__call__()`` or ``handle()`` is first invoked.
"""

import inspect
import threading
from collections.abc import Callable, Iterable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import Handler, Provider
from perch.config import AppConfig
from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Middleware
from perch.resolver import ProviderResolver, Resolver
from perch.routing.route import Route
from perch.routing.router import ErrorSpec, Router
from perch.server.handler import Dispatcher, handle_request


class App:
    """The perch application.

    Mutable during setup (routes, middleware, providers). Frozen at runtime
    when ``__call__()`` or ``handle()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded (registration at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread builds the dispatcher, even when several ASGI workers call
        ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_dispatcher",
        "_freeze_lock",
        "_frozen",
        "_middleware_list",
        "_providers",
        "_resolver",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "router",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        resolver: Resolver | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.router: Router = Router()
        self._resolver: Resolver | None = resolver
        self._middleware_list: list[Middleware] = []
        self._providers: dict[type, Provider] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._dispatcher: Dispatcher | None = None

    # -- Route registration --

    def route(
        self,
        uri: str,
        *,
        methods: Iterable[str] | None = None,
        name: str | None = None,
        middleware: Iterable[Any] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            uri: Route template. Use ``:name`` for placeholders and
                ``:name?`` for optional ones.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name for ``url_for``. Only the first
                method's route carries it.
            middleware: Route-level middleware wrapping this handler.
        """

        def decorator(func: Handler) -> Handler:
            route_name = name
            for method in methods or ["GET"]:
                self.register(method, uri, func, middleware, route_name)
                route_name = None
            return func

        return decorator

    def register(
        self,
        method: str,
        uri: str,
        handler: Handler,
        middleware: Iterable[Any] | Any = (),
        name: str | None = None,
    ) -> Route:
        """Register *handler* for one method; returns the Route for chaining."""
        self._check_not_frozen()
        return self.router.register(method, uri, handler, middleware, name)

    def get(self, uri: str, handler: Handler, middleware: Any = (), name: str | None = None) -> Route:
        return self.register("GET", uri, handler, middleware, name)

    def post(self, uri: str, handler: Handler, middleware: Any = (), name: str | None = None) -> Route:
        return self.register("POST", uri, handler, middleware, name)

    def put(self, uri: str, handler: Handler, middleware: Any = (), name: str | None = None) -> Route:
        return self.register("PUT", uri, handler, middleware, name)

    def patch(self, uri: str, handler: Handler, middleware: Any = (), name: str | None = None) -> Route:
        return self.register("PATCH", uri, handler, middleware, name)

    def delete(self, uri: str, handler: Handler, middleware: Any = (), name: str | None = None) -> Route:
        return self.register("DELETE", uri, handler, middleware, name)

    def not_found(self, error: ErrorSpec) -> None:
        """Report *error* (class or instance) when no route matches."""
        self._check_not_frozen()
        self.router.not_found(error)

    def method_not_allowed(self, error: ErrorSpec) -> None:
        """Report *error* (class or instance) when the method does not match."""
        self._check_not_frozen()
        self.router.method_not_allowed(error)

    def url_for(self, name: str, **attributes: Any) -> str:
        return self.router.url_for(name, **attributes)

    # -- Service injection --

    def provide(self, annotation: type, factory: Provider) -> None:
        """Register a provider factory for dependency injection.

        When a handler parameter's type annotation matches *annotation*,
        perch calls *factory* (with no arguments) and injects the result::

            app.provide(UserStore, get_store)

            def show(id: int, store: UserStore) -> dict: ...

        Class-based handlers ``(Controller, "method")`` get their
        constructor arguments injected the same way.
        """
        self._check_not_frozen()
        self._providers[annotation] = factory

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add an app-level middleware. The first added runs outermost."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Synchronous entry --

    def handle(self, request: Request, *, seed: Response | None = None) -> Response:
        """Dispatch *request* without a transport.

        Handlers and middleware must be synchronous on this path.
        """
        self._ensure_frozen()
        assert self._dispatcher is not None
        return self._dispatcher.dispatch(request, seed=seed)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to the
        request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._dispatcher is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            config=self.config,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then runs
        registered startup/shutdown hooks and signals completion back to
        the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        self.router.freeze()
        resolver = self._resolver
        if resolver is None:
            resolver = ProviderResolver(self._providers)
        self._dispatcher = Dispatcher(
            self.router,
            resolver=resolver,
            middleware=tuple(self._middleware_list),
            config=self.config,
        )
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and providers before the first request."
            )
            raise ConfigurationError(msg)
