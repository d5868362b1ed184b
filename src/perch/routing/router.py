"""Route table with per-method buckets and ordered pattern matching.

Routes are registered during setup; the table is only read once the app
freezes. Resolution never raises for routing failures. It returns the
outcome as a value (a match, "no content needed", or an HTTP error) so the
dispatcher can feed it through the same reduction as handler results.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from perch._internal.types import Handler
from perch.errors import ConfigurationError, DuplicateRouteName, MethodNotAllowed, NotFound
from perch.routing.route import Route, RouteMatch

logger = logging.getLogger("perch.routing")


@dataclass(frozen=True, slots=True)
class NoContent:
    """The path exists under another method and the request is HEAD/OPTIONS."""

    allowed: frozenset[str]


RouteOutcome = RouteMatch | NoContent | BaseException

ErrorSpec = BaseException | type[BaseException]


def _canonical(uri: str) -> str:
    return uri.rstrip("/") or "/"


def _check_error_spec(error: Any) -> ErrorSpec:
    if isinstance(error, BaseException):
        return error
    if isinstance(error, type) and issubclass(error, BaseException):
        return error
    msg = f"Unknown class {error!r}: expected an exception class or instance"
    raise ConfigurationError(msg)


class Router:
    """Method-bucketed route table.

    Usage::

        router = Router()
        router.get("/user/:id", show_user, name="user.show")
        outcome = router.resolve("GET", "/user/42")
    """

    __slots__ = ("_frozen", "_named", "_not_allowed_error", "_not_found_error", "_routes")

    def __init__(self) -> None:
        # method -> canonical uri -> Route, in registration order
        self._routes: dict[str, dict[str, Route]] = {
            "GET": {},
            "POST": {},
            "PUT": {},
            "DELETE": {},
        }
        self._named: dict[str, Route] = {}
        self._not_found_error: ErrorSpec = NotFound
        self._not_allowed_error: ErrorSpec = MethodNotAllowed
        self._frozen = False

    # -- Registration --

    def register(
        self,
        method: str,
        uri: str,
        handler: Handler,
        middlewares: Iterable[Any] | Any = (),
        name: str | None = None,
    ) -> Route:
        """Register *handler* for *method* on *uri* and return the Route.

        The route is also stored under HEAD and OPTIONS. Raises
        ``DuplicateRouteName`` when *name* is already taken.
        """
        if self._frozen:
            msg = "Cannot register routes after the router has been frozen."
            raise ConfigurationError(msg)

        uri = _canonical(uri)
        if callable(middlewares) or not isinstance(middlewares, Iterable):
            middlewares = (middlewares,)
        route = Route(method, uri, handler, tuple(middlewares), name)

        if name:
            existing = self._named.get(name)
            if existing is not None:
                msg = (
                    f"Route name `{name}` has already been used for route "
                    f"`{existing.method} {existing.uri}`"
                )
                raise DuplicateRouteName(msg)
            self._named[name] = route

        for bucket in (route.method, "HEAD", "OPTIONS"):
            self._routes.setdefault(bucket, {})[uri] = route
        logger.debug("Registered %s %s", route.method, uri)
        return route

    def get(self, uri: str, handler: Handler, middlewares: Any = (), name: str | None = None) -> Route:
        return self.register("GET", uri, handler, middlewares, name)

    def post(self, uri: str, handler: Handler, middlewares: Any = (), name: str | None = None) -> Route:
        return self.register("POST", uri, handler, middlewares, name)

    def put(self, uri: str, handler: Handler, middlewares: Any = (), name: str | None = None) -> Route:
        return self.register("PUT", uri, handler, middlewares, name)

    def patch(self, uri: str, handler: Handler, middlewares: Any = (), name: str | None = None) -> Route:
        return self.register("PATCH", uri, handler, middlewares, name)

    def delete(self, uri: str, handler: Handler, middlewares: Any = (), name: str | None = None) -> Route:
        return self.register("DELETE", uri, handler, middlewares, name)

    def not_found(self, error: ErrorSpec) -> "Router":
        """Install the error (class or instance) reported when no route matches."""
        self._not_found_error = _check_error_spec(error)
        return self

    def method_not_allowed(self, error: ErrorSpec) -> "Router":
        """Install the error (class or instance) reported for a wrong method."""
        self._not_allowed_error = _check_error_spec(error)
        return self

    def freeze(self) -> None:
        """Make the table read-only. No more routes can be registered."""
        self._frozen = True

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        """Every registered route, once each, in registration order."""
        seen: set[int] = set()
        result: list[Route] = []
        for bucket in self._routes.values():
            for route in bucket.values():
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)
        return result

    def url_for(self, name: str, **attributes: Any) -> str:
        """Build the path of the route called *name*."""
        route = self._named.get(name)
        if route is None:
            route = next((r for r in self.routes if r.name == name), None)
        if route is None:
            msg = f"No route named {name!r}"
            raise KeyError(msg)
        return route.url(**attributes)

    # -- Matching --

    def resolve(self, method: str, path: str) -> RouteOutcome:
        """Resolve *method* and *path* to a route outcome value.

        1. The method's own bucket: exact canonical key, then patterns in
           registration order.
        2. Every other bucket. A hit means ``NoContent`` for HEAD/OPTIONS,
           otherwise the method-not-allowed error.
        3. Nothing anywhere: the not-found error.
        """
        method = method.upper()
        found = self._match_in(self._routes.get(method, {}), path)
        if found is not None:
            return found

        for bucket_method, bucket in self._routes.items():
            if bucket_method == method:
                continue
            if self._match_in(bucket, path) is None:
                continue
            allowed = self.allowed_methods(path)
            if method in ("HEAD", "OPTIONS"):
                return NoContent(allowed)
            logger.debug("405 %s %s (allowed: %s)", method, path, ", ".join(sorted(allowed)))
            return self._error(self._not_allowed_error, allowed=allowed)

        logger.debug("404 %s %s", method, path)
        return self._error(self._not_found_error, detail=f"No route matches {method} {path!r}")

    def allowed_methods(self, path: str) -> frozenset[str]:
        """Union of the method sets of every route matching *path*."""
        allowed: set[str] = set()
        for bucket in self._routes.values():
            for route in bucket.values():
                if route.match(path) is not None:
                    allowed |= route.methods
        return frozenset(allowed)

    @staticmethod
    def _match_in(bucket: dict[str, Route], path: str) -> RouteMatch | None:
        route = bucket.get(_canonical(path))
        if route is not None:
            attributes = route.match(path)
            return RouteMatch(route=route, attributes=attributes or {})
        for route in bucket.values():
            attributes = route.match(path)
            if attributes is not None:
                return RouteMatch(route=route, attributes=attributes)
        return None

    @staticmethod
    def _error(spec: ErrorSpec, **defaults: Any) -> BaseException:
        if isinstance(spec, BaseException):
            return spec
        if spec is MethodNotAllowed:
            return MethodNotAllowed(defaults["allowed"])
        if spec is NotFound:
            return NotFound(defaults["detail"])
        return spec()
