"""Perch exception hierarchy.

Shared across Router, messages, dispatcher, and middleware so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when the route table or app configuration is invalid.

    Raised at registration time, never per request.
    """


class DuplicateRouteName(ConfigurationError):  # noqa: N818
    """A route name was registered twice."""


class InvalidStreamResource(PerchError, TypeError):  # noqa: N818
    """A message body was given something that is not a binary stream."""


class PropertyNotFound(PerchError, AttributeError):  # noqa: N818
    """Attribute-style lookup of a request input that does not exist."""


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers and middleware, or produced as a value by the
    router. The dispatcher reduces it to a response carrying ``status``
    and ``headers``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path under any method."""

    def __init__(self, detail: str = "Route not found") -> None:
        super().__init__(status=404, detail=detail)


RouteNotFound = NotFound


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: the path exists, but not for this HTTP method.

    Carries an ``Allow`` header when the allowed methods are known.
    """

    def __init__(self, allowed: frozenset[str] = frozenset(), detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        headers = (("Allow", allow_value),) if allowed else ()
        super().__init__(
            status=405,
            detail=detail or "Method not allowed",
            headers=headers,
        )


class RenderableError(HTTPError):
    """An HTTP error that renders its own response body.

    Subclasses override ``render()``; the default renders ``detail``::

        class Unprocessable(RenderableError):
            def render(self) -> str:
                return json.dumps({"error": self.detail})

        raise Unprocessable(status=422, detail="name is required")
    """

    def render(self) -> str:
        return self.detail
