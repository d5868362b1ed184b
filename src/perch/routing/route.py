"""Route and RouteMatch dataclasses, plus URI-template compilation."""

import re
from dataclasses import dataclass, field
from typing import Any

from perch._internal.types import Handler

# Methods every route answers in addition to its own.
IMPLICIT_METHODS = frozenset({"HEAD", "OPTIONS"})

_PLACEHOLDER = re.compile(r":(\w+)(\?)?")


def compile_pattern(uri: str) -> re.Pattern[str]:
    """Compile a route template into an anchored regex.

    Examples::

        "/users"              -> ^users$
        "/user/:id"           -> ^user/?(?P<id>\\w+)$
        "/user/:id/post/:p?"  -> ^user/?(?P<id>\\w+)/?post/?(?P<p>\\w+)?$

    Leading and trailing slashes are trimmed and every remaining slash is
    optional. Literal text is escaped and matched case-sensitively.
    """
    template = uri.strip("/")
    parts: list[str] = []
    position = 0
    for placeholder in _PLACEHOLDER.finditer(template):
        parts.append(_literal(template[position : placeholder.start()]))
        name, optional = placeholder.group(1), placeholder.group(2)
        parts.append(f"(?P<{name}>\\w+){'?' if optional else ''}")
        position = placeholder.end()
    parts.append(_literal(template[position:]))
    return re.compile(f"^{''.join(parts)}$")


def _literal(text: str) -> str:
    return "/?".join(re.escape(chunk) for chunk in text.split("/"))


@dataclass(slots=True)
class Route:
    """One registered endpoint.

    Created by ``Router.register``. The route table is read-only once the
    app freezes; ``middleware()`` is only for chaining during setup.
    """

    method: str
    uri: str
    handler: Handler
    middlewares: tuple[Any, ...] = ()
    name: str | None = None
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if self.name is None:
            self.name = self.uri
        self.pattern = compile_pattern(self.uri)

    @property
    def methods(self) -> frozenset[str]:
        """The route's own method plus the implicit HEAD and OPTIONS."""
        return IMPLICIT_METHODS | {self.method}

    def middleware(self, *middlewares: Any) -> "Route":
        """Append route-level middleware. Returns the route for chaining."""
        self.middlewares = (*self.middlewares, *middlewares)
        return self

    def match(self, path: str) -> dict[str, str | None] | None:
        """Matched attributes for *path*, or ``None`` when it does not match.

        Placeholders that captured nothing are present with a ``None`` value.
        """
        found = self.pattern.match(path.strip("/"))
        if found is None:
            return None
        return {name: value or None for name, value in found.groupdict().items()}

    def url(self, **attributes: Any) -> str:
        """Build a concrete path by substituting *attributes* into the template.

        Raises ``KeyError`` for a required placeholder missing from
        *attributes*. Optional placeholders without a value are dropped
        along with their leading slash.
        """

        def substitute(placeholder: re.Match[str]) -> str:
            name, optional = placeholder.group(1), placeholder.group(2)
            value = attributes.get(name)
            if value is None:
                if optional:
                    return ""
                msg = f"Missing attribute {name!r} for route {self.name!r}"
                raise KeyError(msg)
            return str(value)

        path = _PLACEHOLDER.sub(substitute, self.uri)
        path = re.sub(r"/{2,}", "/", path).rstrip("/")
        return path or "/"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    attributes: dict[str, str | None]
