"""Immutable URI value.

Each ``with_*`` returns a new ``Uri`` with exactly one component replaced.
Scheme and host are lower-cased and the default HTTP port is elided on
construction, so equal URIs compare equal.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any
from urllib.parse import urlsplit

DEFAULT_PORT = 80


@dataclass(frozen=True, slots=True)
class Uri:
    """A parsed URI: ``scheme://user_info@host:port/path?query#fragment``."""

    scheme: str = ""
    host: str = ""
    port: int | None = None
    path: str = ""
    query: str = ""
    fragment: str = ""
    user_info: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "scheme", self.scheme.lower())
        object.__setattr__(self, "host", self.host.lower())
        if self.port == DEFAULT_PORT:
            object.__setattr__(self, "port", None)

    # -- Derived views --

    @property
    def authority(self) -> str:
        """``[user_info@]host[:port]``; the port segment is omitted when unset."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        authority = host if self.port is None else f"{host}:{self.port}"
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        return authority

    def __str__(self) -> str:
        scheme = f"{self.scheme}://" if self.scheme else ""
        path = "/" + self.path.strip("/")
        query = f"?{self.query}" if self.query else ""
        fragment = f"#{self.fragment}" if self.fragment else ""
        return f"{scheme}{self.authority.rstrip('/')}{path}{query}{fragment}"

    # -- Copy-on-write mutators --

    def with_scheme(self, scheme: str) -> Uri:
        return replace(self, scheme=scheme)

    def with_host(self, host: str) -> Uri:
        return replace(self, host=host)

    def with_port(self, port: int | None) -> Uri:
        return replace(self, port=port)

    def with_path(self, path: str) -> Uri:
        return replace(self, path=path)

    def with_query(self, query: str) -> Uri:
        return replace(self, query=query)

    def with_fragment(self, fragment: str) -> Uri:
        return replace(self, fragment=fragment)

    def with_user_info(self, user: str, password: str | None = None) -> Uri:
        """Replace the user info; ``user:password`` when a password is given."""
        user_info = f"{user}:{password}" if password else user
        return replace(self, user_info=user_info)

    # -- Factories --

    @classmethod
    def parse(cls, uri: str) -> Uri:
        """Parse an absolute or origin-form URI string."""
        parts = urlsplit(uri)
        user_info, _, _ = parts.netloc.rpartition("@")
        return cls(
            scheme=parts.scheme,
            host=parts.hostname or "",
            port=parts.port,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
            user_info=user_info,
        )

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> Uri:
        """Build from an ASGI HTTP scope, read once at request construction.

        The ``Host`` header wins over the ``server`` tuple. Bracketed IPv6
        hosts are stored without their brackets.
        """
        host = ""
        port: int | None = None
        user_info = ""
        for name, value in scope.get("headers", ()):
            if name.lower() == b"host":
                parts = urlsplit("//" + value.decode("latin-1"))
                user_info, _, _ = parts.netloc.rpartition("@")
                host = parts.hostname or ""
                try:
                    port = parts.port
                except ValueError:
                    port = None
                break
        else:
            server = scope.get("server")
            if server:
                host, port = server[0], server[1]
        return cls(
            scheme=scope.get("scheme", "http"),
            host=host,
            port=port,
            path=scope.get("path", ""),
            query=scope.get("query_string", b"").decode("latin-1"),
            user_info=user_info,
        )
