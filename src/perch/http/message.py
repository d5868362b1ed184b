"""Shared immutable message behaviour for requests and responses.

Headers, protocol version, and body. Every ``with_*`` clones the message
(fresh header map, fresh cache), applies one change, and returns the
clone; the receiver is never altered.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Self

from perch.http.body import Body
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Message:
    """Base for ``Request`` and ``Response``. Not used directly."""

    headers: Headers = field(default_factory=Headers)
    protocol_version: str = "1.1"
    body: Body = field(default_factory=Body, repr=False, compare=False)

    # Mutable per-instance cache (contents mutable, reference frozen).
    # Never shared: every clone starts empty.
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def _clone(self, **changes: Any) -> Self:
        changes.setdefault("_cache", {})
        return replace(self, **changes)

    # -- Protocol version --

    def with_protocol_version(self, version: str) -> Self:
        return self._clone(protocol_version=version)

    # -- Headers --

    def get_headers(self) -> dict[str, list[str]]:
        """All headers as ``{original name: [values]}``."""
        return self.headers.as_dict()

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def get_header(self, name: str) -> list[str]:
        """All values for *name* (case-insensitive); empty list when absent."""
        return self.headers.get_list(name)

    def get_header_line(self, name: str) -> str:
        """Comma-joined values for *name*, for reading only."""
        return self.headers.get_line(name)

    def with_header(self, name: str, value: str | Iterable[str]) -> Self:
        return self._clone(headers=self.headers.set(name, value))

    def with_added_header(self, name: str, value: str | Iterable[str]) -> Self:
        return self._clone(headers=self.headers.add(name, value))

    def with_headers(self, headers: dict[str, str]) -> Self:
        """Replace several headers at once."""
        new = self.headers
        for name, value in headers.items():
            new = new.set(name, value)
        return self._clone(headers=new)

    def without_header(self, name: str) -> Self:
        if name not in self.headers:
            return self._clone()
        return self._clone(headers=self.headers.remove(name))

    # -- Body --

    def with_body(self, body: Body) -> Self:
        return self._clone(body=body)
