"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Handlers may return one
directly, or return plain data and let negotiation build it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Self

from perch.http.cookies import SetCookie
from perch.http.message import Message


def reason_for(status: int) -> str:
    """Standard reason phrase for *status*; empty for unregistered codes."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def to_array(data: Any) -> dict[str, Any] | list[Any]:
    """Normalize array-convertible *data* to a JSON-ready dict or list.

    Accepts a mapping, any non-string iterable (iterators are drained), or
    an object exposing ``to_array()``.
    """
    if isinstance(data, Mapping):
        return dict(data)
    to_array_method = getattr(data, "to_array", None)
    if callable(to_array_method):
        return to_array_method()
    if isinstance(data, Iterable) and not isinstance(data, (str, bytes)):
        return list(data)
    msg = f"Cannot convert {type(data).__name__} to an array"
    raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class Response(Message):
    """An HTTP response built through immutable transformations.

    ``reason_phrase`` defaults to the standard phrase for ``status``.
    ``content`` is the body text; a response "has content" once it is
    non-empty, which is what lets a pre-populated response pass through
    negotiation unchanged.
    """

    status: int = 200
    reason_phrase: str = ""
    content: str | bytes = ""
    cookies: tuple[SetCookie, ...] = ()

    def __post_init__(self) -> None:
        if not self.reason_phrase:
            object.__setattr__(self, "reason_phrase", reason_for(self.status))

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    # -- Chainable transformations --

    def with_status(self, status: int, reason_phrase: str = "") -> Self:
        """New Response with *status*; the phrase resets unless given."""
        if not 100 <= status <= 599:
            msg = f"Invalid HTTP status code: {status}"
            raise ValueError(msg)
        return self._clone(status=status, reason_phrase=reason_phrase)

    def with_content(self, content: str | bytes) -> Self:
        return self._clone(content=content)

    def without_content(self) -> Self:
        return self._clone(content="")

    def with_content_type(self, content_type: str) -> Self:
        return self.with_header("Content-Type", content_type)

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Self:
        """New Response with an additional Set-Cookie."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return self._clone(cookies=(*self.cookies, cookie))

    def without_cookie(self, name: str, path: str = "/") -> Self:
        """New Response that deletes a cookie (Max-Age=0)."""
        cookie = SetCookie(name=name, value="", max_age=0, path=path)
        return self._clone(cookies=(*self.cookies, cookie))

    def json(self, data: Any, *, ensure_ascii: bool = False) -> Self:
        """New Response carrying *data* serialized as JSON.

        *data* is normalized with ``to_array`` first, so mappings, lists,
        iterators, and ``to_array()`` objects are all accepted.
        """
        payload = json_module.dumps(to_array(data), ensure_ascii=ensure_ascii)
        return self.with_header("Content-Type", "application/json").with_content(payload)

    def redirect(self, url: str, *, permanent: bool = False) -> Self:
        """New Response redirecting to *url* (308 when permanent, else 307)."""
        status = 308 if permanent else 307
        return self.with_status(status).with_added_header("Location", url)

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes; the body stream is used when there is no content."""
        if isinstance(self.content, str):
            if self.content:
                return self.content.encode("utf-8")
            return self.body.contents()
        return self.content

    @property
    def text(self) -> str:
        """Body as string."""
        return self.body_bytes.decode("utf-8")

