"""Immutable server-side HTTP request.

Populated once from the transport snapshot (the ASGI scope plus the body
bytes the adapter already read). Accessors are pure reads afterwards; the
parsed body is the single lazily computed value and is cached per
instance. Middleware and handlers "change" a request by getting a new one
from a ``with_*`` call.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Self
from urllib.parse import parse_qsl

from perch.errors import PropertyNotFound
from perch.http.body import Body
from perch.http.cookies import parse_cookies
from perch.http.headers import Headers
from perch.http.message import Message
from perch.http.query import QueryParams
from perch.http.uri import Uri

# Methods whose parsed body comes from the request payload alone.
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class Request(Message):
    """An immutable HTTP request.

    ``attributes`` hold values derived while handling the request, most
    importantly the route's matched placeholders. ``all()`` merges the
    parsed body, attributes, and query params, later ones winning.
    """

    method: str = "GET"
    uri: Uri = field(default_factory=Uri)
    query_params: QueryParams = field(default_factory=QueryParams)
    attributes: Mapping[str, Any] = field(default_factory=lambda: _freeze(None))
    cookies: Mapping[str, str] = field(default_factory=lambda: _freeze(None))
    server_params: Mapping[str, Any] = field(default_factory=lambda: _freeze(None))
    uploaded_files: Mapping[str, Any] = field(default_factory=lambda: _freeze(None))
    explicit_request_target: str = ""
    explicit_parsed_body: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())

    # -- Attribute-style input access --

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal attribute lookup fails.
        if name.startswith("_"):
            raise AttributeError(name)
        data = self.all()
        if name in data:
            return data[name]
        msg = f"Property {name!r} does not exist on request object"
        raise PropertyNotFound(msg)

    # -- Convenience --

    @property
    def path(self) -> str:
        return self.uri.path

    @property
    def content_type(self) -> str:
        """Media type of the body, without parameters."""
        value = self.headers.get_first("content-type", "") or ""
        return value.split(";", 1)[0].strip().lower()

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_put(self) -> bool:
        return self.method == "PUT"

    @property
    def is_patch(self) -> bool:
        return self.method == "PATCH"

    @property
    def is_delete(self) -> bool:
        return self.method == "DELETE"

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_options(self) -> bool:
        return self.method == "OPTIONS"

    @property
    def request_target(self) -> str:
        """Origin-form target (``/path?query#fragment``) unless set explicitly."""
        if self.explicit_request_target:
            return self.explicit_request_target
        target = "/" + self.uri.path.strip("/")
        if self.uri.query:
            target = f"{target}?{self.uri.query}"
        if self.uri.fragment:
            target = f"{target}#{self.uri.fragment}"
        return target

    # -- Input --

    @property
    def parsed_body(self) -> Mapping[str, Any]:
        """Deserialized body parameters, computed at most once per instance.

        For POST/PUT/PATCH/DELETE: the JSON object for ``application/json``
        bodies, otherwise the url-encoded form fields merged with the
        uploaded files. For other methods: the query params merged with any
        JSON object in the body.
        """
        if self.explicit_parsed_body is not None:
            return self.explicit_parsed_body
        if "parsed_body" in self._cache:
            return self._cache["parsed_body"]

        raw = self.body.contents()
        decoded = _decode_json_object(raw)
        if self.method in _BODY_METHODS:
            if self.content_type == "application/json":
                parsed: dict[str, Any] = decoded
            elif self.content_type == _FORM_CONTENT_TYPE:
                parsed = {**dict(parse_qsl(raw.decode("latin-1"))), **self.uploaded_files}
            else:
                parsed = dict(self.uploaded_files)
        else:
            parsed = {**self.query_params, **decoded}

        result = MappingProxyType(parsed)
        self._cache["parsed_body"] = result
        return result

    def all(self) -> dict[str, Any]:
        """Every input value: parsed body < attributes < query params."""
        return {**self.parsed_body, **self.attributes, **self.query_params}

    def get(self, name: str, default: Any = None) -> Any:
        """One input value from ``all()``, or *default*."""
        value = self.all().get(name)
        return default if value is None else value

    def get_attribute(self, name: str, default: Any = None) -> Any:
        value = self.attributes.get(name)
        return default if value is None else value

    # -- Copy-on-write mutators --

    def with_method(self, method: str) -> Self:
        return self._clone(method=method)

    def with_uri(self, uri: Uri, *, preserve_host: bool = False) -> Self:
        """New request with *uri*; updates ``Host`` unless *preserve_host*.

        With *preserve_host*, ``Host`` is only filled in when it is missing
        and the new URI has a host.
        """
        headers = self.headers
        if uri.host:
            if not preserve_host or not headers.get_first("host"):
                headers = headers.set("Host", uri.host)
        return self._clone(uri=uri, headers=headers)

    def with_request_target(self, request_target: str) -> Self:
        return self._clone(explicit_request_target=request_target)

    def with_query_params(self, query: Mapping[str, str | list[str]]) -> Self:
        return self._clone(query_params=QueryParams.from_mapping(query))

    def with_cookie_params(self, cookies: Mapping[str, str]) -> Self:
        return self._clone(cookies=_freeze(cookies))

    def with_uploaded_files(self, files: Mapping[str, Any]) -> Self:
        return self._clone(uploaded_files=_freeze(files))

    def with_parsed_body(self, data: Mapping[str, Any] | None) -> Self:
        return self._clone(
            explicit_parsed_body=None if data is None else _freeze(data),
        )

    def with_attribute(self, name: str, value: Any) -> Self:
        return self._clone(attributes=_freeze({**self.attributes, name: value}))

    def with_attributes(self, attributes: Mapping[str, Any]) -> Self:
        """Replace every attribute at once."""
        return self._clone(attributes=_freeze(attributes))

    def without_attribute(self, name: str) -> Self:
        return self._clone(
            attributes=_freeze({k: v for k, v in self.attributes.items() if k != name})
        )

    # -- Factory --

    @classmethod
    def from_scope(
        cls,
        scope: Mapping[str, Any],
        body: bytes = b"",
        *,
        uploaded_files: Mapping[str, Any] | None = None,
    ) -> Request:
        """Create a Request from an ASGI HTTP scope and the full body bytes."""
        headers = Headers.from_raw(scope.get("headers", ()))
        uri = Uri.from_scope(scope)
        server_params = {
            key: scope[key]
            for key in ("http_version", "scheme", "server", "client", "root_path", "raw_path")
            if key in scope
        }
        return cls(
            headers=headers,
            protocol_version=scope.get("http_version", "1.1"),
            body=Body(body),
            method=scope.get("method", "GET"),
            uri=uri,
            query_params=QueryParams(uri.query),
            cookies=_freeze(parse_cookies(headers.get_line("cookie").replace(",", ";"))),
            server_params=_freeze(server_params),
            uploaded_files=_freeze(uploaded_files),
        )


def _decode_json_object(raw: bytes) -> dict[str, Any]:
    """JSON object from *raw*, or ``{}`` when it is empty or not an object."""
    if not raw:
        return {}
    try:
        decoded = json_module.loads(raw)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}
