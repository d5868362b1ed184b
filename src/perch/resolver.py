"""Handler resolution: turn a route's handler reference into a callable.

A handler reference is either a callable or a ``(class, method_name)``
pair. The resolver instantiates classes, looks up methods, and binds the
arguments the handler's signature asks for, so the dispatcher only ever
calls a zero-argument callable.

Injection order for each parameter:

1. ``request``: by name or ``Request`` annotation
2. ``response``: by name or ``Response`` annotation
3. Route attributes: by name, converted to the annotated type if possible
4. Providers: by type annotation (``app.provide()``)
"""

import functools
import inspect
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from perch._internal.types import Handler, Provider
from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.http.response import Response


class Resolver(Protocol):
    """Dependency-resolution collaborator used by the dispatcher."""

    def resolve(
        self,
        handler: Handler,
        request: Request,
        response: Response,
        attributes: Mapping[str, Any],
    ) -> Callable[[], Any]: ...

    def make(self, cls: type) -> Any: ...


def build_handler_kwargs(
    handler: Callable[..., Any],
    request: Request,
    response: Response,
    attributes: Mapping[str, Any],
    providers: Mapping[type, Provider] | None = None,
) -> dict[str, Any]:
    """Inspect *handler*'s signature and build its keyword arguments."""
    sig = inspect.signature(handler, eval_str=True)
    kwargs: dict[str, Any] = {}

    for name, param in sig.parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = param.annotation
        if name == "request" or annotation is Request:
            kwargs[name] = request
        elif name == "response" or annotation is Response:
            kwargs[name] = response
        elif name in attributes:
            kwargs[name] = _convert(attributes[name], annotation)
        elif providers and annotation is not inspect.Parameter.empty and annotation in providers:
            kwargs[name] = providers[annotation]()

    return kwargs


def _convert(value: Any, annotation: Any) -> Any:
    """Convert a matched attribute to *annotation* when it is a plain type."""
    if value is None or annotation is inspect.Parameter.empty or not isinstance(annotation, type):
        return value
    try:
        return annotation(value)
    except (ValueError, TypeError):
        return value


class ProviderResolver:
    """Default resolver driven by registered providers.

    Usage::

        resolver = ProviderResolver({Database: lambda: db})
        call = resolver.resolve(show_user, request, response, {"id": "42"})
        result = call()
    """

    __slots__ = ("_providers",)

    def __init__(self, providers: Mapping[type, Provider] | None = None) -> None:
        self._providers: dict[type, Provider] = dict(providers or {})

    def provide(self, annotation: type, factory: Provider) -> None:
        self._providers[annotation] = factory

    def make(self, cls: type) -> Any:
        """Build an instance of *cls*.

        Uses the provider registered for *cls* when there is one; otherwise
        calls *cls* with its provider-typed constructor arguments.
        """
        provider = self._providers.get(cls)
        if provider is not None:
            return provider()
        try:
            sig = inspect.signature(cls, eval_str=True)
        except (TypeError, ValueError):
            return cls()
        kwargs = {
            name: self._providers[param.annotation]()
            for name, param in sig.parameters.items()
            if param.annotation in self._providers
        }
        return cls(**kwargs)

    def resolve(
        self,
        handler: Handler,
        request: Request,
        response: Response,
        attributes: Mapping[str, Any],
    ) -> Callable[[], Any]:
        """Bind *handler* to its injected arguments."""
        if isinstance(handler, tuple):
            cls, method_name = handler
            instance = self.make(cls)
            func = getattr(instance, method_name, None)
            if not callable(func):
                msg = f"{cls.__name__} has no handler method {method_name!r}"
                raise ConfigurationError(msg)
        elif callable(handler):
            func = handler
        else:
            msg = f"Unsupported handler reference: {handler!r}"
            raise ConfigurationError(msg)

        kwargs = build_handler_kwargs(func, request, response, attributes, self._providers)
        return functools.partial(func, **kwargs)
