"""Perch: request routing and immutable HTTP messages for ASGI.

Matches a request to a registered handler, runs middleware around it, and
reduces whatever the handler returns into one response.

Basic usage::

    from perch import App

    app = App()

    @app.route("/user/:id")
    def show(id: int) -> dict:
        return {"id": id}

Serve ``app`` with any ASGI server.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "DuplicateRouteName",
    "HTTPError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "RenderableError",
    "Request",
    "Response",
    "Router",
    "Uri",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name == "Uri":
        from perch.http.uri import Uri

        return Uri

    if name == "Router":
        from perch.routing.router import Router

        return Router

    if name in ("Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in (
        "ConfigurationError",
        "DuplicateRouteName",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "PerchError",
        "RenderableError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
