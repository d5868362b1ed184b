"""Middleware: protocol-based, no inheritance required.

A middleware is any callable matching:
    def mw(request: Request, next: Next) -> Response

App-level middleware wraps the whole dispatch; route middleware wraps the
matched handler only.
"""

from perch.middleware.protocol import Middleware, Next

__all__ = [
    "Middleware",
    "Next",
]
