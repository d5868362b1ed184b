"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    def my_mw(request: Request, next: Next) -> Any: ...

No base class required. The framework checks the shape, not the lineage.

``next`` always returns a reduced ``Response``, so middleware can adjust
it with the chainable ``.with_*()`` API. A middleware may instead return
any other handler result (or raise); the dispatcher reduces it the same
way it reduces handler results.
"""

from collections.abc import Callable
from typing import Any, Protocol, TypeAlias

from perch.http.request import Request
from perch.http.response import Response

# The next handler in the middleware chain
Next: TypeAlias = Callable[[Request], Response]


class Middleware(Protocol):
    """Protocol for perch middleware.

    Accepts both functions and callable objects::

        # Function middleware
        def timing(request: Request, next: Next) -> Response:
            start = time.monotonic()
            response = next(request)
            elapsed = time.monotonic() - start
            return response.with_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RequireToken:
            def __call__(self, request: Request, next: Next) -> Any:
                ...
    """

    def __call__(self, request: Request, next: Next) -> Any: ...
