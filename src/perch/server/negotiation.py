"""Content negotiation: maps handler results to Response objects.

Every value a handler can produce (a Response, a renderable, an
exception, a string, plain data) is classified once into a ``ResultKind``
and then reduced with a fixed precedence. isinstance-based dispatch,
no magic, fully predictable.
"""

import logging
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

from perch.config import AppConfig
from perch.errors import HTTPError
from perch.http.response import Response

logger = logging.getLogger("perch.server")

_DEFAULT_CONFIG = AppConfig()


class ResultKind(Enum):
    """The closed set of handler result shapes, in reduction precedence."""

    RESPONSE = "response"
    RENDERABLE_ERROR = "renderable_error"
    RENDERABLE = "renderable"
    ERROR = "error"
    STRINGABLE = "stringable"
    ARRAY_CONVERTIBLE = "array_convertible"
    UNKNOWN = "unknown"


def _renderable(value: Any) -> bool:
    return callable(getattr(value, "render", None))


def _stringable(value: Any) -> bool:
    if isinstance(value, (bool, Mapping)):
        return False
    if isinstance(value, (str, bytes, int, float)):
        return True
    # Only objects whose class defines its own __str__
    return not isinstance(value, type) and type(value).__str__ is not object.__str__


def _array_convertible(value: Any) -> bool:
    return (
        isinstance(value, (Mapping, list, tuple, Iterator))
        or callable(getattr(value, "to_array", None))
    )


def classify(value: Any) -> ResultKind:
    """Classify a handler result. Checks run in reduction precedence."""
    match value:
        case Response():
            return ResultKind.RESPONSE
        case BaseException() if _renderable(value):
            return ResultKind.RENDERABLE_ERROR
        case BaseException():
            return ResultKind.ERROR
        case _ if _renderable(value):
            return ResultKind.RENDERABLE
        case _ if _stringable(value):
            return ResultKind.STRINGABLE
        case _ if _array_convertible(value):
            return ResultKind.ARRAY_CONVERTIBLE
        case _:
            return ResultKind.UNKNOWN


def error_status(error: BaseException) -> int:
    """HTTP status carried by *error* (``status`` or ``code``), else 500."""
    for attribute in ("status", "code"):
        status = getattr(error, attribute, None)
        if isinstance(status, int) and not isinstance(status, bool) and 100 <= status <= 599:
            return status
    return 500


def _with_error_status(response: Response, error: BaseException) -> Response:
    status = error_status(error)
    response = response.with_status(status)
    if isinstance(error, HTTPError):
        for name, value in error.headers:
            response = response.with_header(name, value)
    if status >= 500:
        logger.error(
            "Unhandled %s: %s", type(error).__name__, error, exc_info=error
        )
    else:
        logger.debug("%d %s: %s", status, type(error).__name__, error)
    return response


def _with_text(response: Response, content: str | bytes, config: AppConfig) -> Response:
    if not response.has_header("Content-Type"):
        response = response.with_header("Content-Type", config.default_content_type)
    return response.with_content(content)


def negotiate(
    value: Any,
    *,
    seed: Response | None = None,
    config: AppConfig = _DEFAULT_CONFIG,
) -> Response:
    """Reduce a handler result to exactly one Response.

    Precedence:

    1. *seed* already has content   -> *seed* unchanged
    2. ``Response``                 -> pass through
    3. renderable (not an error)    -> body = ``render()``
    4. renderable error             -> error status, body = ``render()``
    5. other exception              -> error status (500 if none usable)
    6. stringable                   -> body = ``str(value)``
    7. array-convertible            -> JSON body
    8. anything else                -> 500, logged
    """
    response = seed if seed is not None else Response()
    if response.has_content:
        return response

    kind = classify(value)
    match kind:
        case ResultKind.RESPONSE:
            return value
        case ResultKind.RENDERABLE:
            return _with_text(response, value.render(), config)
        case ResultKind.RENDERABLE_ERROR:
            response = _with_error_status(response, value)
            return _with_text(response, value.render(), config)
        case ResultKind.ERROR:
            response = _with_error_status(response, value)
            if config.debug:
                return _with_text(response, str(value), config)
            return response
        case ResultKind.STRINGABLE:
            content = value if isinstance(value, bytes) else str(value)
            return _with_text(response, content, config)
        case ResultKind.ARRAY_CONVERTIBLE:
            return response.json(value, ensure_ascii=config.json_ensure_ascii)
        case _:
            logger.error("Handler returned unsupported type %s", type(value).__name__)
            return response.with_status(500)
