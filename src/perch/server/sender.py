"""ASGI response sending: translates a perch Response to ASGI messages.

Headers go out one line per name/value pair, never comma-joined. The
request's cookie snapshot is mirrored back as ``Set-Cookie`` after the
response's own cookies.
"""

import logging

from perch._internal.asgi import Send
from perch.http.cookies import SetCookie
from perch.http.request import Request
from perch.http.response import Response

logger = logging.getLogger("perch.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def build_headers(
    response: Response,
    request: Request | None = None,
    *,
    mirror_cookies: bool = True,
) -> list[tuple[bytes, bytes]]:
    """Raw ASGI header pairs for *response*, without ``content-length``."""
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers.items_flat()
    ]
    raw_headers.extend(
        (b"set-cookie", cookie.to_header_value().encode("latin-1")) for cookie in response.cookies
    )
    if mirror_cookies and request is not None:
        raw_headers.extend(
            (b"set-cookie", SetCookie(name, value).to_header_value().encode("latin-1"))
            for name, value in request.cookies.items()
        )
    return raw_headers


async def send_response(
    response: Response,
    request: Request,
    send: Send,
    *,
    mirror_cookies: bool = True,
) -> None:
    """Translate a perch Response into ASGI send() calls."""
    raw_headers = build_headers(response, request, mirror_cookies=mirror_cookies)

    body = response.body_bytes if _body_allowed(response.status) else b""

    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    # HEAD keeps the would-be length but never the payload
    if request.is_head:
        body = b""

    logger.debug("%d %s %s", response.status, request.method, request.path)
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
