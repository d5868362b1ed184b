"""ASGI type aliases and the request-body reader.

The only helpers that touch raw ASGI receive messages.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

from perch.errors import HTTPError

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


async def read_body(receive: Receive, *, max_length: int) -> bytes:
    """Drain ``http.request`` messages into one byte string.

    Raises ``HTTPError(413)`` once more than *max_length* bytes arrive.
    A disconnect ends the read with whatever arrived so far.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunk = message.get("body", b"")
        total += len(chunk)
        if total > max_length:
            raise HTTPError(status=413, detail="Request body too large")
        chunks.append(chunk)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)
