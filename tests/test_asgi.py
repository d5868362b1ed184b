"""Tests for perch._internal: body reading and sync/async invocation."""

from typing import Any

import anyio
import anyio.to_thread
import pytest

from perch._internal.asgi import read_body
from perch._internal.invoke import invoke
from perch.errors import HTTPError


def _receiver(*messages: dict[str, Any]):
    queue = list(messages)

    async def receive() -> dict[str, Any]:
        return queue.pop(0)

    return receive


class TestReadBody:
    async def test_single_message(self) -> None:
        receive = _receiver({"type": "http.request", "body": b"hello"})
        assert await read_body(receive, max_length=100) == b"hello"

    async def test_chunked(self) -> None:
        receive = _receiver(
            {"type": "http.request", "body": b"ab", "more_body": True},
            {"type": "http.request", "body": b"cd", "more_body": False},
        )
        assert await read_body(receive, max_length=100) == b"abcd"

    async def test_disconnect_ends_read(self) -> None:
        receive = _receiver(
            {"type": "http.request", "body": b"ab", "more_body": True},
            {"type": "http.disconnect"},
        )
        assert await read_body(receive, max_length=100) == b"ab"

    async def test_too_large(self) -> None:
        receive = _receiver({"type": "http.request", "body": b"12345"})
        with pytest.raises(HTTPError) as exc_info:
            await read_body(receive, max_length=4)
        assert exc_info.value.status == 413


class TestInvoke:
    def test_sync(self) -> None:
        assert invoke(lambda a, b=0: a + b, 1, b=2) == 3

    async def test_async_from_worker_thread(self) -> None:
        async def handler(name: str) -> str:
            await anyio.sleep(0)
            return f"hi {name}"

        result = await anyio.to_thread.run_sync(lambda: invoke(handler, "ada"))
        assert result == "hi ada"
