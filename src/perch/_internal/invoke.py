"""Invoke helper: call sync or async handlers from the dispatch thread.

Dispatch runs synchronously in a worker thread. Handlers may still be
``async def``: their coroutine is handed back to the event loop with
``anyio.from_thread.run`` and the thread blocks until it finishes.

Usage::

    from perch._internal.invoke import invoke

    result = invoke(handler, *args, **kwargs)
"""

import inspect
from collections.abc import Awaitable
from typing import Any

import anyio.from_thread


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and wait for the result if it is awaitable.

    Awaitable results need a running event loop reachable from this
    thread, i.e. dispatch must be running under ``anyio.to_thread``.
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = anyio.from_thread.run(_await, result)
    return result
