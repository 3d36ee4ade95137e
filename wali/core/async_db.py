"""Run sync repository calls from coroutines."""
from __future__ import annotations

from functools import partial
from typing import Any, Callable, TypeVar

import anyio

T = TypeVar("T")


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable in a worker thread."""
    return await anyio.to_thread.run_sync(partial(func, *args, **kwargs))


class AsyncDBProxy:
    """Proxy that exposes every public repository method as a coroutine.

    The wrapped repository is expected to be thread-safe; the in-memory one
    locks internally and the PostgreSQL one draws a pooled connection per call.
    """

    def __init__(self, repo: Any):
        self._repo = repo

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        attr = getattr(self._repo, name)
        if not callable(attr):
            return attr

        async def _call(*args: Any, **kwargs: Any):
            return await run_sync(attr, *args, **kwargs)

        _call.__name__ = name
        return _call
