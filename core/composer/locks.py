"""In-process serialization for operations that share a path or a work tree."""

from __future__ import annotations

import asyncio
import posixpath
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path


def work_tree_key(root: str | Path) -> str:
    """Lock key for operations that write a work tree's git index."""
    return f"vcs:{Path(root).resolve()}"


class PathLocks:
    """One asyncio.Lock per key, created on demand.

    Keys are normalized so ``notes/a.md`` and ``notes/./a.md`` share a lock.
    Multi-key acquisition is ordered to avoid deadlocks.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @staticmethod
    def _normalize(key: str) -> str:
        return posixpath.normpath(key.replace("\\", "/"))

    def get(self, key: str) -> asyncio.Lock:
        key = self._normalize(key)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        ordered = sorted({self._normalize(k) for k in keys})
        acquired: list[asyncio.Lock] = []
        try:
            for key in ordered:
                lock = self.get(key)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


__all__ = ["PathLocks", "work_tree_key"]
