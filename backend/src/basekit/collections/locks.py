"""Per-collection-name locks serializing registry writes against lookups."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class NameLocks:
    """Asyncio locks keyed by collection name, created on demand.

    Several names are always acquired in sorted order, so two writers
    touching overlapping names (e.g. a rename) cannot deadlock. A lock is
    dropped once nobody holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        self._users[name] = self._users.get(name, 0) + 1
        return lock

    def _checkin(self, name: str) -> None:
        self._users[name] -= 1
        if not self._users[name]:
            del self._users[name]
            del self._locks[name]

    @asynccontextmanager
    async def hold(self, *names: str) -> AsyncIterator[None]:
        checked_out: list[str] = []
        acquired: list[asyncio.Lock] = []
        try:
            for name in sorted(set(names)):
                lock = self._checkout(name)
                checked_out.append(name)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for name in checked_out:
                self._checkin(name)

    async def wait(self, name: str) -> None:
        """Wait until no writer holds ``name``."""
        lock = self._locks.get(name)
        if lock is None or not lock.locked():
            return
        self._checkout(name)
        try:
            async with lock:
                pass
        finally:
            self._checkin(name)

    def locked(self, name: str) -> bool:
        lock = self._locks.get(name)
        return lock is not None and lock.locked()
