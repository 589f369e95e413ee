"""Per-version mutual exclusion for install and launch."""

import asyncio
import threading
import weakref
from contextlib import asynccontextmanager
from typing import Dict


class VersionLockTable:
    """One lock per version id.

    Locks are ``threading.Lock`` objects so installs running on different
    threads (each with its own event loop) are serialized too. Tasks of one
    event loop queue on an ``asyncio.Lock`` first, so a loop has at most one
    executor thread waiting for a given version while the holder keeps the
    rest of the default executor for its own work.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._loop_locks = weakref.WeakKeyDictionary()

    def _lock_for(self, version_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(version_id)
            if lock is None:
                lock = self._locks[version_id] = threading.Lock()
            return lock

    def _loop_lock_for(self, version_id: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        with self._guard:
            locks = self._loop_locks.setdefault(loop, {})
            lock = locks.get(version_id)
            if lock is None:
                lock = locks[version_id] = asyncio.Lock()
            return lock

    def locked(self, version_id: str) -> bool:
        return self._lock_for(version_id).locked()

    @asynccontextmanager
    async def hold(self, version_id: str):
        async with self._loop_lock_for(version_id):
            lock = self._lock_for(version_id)
            if not lock.acquire(blocking=False):
                pending = asyncio.get_running_loop().run_in_executor(None, lock.acquire)
                try:
                    await asyncio.shield(pending)
                except asyncio.CancelledError:
                    # The executor still gets the lock eventually, hand it back.
                    pending.add_done_callback(lambda _: lock.release())
                    raise
            try:
                yield
            finally:
                lock.release()
