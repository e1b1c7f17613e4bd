"""
Reader/writer locking for session-backed token caches.

`TokenCacheLock` is created once per process (see `app.create_app`) and handed
to every `SessionTokenCache`. By default all cache keys share one lock; with
`sharded=True` each cache key gets its own, so unrelated sessions never
contend.
"""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Many concurrent readers or a single writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class TokenCacheLock:
    """
    Hands out the `ReadWriteLock` guarding a given cache key.

    Unsharded, every key maps to the same process-wide lock. Sharded, locks
    are created on demand per key and dropped once no cache holds them.
    """

    def __init__(self, sharded: bool = False):
        self.sharded = sharded
        self._global = ReadWriteLock()
        self._shards: weakref.WeakValueDictionary[str, ReadWriteLock] = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def for_key(self, cache_key: str) -> ReadWriteLock:
        if not self.sharded:
            return self._global
        with self._guard:
            lock = self._shards.get(cache_key)
            if lock is None:
                lock = ReadWriteLock()
                self._shards[cache_key] = lock
            return lock
