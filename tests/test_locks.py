"""Unit tests for the reader/writer lock and its per-key registry."""

import threading

import pytest

from token_storage import ReadWriteLock, TokenCacheLock


def test_readers_hold_the_lock_together() -> None:
    lock = ReadWriteLock()
    barrier = threading.Barrier(2, timeout=2)
    errors = []

    def reader() -> None:
        try:
            with lock.read():
                barrier.wait()
        except threading.BrokenBarrierError as e:
            errors.append(e)

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert errors == []


def test_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader() -> None:
        with lock.read():
            entered.set()

    lock.acquire_write()
    t = threading.Thread(target=reader)
    t.start()
    try:
        assert not entered.wait(0.2)
    finally:
        lock.release_write()
    t.join(timeout=5)

    assert entered.is_set()


def test_writer_waits_for_active_reader() -> None:
    lock = ReadWriteLock()
    written = threading.Event()

    def writer() -> None:
        with lock.write():
            written.set()

    with lock.read():
        t = threading.Thread(target=writer)
        t.start()
        assert not written.wait(0.2)
    t.join(timeout=5)

    assert written.is_set()


def test_unbalanced_release_raises() -> None:
    lock = ReadWriteLock()

    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()


def test_unsharded_lock_is_shared_by_all_keys() -> None:
    locks = TokenCacheLock()

    assert locks.for_key("alice_TokenCache") is locks.for_key("bob_TokenCache")


def test_sharded_lock_is_per_key() -> None:
    locks = TokenCacheLock(sharded=True)

    alice = locks.for_key("alice_TokenCache")
    assert locks.for_key("alice_TokenCache") is alice
    assert locks.for_key("bob_TokenCache") is not alice
