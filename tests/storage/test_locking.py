"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Unit tests for bounded-wait locking.
"""

from __future__ import annotations

import threading

import pytest

from borrowtrace.errors import BorrowTraceError, LockUnavailable
from borrowtrace.storage import TimedLock


def _hold_in_thread(
    lock: TimedLock,
) -> tuple[threading.Event, threading.Event]:
    held = threading.Event()
    release = threading.Event()

    def run() -> None:
        with lock.hold("writer"):
            held.set()
            release.wait(5)

    threading.Thread(target=run, daemon=True).start()
    held.wait(5)
    return held, release


def test_hold_is_reentrant_on_same_thread() -> None:
    lock = TimedLock("store")

    with lock.hold("outer"):
        with lock.hold("inner", timeout=0):
            pass


@pytest.mark.parametrize("timeout", [0, 0.01])
def test_bounded_wait_raises_lock_unavailable(timeout: float) -> None:
    """
    test_bounded_wait_raises_lock_unavailable: Function description.
    :param timeout:
    :returns:
    """

    lock = TimedLock("store")
    _, release = _hold_in_thread(lock)
    try:
        with pytest.raises(LockUnavailable) as excinfo:
            lock.acquire("snapshot", timeout)
    finally:
        release.set()

    error = excinfo.value
    assert isinstance(error, BorrowTraceError)
    assert error.operation == "store.snapshot"
    assert error.timeout == timeout
    assert "store.snapshot" in str(error)


def test_lock_becomes_available_after_release() -> None:
    lock = TimedLock("store")
    _, release = _hold_in_thread(lock)
    release.set()

    lock.acquire("snapshot", timeout=5)
    lock.release()

    assert lock.name == "store"


def test_lock_unavailable_message_without_timeout() -> None:
    error = LockUnavailable("store.clear")

    assert str(error) == "Lock unavailable for 'store.clear'"
    assert error.timeout is None
