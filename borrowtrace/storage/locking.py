"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Bounded-wait locking for the graph store.

Writers on instrumented threads block until the lock is free. Readers such
as exporters driven from a UI may pass a timeout instead and receive
``LockUnavailable`` when the wait expires.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Iterator, Optional

from borrowtrace.errors import LockUnavailable

_LOGGER = logging.getLogger(__name__)


class TimedLock:
    """Re-entrant lock whose acquisition can be bounded by a deadline."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    def acquire(self, operation: str, timeout: Optional[float] = None) -> None:
        """
        Acquire the lock for ``operation``.

        :param operation: name reported in ``LockUnavailable``
        :param timeout: seconds to wait; ``None`` blocks indefinitely
        :raises LockUnavailable: when the wait expires
        """

        if timeout is None:
            self._lock.acquire()
            return

        started = time.monotonic()
        if timeout <= 0:
            acquired = self._lock.acquire(blocking=False)
        else:
            acquired = self._lock.acquire(timeout=timeout)
        if not acquired:
            _LOGGER.warning(
                "Lock %s unavailable for %s after %.3fs",
                self._name,
                operation,
                time.monotonic() - started,
            )
            raise LockUnavailable(f"{self._name}.{operation}", timeout)

    def release(self) -> None:
        self._lock.release()

    @contextlib.contextmanager
    def hold(
        self, operation: str, timeout: Optional[float] = None
    ) -> Iterator[None]:
        """Context manager form of :meth:`acquire`."""
        self.acquire(operation, timeout)
        try:
            yield
        finally:
            self.release()
