"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Thread-safe, append-only log of lifecycle events.

Timestamps and event ids come from two independent atomic counters so the
append lock only guards the list insertion itself. Timestamps are logical,
not wall-clock: they only need to be strictly increasing and unique within
the process.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Iterator, List, Optional, Tuple

from borrowtrace.models import Event

_LOGGER = logging.getLogger(__name__)


class AtomicCounter:
    """Monotonic integer source safe to share between threads."""

    def __init__(self, start: int = 1) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(start)
        self._last = start - 1

    def next(self) -> int:
        with self._lock:
            self._last = next(self._counter)
            return self._last

    @property
    def last(self) -> int:
        """Most recently issued value (``start - 1`` before the first)."""
        with self._lock:
            return self._last


class EventRecorder:
    """Accept events from any thread and keep them in arrival order."""

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._lock = threading.Lock()
        self._clock = AtomicCounter()
        self._ids = AtomicCounter()

    def record(self, event: Event) -> int:
        """Stamp ``event`` and append it to the log; return its event id.

        The log never rejects an event. Payload problems are only detected
        when the graph store consumes the event.
        """

        stamped = self.record_stamped(event)
        return stamped.event_id  # type: ignore[return-value]

    def record_stamped(self, event: Event) -> Event:
        """Record ``event`` and return the stamped copy that was stored."""
        # Stamping happens before the append lock is taken.
        stamped = event.stamped(
            event_id=self._ids.next(), timestamp=self._clock.next()
        )
        with self._lock:
            self._events.append(stamped)
        _LOGGER.debug(
            "Recorded %s event id=%s at=%s",
            stamped.kind.value,
            stamped.event_id,
            stamped.timestamp,
        )
        return stamped

    def reset(self) -> None:
        """Drop the log for a new session; counters keep running."""
        with self._lock:
            dropped = len(self._events)
            self._events = []
        _LOGGER.info("Event log reset (%d events dropped)", dropped)

    def snapshot(self) -> Tuple[Event, ...]:
        """Return a point-in-time copy of every recorded event."""
        with self._lock:
            return tuple(self._events)

    @property
    def current_time(self) -> int:
        """Latest logical timestamp handed out so far."""
        return self._clock.last

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self.snapshot())


_DEFAULT_RECORDER: Optional[EventRecorder] = None
_DEFAULT_LOCK = threading.Lock()


def get_recorder() -> EventRecorder:
    """Return the process-wide recorder, creating it on first use."""
    global _DEFAULT_RECORDER
    with _DEFAULT_LOCK:
        if _DEFAULT_RECORDER is None:
            _DEFAULT_RECORDER = EventRecorder()
        return _DEFAULT_RECORDER
