"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Instrumentation facade: the calls an instrumented program makes, and the
read-side conveniences its tooling uses.

Each ``record_*`` call builds its event payload before touching any lock,
records the event and applies it to the graph store straight away, so the
store is always current with the log.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from borrowtrace.analysis.conflicts import find_conflicts
from borrowtrace.export import (export_compact_json, export_for_visualization,
                                export_full_json, export_graph_description)
from borrowtrace.logging_config import configure_logging
from borrowtrace.models import ConflictRecord, Event, ValidationWarning
from borrowtrace.models import events as event_builders
from borrowtrace.query import EntityQuery, GraphStatistics, compute_statistics
from borrowtrace.storage.export_store import (ExportStore, StoredExport,
                                              build_export_store_from_env)
from borrowtrace.storage.graph_store import RelationshipGraphStore
from borrowtrace.storage.snapshot import GraphSnapshot
from borrowtrace.utils import env

from .recorder import AtomicCounter, EventRecorder, get_recorder

_LOGGER = logging.getLogger(__name__)


class Tracker:
    """Bind one event recorder to one relationship graph store."""

    def __init__(
        self,
        recorder: Optional[EventRecorder] = None,
        store: Optional[RelationshipGraphStore] = None,
        *,
        enabled: Optional[bool] = None,
    ) -> None:
        self._recorder = recorder if recorder is not None else EventRecorder()
        self._store = store if store is not None else RelationshipGraphStore()
        self._enabled = env.tracking_enabled() if enabled is None else enabled
        self._entity_ids = AtomicCounter()
        self._local = threading.local()

    @property
    def recorder(self) -> EventRecorder:
        return self._recorder

    @property
    def store(self) -> RelationshipGraphStore:
        return self._store

    @property
    def enabled(self) -> bool:
        return self._enabled

    # Scopes ------------------------------------------------------------------

    @property
    def scope_depth(self) -> int:
        """Nesting depth of ``scope()`` blocks on the calling thread."""
        return getattr(self._local, "depth", 0)

    @contextlib.contextmanager
    def scope(self) -> Iterator[int]:
        depth = self.scope_depth + 1
        self._local.depth = depth
        try:
            yield depth
        finally:
            self._local.depth = depth - 1

    # Instrumentation contract ------------------------------------------------

    def record_creation(self, name: str, type_tag: str) -> int:
        """Allocate a new entity id and record its creation.

        Ids are handed out even when tracking is disabled so instrumented
        code behaves identically either way.
        """

        entity_id = self._entity_ids.next()
        if self._enabled:
            self._emit(
                event_builders.creation(
                    entity_id, name, type_tag, self.scope_depth
                )
            )
        return entity_id

    def record_borrow(
        self, dependent_id: int, target_id: int, exclusive: bool
    ) -> Optional[int]:
        """Record a borrow; return its event id (None when disabled)."""
        return self._emit(
            event_builders.borrow(dependent_id, target_id, exclusive)
        )

    def record_move(self, from_id: int, to_id: int) -> None:
        self._emit(event_builders.move(from_id, to_id))

    def record_shared_clone(
        self, new_id: int, source_id: int, resulting_count: int
    ) -> None:
        self._emit(
            event_builders.shared_clone(new_id, source_id, resulting_count)
        )

    def record_dynamic_access(
        self, access_id: int, target_id: int, exclusive: bool
    ) -> None:
        self._emit(
            event_builders.dynamic_access(access_id, target_id, exclusive)
        )

    def record_destruction(self, entity_id: int) -> None:
        self._emit(event_builders.destruction(entity_id))

    def record_destruction_batch(self, entity_ids: Iterable[int]) -> int:
        """Record one destruction per id; return how many were applied."""
        if not self._enabled:
            return 0
        applied = 0
        for entity_id in entity_ids:
            stamped = self._recorder.record_stamped(
                event_builders.destruction(entity_id)
            )
            if self._store.apply(stamped):
                applied += 1
        return applied

    def _emit(self, event: Event) -> Optional[int]:
        if not self._enabled:
            return None
        stamped = self._recorder.record_stamped(event)
        self._store.apply(stamped)
        return stamped.event_id

    # Read side ---------------------------------------------------------------

    def events(self) -> Tuple[Event, ...]:
        return self._recorder.snapshot()

    def warnings(self) -> Tuple[ValidationWarning, ...]:
        return self._store.warnings()

    def snapshot(self, timeout: Optional[float] = None) -> GraphSnapshot:
        return self._store.snapshot(timeout)

    def bounded_snapshot(self) -> GraphSnapshot:
        """Snapshot with the configured wait, for callers that must not
        stall (a UI refresh, a signal handler).

        :raises LockUnavailable: when the store stays busy past the wait
        """

        return self._store.snapshot(env.lock_timeout_seconds())

    def find_conflicts(
        self, *, algorithm: str = "sweep", timeout: Optional[float] = None
    ) -> List[ConflictRecord]:
        return find_conflicts(self.snapshot(timeout), algorithm=algorithm)

    def query(self, timeout: Optional[float] = None) -> EntityQuery:
        return EntityQuery(self.snapshot(timeout))

    def statistics(self, timeout: Optional[float] = None) -> GraphStatistics:
        return compute_statistics(self.snapshot(timeout))

    def export_full_json(
        self, timeout: Optional[float] = None, **kwargs: Any
    ) -> str:
        return export_full_json(self.snapshot(timeout), **kwargs)

    def export_compact_json(self, timeout: Optional[float] = None) -> str:
        return export_compact_json(self.snapshot(timeout))

    def export_graph_description(
        self, timeout: Optional[float] = None
    ) -> str:
        return export_graph_description(self.snapshot(timeout))

    def export_for_visualization(
        self,
        *,
        layout: Optional[str] = None,
        frames: bool = False,
        indent: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Visualization document as JSON text.

        :raises ExportError: on an unknown layout or an encoder failure
        """

        kwargs: Dict[str, Any] = {"frames": frames, "indent": indent}
        if layout is not None:
            kwargs["layout"] = layout
        return export_for_visualization(self.snapshot(timeout), **kwargs)

    def persist_full_export(
        self,
        name: str,
        *,
        export_store: Optional[ExportStore] = None,
        timeout: Optional[float] = None,
    ) -> StoredExport:
        """Export the current graph and save it under ``name``."""
        target = (
            export_store
            if export_store is not None
            else build_export_store_from_env()
        )
        return target.save(name, self.export_full_json(timeout))

    def reset(self) -> None:
        """Start a new session: clear the event log and the graph."""
        self._recorder.reset()
        self._store.clear()
        _LOGGER.info("Tracker reset")


_DEFAULT_TRACKER: Optional[Tracker] = None
_DEFAULT_LOCK = threading.Lock()


def get_tracker() -> Tracker:
    """Return the process-wide tracker, building it on first use."""
    global _DEFAULT_TRACKER
    with _DEFAULT_LOCK:
        if _DEFAULT_TRACKER is None:
            configure_logging()
            _DEFAULT_TRACKER = Tracker(recorder=get_recorder())
            _LOGGER.debug(
                "Built default tracker (enabled=%s)", _DEFAULT_TRACKER.enabled
            )
        return _DEFAULT_TRACKER


def record_creation(name: str, type_tag: str) -> int:
    return get_tracker().record_creation(name, type_tag)


def record_borrow(
    dependent_id: int, target_id: int, exclusive: bool
) -> Optional[int]:
    return get_tracker().record_borrow(dependent_id, target_id, exclusive)


def record_move(from_id: int, to_id: int) -> None:
    get_tracker().record_move(from_id, to_id)


def record_shared_clone(
    new_id: int, source_id: int, resulting_count: int
) -> None:
    get_tracker().record_shared_clone(new_id, source_id, resulting_count)


def record_dynamic_access(
    access_id: int, target_id: int, exclusive: bool
) -> None:
    get_tracker().record_dynamic_access(access_id, target_id, exclusive)


def record_destruction(entity_id: int) -> None:
    get_tracker().record_destruction(entity_id)
