"""Graph storage, locking, replay and export persistence."""

from .base import GraphView
from .export_store import (ExportStore, LocalExportStore, S3ExportStore,
                           build_export_store_from_env)
from .graph_store import RelationshipGraphStore
from .locking import TimedLock
from .replay import replay_events
from .snapshot import GraphSnapshot

__all__ = [
    "ExportStore",
    "GraphSnapshot",
    "GraphView",
    "LocalExportStore",
    "RelationshipGraphStore",
    "S3ExportStore",
    "TimedLock",
    "build_export_store_from_env",
    "replay_events",
]
