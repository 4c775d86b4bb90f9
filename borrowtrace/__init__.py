"""Runtime ownership and borrow tracking with graph analysis and export."""

from .errors import (BorrowTraceError, CycleError, ExportError,
                     ExportStoreError, ImportFormatError, LockUnavailable,
                     SerializationError)
from .models import (ConflictKind, ConflictRecord, Entity, Event, EventKind,
                     Relationship, RelationshipKind, ValidationWarning)
from .storage import GraphSnapshot, RelationshipGraphStore
from .tracking import EventRecorder, Tracker, get_tracker
from .tracking.tracker import (record_borrow, record_creation,
                               record_destruction, record_dynamic_access,
                               record_move, record_shared_clone)

__all__ = [
    "BorrowTraceError",
    "ConflictKind",
    "ConflictRecord",
    "CycleError",
    "Entity",
    "Event",
    "EventKind",
    "EventRecorder",
    "ExportError",
    "ExportStoreError",
    "GraphSnapshot",
    "ImportFormatError",
    "LockUnavailable",
    "Relationship",
    "RelationshipGraphStore",
    "RelationshipKind",
    "SerializationError",
    "Tracker",
    "ValidationWarning",
    "get_tracker",
    "record_borrow",
    "record_creation",
    "record_destruction",
    "record_dynamic_access",
    "record_move",
    "record_shared_clone",
]
