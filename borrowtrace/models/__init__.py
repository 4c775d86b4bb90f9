"""Domain model package exports."""

from .events import REQUIRED_PAYLOAD_KEYS, Event, EventKind
from .graph import Entity, Relationship, RelationshipKind
from .reports import ConflictKind, ConflictRecord, ValidationWarning

__all__ = [
    "ConflictKind",
    "ConflictRecord",
    "Entity",
    "Event",
    "EventKind",
    "REQUIRED_PAYLOAD_KEYS",
    "Relationship",
    "RelationshipKind",
    "ValidationWarning",
]
