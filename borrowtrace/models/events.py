"""Lifecycle events emitted by instrumented code."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class EventKind(str, Enum):
    """Kinds of lifecycle events understood by the graph store."""

    CREATE = "create"
    BORROW = "borrow"
    MOVE = "move"
    SHARED_CLONE = "shared_clone"
    DYNAMIC_ACCESS = "dynamic_access"
    DESTROY = "destroy"


REQUIRED_PAYLOAD_KEYS: Dict[EventKind, Tuple[str, ...]] = {
    EventKind.CREATE: ("entity_id", "name", "type_tag"),
    EventKind.BORROW: ("dependent_id", "target_id", "exclusive"),
    EventKind.MOVE: ("from_id", "to_id"),
    EventKind.SHARED_CLONE: ("new_id", "source_id", "strong_count"),
    EventKind.DYNAMIC_ACCESS: ("access_id", "target_id", "exclusive"),
    EventKind.DESTROY: ("entity_id",),
}


@dataclass(frozen=True)
class Event:
    """A lifecycle event; ``event_id`` and ``timestamp`` are set on record."""

    kind: EventKind
    payload: Mapping[str, Any] = field(default_factory=dict)
    event_id: Optional[int] = None
    timestamp: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, EventKind):
            raise ValueError(f"Event kind '{self.kind}' is not recognized")

    @property
    def is_stamped(self) -> bool:
        return self.event_id is not None and self.timestamp is not None

    def stamped(self, event_id: int, timestamp: int) -> "Event":
        return replace(self, event_id=event_id, timestamp=timestamp)

    @property
    def has_mapping_payload(self) -> bool:
        return isinstance(self.payload, Mapping)

    def missing_keys(self) -> Tuple[str, ...]:
        """Payload keys this kind requires but the event does not carry."""
        if not self.has_mapping_payload:
            return REQUIRED_PAYLOAD_KEYS[self.kind]
        return tuple(
            key
            for key in REQUIRED_PAYLOAD_KEYS[self.kind]
            if key not in self.payload
        )

    def sort_key(self) -> Tuple[int, int]:
        """Replay order: timestamp first, event id breaks ties."""
        return (
            self.timestamp if isinstance(self.timestamp, int) else -1,
            self.event_id if isinstance(self.event_id, int) else -1,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "payload": (
                dict(self.payload)
                if self.has_mapping_payload
                else self.payload
            ),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        return cls(
            kind=EventKind(data["kind"]),
            payload=dict(data.get("payload") or {}),
            event_id=data.get("event_id"),
            timestamp=data.get("timestamp"),
        )


# Builders used by the instrumentation facade --------------------------------

def creation(
    entity_id: int, name: str, type_tag: str, scope_depth: int = 0
) -> Event:
    return Event(
        EventKind.CREATE,
        {
            "entity_id": entity_id,
            "name": name,
            "type_tag": type_tag,
            "scope_depth": scope_depth,
        },
    )


def borrow(dependent_id: int, target_id: int, exclusive: bool) -> Event:
    return Event(
        EventKind.BORROW,
        {
            "dependent_id": dependent_id,
            "target_id": target_id,
            "exclusive": bool(exclusive),
        },
    )


def move(from_id: int, to_id: int) -> Event:
    return Event(EventKind.MOVE, {"from_id": from_id, "to_id": to_id})


def shared_clone(new_id: int, source_id: int, strong_count: int) -> Event:
    return Event(
        EventKind.SHARED_CLONE,
        {
            "new_id": new_id,
            "source_id": source_id,
            "strong_count": strong_count,
        },
    )


def dynamic_access(access_id: int, target_id: int, exclusive: bool) -> Event:
    return Event(
        EventKind.DYNAMIC_ACCESS,
        {
            "access_id": access_id,
            "target_id": target_id,
            "exclusive": bool(exclusive),
        },
    )


def destruction(entity_id: int) -> Event:
    return Event(EventKind.DESTROY, {"entity_id": entity_id})
