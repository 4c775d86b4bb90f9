"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Domain models for tracked values (entities) and their relationships.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class RelationshipKind(str, Enum):
    """Kind of dependency recorded between two entities."""

    EXCLUSIVE_BORROW = "exclusive_borrow"
    SHARED_BORROW = "shared_borrow"
    MOVE = "move"
    SHARED_OWNERSHIP_CLONE = "shared_ownership_clone"
    DYNAMIC_EXCLUSIVE_ACCESS = "dynamic_exclusive_access"
    DYNAMIC_SHARED_ACCESS = "dynamic_shared_access"

    @property
    def is_interval(self) -> bool:
        """Borrow and access kinds span time; moves and clones do not."""
        return self in _INTERVAL_KINDS

    @property
    def is_exclusive(self) -> bool:
        return self in (
            RelationshipKind.EXCLUSIVE_BORROW,
            RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS,
        )

    @property
    def is_shared(self) -> bool:
        return self in (
            RelationshipKind.SHARED_BORROW,
            RelationshipKind.DYNAMIC_SHARED_ACCESS,
        )

    @property
    def is_dynamic(self) -> bool:
        return self in (
            RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS,
            RelationshipKind.DYNAMIC_SHARED_ACCESS,
        )

    @property
    def tag(self) -> int:
        """Small stable integer used by the compact export."""
        return _KIND_ORDER.index(self)

    @classmethod
    def from_tag(cls, tag: int) -> "RelationshipKind":
        if not 0 <= tag < len(_KIND_ORDER):
            raise ValueError(f"Relationship kind tag '{tag}' is invalid")
        return _KIND_ORDER[tag]

    @classmethod
    def borrow(cls, exclusive: bool) -> "RelationshipKind":
        return cls.EXCLUSIVE_BORROW if exclusive else cls.SHARED_BORROW

    @classmethod
    def dynamic_access(cls, exclusive: bool) -> "RelationshipKind":
        if exclusive:
            return cls.DYNAMIC_EXCLUSIVE_ACCESS
        return cls.DYNAMIC_SHARED_ACCESS


_KIND_ORDER = tuple(RelationshipKind)
_INTERVAL_KINDS = frozenset(
    {
        RelationshipKind.EXCLUSIVE_BORROW,
        RelationshipKind.SHARED_BORROW,
        RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS,
        RelationshipKind.DYNAMIC_SHARED_ACCESS,
    }
)


@dataclass(frozen=True)
class Entity:
    """One tracked value instance (a graph node)."""

    id: int
    name: str
    type_tag: str
    created_at: int
    destroyed_at: Optional[int] = None
    scope_depth: int = 0

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"Entity id '{self.id}' must be non-negative")
        if self.scope_depth < 0:
            raise ValueError("scope_depth must be non-negative")
        if (
            self.destroyed_at is not None
            and self.destroyed_at < self.created_at
        ):
            raise ValueError(
                f"Entity {self.id} destroyed at {self.destroyed_at} "
                f"before creation at {self.created_at}"
            )

    @property
    def is_alive(self) -> bool:
        return self.destroyed_at is None

    @property
    def lifespan(self) -> Optional[int]:
        if self.destroyed_at is None:
            return None
        return self.destroyed_at - self.created_at

    def is_alive_at(self, time: int) -> bool:
        """Alive when created at or before ``time`` and not yet destroyed."""
        if self.created_at > time:
            return False
        return self.destroyed_at is None or self.destroyed_at > time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type_tag": self.type_tag,
            "created_at": self.created_at,
            "destroyed_at": self.destroyed_at,
            "scope_depth": self.scope_depth,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Entity":
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            type_tag=str(data["type_tag"]),
            created_at=int(data["created_at"]),
            destroyed_at=(
                None
                if data.get("destroyed_at") is None
                else int(data["destroyed_at"])
            ),
            scope_depth=int(data.get("scope_depth", 0)),
        )


@dataclass(frozen=True)
class Relationship:
    """Directed edge from a dependent entity to the entity it rests upon."""

    edge_id: int
    dependent_id: int
    depended_on_id: int
    kind: RelationshipKind
    at: int
    ends_at: Optional[int] = None
    payload: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, RelationshipKind):
            raise ValueError(
                f"Relationship kind '{self.kind}' is not recognized"
            )
        if self.ends_at is not None and not self.kind.is_interval:
            raise ValueError(
                f"{self.kind.value} relationships are point events and "
                "cannot carry ends_at"
            )

    @property
    def strong_count(self) -> Optional[int]:
        if not self.payload:
            return None
        value = self.payload.get("strong_count")
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def covers(self, time: int) -> bool:
        """True when the interval ``[at, ends_at)`` contains ``time``."""
        if not self.kind.is_interval or self.at > time:
            return False
        return self.ends_at is None or self.ends_at > time
