"""Report records produced by the store and the conflict detector."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ValidationWarning:
    """Non-fatal record of caller misuse or malformed replay input."""

    operation: str
    message: str
    event_id: Optional[int] = None
    entity_ids: Tuple[int, ...] = ()


class ConflictKind(str, Enum):
    """Exclusivity rule that a pair of overlapping intervals violates."""

    MULTIPLE_EXCLUSIVE = "multiple_exclusive"
    EXCLUSIVE_SHARED = "exclusive_shared"


@dataclass(frozen=True)
class ConflictRecord:
    """Two overlapping accesses on one target that break exclusivity."""

    kind: ConflictKind
    target_entity_id: int
    participant_ids: Tuple[int, int]
    overlap_range: Tuple[int, Optional[int]]
    dynamic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "target_entity_id": self.target_entity_id,
            "participant_ids": list(self.participant_ids),
            "overlap_range": list(self.overlap_range),
            "dynamic": self.dynamic,
        }
