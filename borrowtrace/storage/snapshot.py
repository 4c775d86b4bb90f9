"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Immutable graph snapshot shared by every read-only algorithm.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from borrowtrace.models import Entity, Relationship

_EMPTY: Tuple[Relationship, ...] = ()


class GraphSnapshot:
    """Frozen copy of the store taken under its lock.

    Algorithms run against a snapshot without holding any lock, so a long
    traversal or export never blocks instrumented threads.
    """

    __slots__ = (
        "_entities",
        "_order",
        "_relationships",
        "_outgoing",
        "_incoming",
    )

    def __init__(
        self,
        entities: Mapping[int, Entity],
        relationships: Sequence[Relationship],
        outgoing: Mapping[int, Sequence[int]],
        incoming: Mapping[int, Sequence[int]],
    ) -> None:
        self._entities: Dict[int, Entity] = dict(entities)
        self._order: Tuple[Entity, ...] = tuple(
            self._entities[key] for key in sorted(self._entities)
        )
        self._relationships: Tuple[Relationship, ...] = tuple(relationships)
        self._outgoing: Dict[int, Tuple[Relationship, ...]] = {
            key: tuple(self._relationships[edge] for edge in edges)
            for key, edges in outgoing.items()
            if edges
        }
        self._incoming: Dict[int, Tuple[Relationship, ...]] = {
            key: tuple(self._relationships[edge] for edge in edges)
            for key, edges in incoming.items()
            if edges
        }

    @classmethod
    def from_parts(
        cls,
        entities: Iterable[Entity],
        relationships: Iterable[Relationship],
    ) -> "GraphSnapshot":
        """Build a snapshot directly from entities and relationships.

        Relationships are re-numbered by position so ``edge_id`` always
        indexes the relationship tuple.
        """

        entity_map = {entity.id: entity for entity in entities}
        ordered: List[Relationship] = []
        outgoing: Dict[int, List[int]] = {}
        incoming: Dict[int, List[int]] = {}
        for index, relationship in enumerate(relationships):
            if relationship.edge_id != index:
                relationship = Relationship(
                    edge_id=index,
                    dependent_id=relationship.dependent_id,
                    depended_on_id=relationship.depended_on_id,
                    kind=relationship.kind,
                    at=relationship.at,
                    ends_at=relationship.ends_at,
                    payload=relationship.payload,
                )
            ordered.append(relationship)
            outgoing.setdefault(relationship.dependent_id, []).append(index)
            incoming.setdefault(relationship.depended_on_id, []).append(
                index
            )
        return cls(entity_map, ordered, outgoing, incoming)

    @property
    def node_count(self) -> int:
        return len(self._entities)

    @property
    def edge_count(self) -> int:
        return len(self._relationships)

    @property
    def is_empty(self) -> bool:
        return not self._entities and not self._relationships

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def entity(self, entity_id: int) -> Optional[Entity]:
        return self._entities.get(entity_id)

    def entities(self) -> Tuple[Entity, ...]:
        return self._order

    def entity_ids(self) -> List[int]:
        return [entity.id for entity in self._order]

    def relationship(self, edge_id: int) -> Optional[Relationship]:
        if 0 <= edge_id < len(self._relationships):
            return self._relationships[edge_id]
        return None

    def relationships(self) -> Tuple[Relationship, ...]:
        return self._relationships

    def outgoing(self, entity_id: int) -> Tuple[Relationship, ...]:
        return self._outgoing.get(entity_id, _EMPTY)

    def incoming(self, entity_id: int) -> Tuple[Relationship, ...]:
        return self._incoming.get(entity_id, _EMPTY)

    def successors(self, entity_id: int) -> List[int]:
        """Distinct entities ``entity_id`` depends on, in edge order."""
        return _distinct(
            rel.depended_on_id for rel in self.outgoing(entity_id)
        )

    def predecessors(self, entity_id: int) -> List[int]:
        """Distinct entities depending on ``entity_id``, in edge order."""
        return _distinct(
            rel.dependent_id for rel in self.incoming(entity_id)
        )

    def event_times(self) -> List[int]:
        """Sorted distinct timestamps at which the graph changed."""
        times = set()
        for entity in self._order:
            times.add(entity.created_at)
            if entity.destroyed_at is not None:
                times.add(entity.destroyed_at)
        for relationship in self._relationships:
            times.add(relationship.at)
            if relationship.ends_at is not None:
                times.add(relationship.ends_at)
        return sorted(times)

    def __repr__(self) -> str:
        return (
            f"GraphSnapshot(nodes={self.node_count}, "
            f"edges={self.edge_count})"
        )


def _distinct(values: Iterable[int]) -> List[int]:
    seen = set()
    ordered: List[int] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered
