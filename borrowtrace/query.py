"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Composable read-only queries and aggregate statistics over a snapshot.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import (Any, Callable, Dict, Iterable, List, Optional, Sequence,
                    Tuple, Union)

from borrowtrace.analysis.traversal import dependency_depths
from borrowtrace.models import Entity, Relationship, RelationshipKind
from borrowtrace.storage.base import GraphView

_LOGGER = logging.getLogger(__name__)

Predicate = Callable[[Entity], bool]

_DIRECTIONS = ("any", "incoming", "outgoing")


class EntityQuery:
    """Chainable entity filter; every predicate narrows the result (AND).

    Each call returns a new query, so a partially built query can be reused
    as the base of several narrower ones.
    """

    def __init__(
        self, view: GraphView, predicates: Sequence[Predicate] = ()
    ) -> None:
        self._view = view
        self._predicates: Tuple[Predicate, ...] = tuple(predicates)

    def where(self, predicate: Predicate) -> "EntityQuery":
        return EntityQuery(self._view, self._predicates + (predicate,))

    # Predicates --------------------------------------------------------------

    def name_contains(self, fragment: str) -> "EntityQuery":
        return self.where(lambda entity: fragment in entity.name)

    def name_is(self, name: str) -> "EntityQuery":
        return self.where(lambda entity: entity.name == name)

    def type_is(self, type_tag: str) -> "EntityQuery":
        return self.where(lambda entity: entity.type_tag == type_tag)

    def alive_at(self, time: int) -> "EntityQuery":
        return self.where(lambda entity: entity.is_alive_at(time))

    def alive(self) -> "EntityQuery":
        return self.where(lambda entity: entity.destroyed_at is None)

    def destroyed(self) -> "EntityQuery":
        return self.where(lambda entity: entity.destroyed_at is not None)

    def in_scope(self, depth: int) -> "EntityQuery":
        return self.where(lambda entity: entity.scope_depth == depth)

    def created_between(self, start: int, end: int) -> "EntityQuery":
        """Created within the inclusive range ``[start, end]``."""
        return self.where(lambda entity: start <= entity.created_at <= end)

    def destroyed_between(self, start: int, end: int) -> "EntityQuery":
        """Destroyed within the inclusive range ``[start, end]``."""
        return self.where(
            lambda entity: entity.destroyed_at is not None
            and start <= entity.destroyed_at <= end
        )

    def with_relationship_kinds(
        self,
        kinds: Iterable[Union[RelationshipKind, str]],
        direction: str = "any",
    ) -> "EntityQuery":
        """
        Keep entities touching at least one relationship of ``kinds``.

        :param direction: ``"outgoing"`` (entity is the dependent),
            ``"incoming"`` (entity is depended upon) or ``"any"``
        """

        if direction not in _DIRECTIONS:
            raise ValueError(
                f"direction must be one of {', '.join(_DIRECTIONS)}"
            )
        wanted = frozenset(RelationshipKind(kind) for kind in kinds)
        view = self._view

        def _matches(entity: Entity) -> bool:
            edges: List[Any] = []
            if direction in ("any", "outgoing"):
                edges.extend(view.outgoing(entity.id))
            if direction in ("any", "incoming"):
                edges.extend(view.incoming(entity.id))
            return any(edge.kind in wanted for edge in edges)

        return self.where(_matches)

    # Terminal operations -----------------------------------------------------

    def all(self) -> List[Entity]:
        """Matching entities ordered by id."""
        return [
            entity
            for entity in self._view.entities()
            if all(predicate(entity) for predicate in self._predicates)
        ]

    def ids(self) -> List[int]:
        return [entity.id for entity in self.all()]

    def names(self) -> List[str]:
        return [entity.name for entity in self.all()]

    def count(self) -> int:
        return len(self.all())

    def first(self) -> Optional[Entity]:
        for entity in self._view.entities():
            if all(predicate(entity) for predicate in self._predicates):
                return entity
        return None


def query(view: GraphView) -> EntityQuery:
    return EntityQuery(view)


@dataclass(frozen=True)
class GraphStatistics:
    """Aggregate figures for one snapshot."""

    entity_count: int
    relationship_count: int
    alive_count: int
    counts_by_kind: Dict[str, int] = field(default_factory=dict)
    average_lifespan: Optional[float] = None
    max_lifespan: Optional[int] = None
    max_dependency_depth: int = 0
    most_depended_on: Optional[int] = None
    most_depended_on_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_count": self.entity_count,
            "relationship_count": self.relationship_count,
            "alive_count": self.alive_count,
            "counts_by_kind": dict(self.counts_by_kind),
            "average_lifespan": self.average_lifespan,
            "max_lifespan": self.max_lifespan,
            "max_dependency_depth": self.max_dependency_depth,
            "most_depended_on": self.most_depended_on,
            "most_depended_on_count": self.most_depended_on_count,
        }


def compute_statistics(view: GraphView) -> GraphStatistics:
    """Entity and edge aggregates from one pass over each collection."""

    alive = 0
    lifespan_total = 0
    lifespan_count = 0
    max_lifespan: Optional[int] = None
    for entity in view.entities():
        lifespan = entity.lifespan
        if lifespan is None:
            alive += 1
            continue
        lifespan_total += lifespan
        lifespan_count += 1
        if max_lifespan is None or lifespan > max_lifespan:
            max_lifespan = lifespan

    counts_by_kind = {kind.value: 0 for kind in RelationshipKind}
    dependents: Dict[int, set] = {}
    for relationship in view.relationships():
        counts_by_kind[relationship.kind.value] += 1
        dependents.setdefault(relationship.depended_on_id, set()).add(
            relationship.dependent_id
        )

    most_depended_on: Optional[int] = None
    most_count = 0
    for entity_id in sorted(dependents):
        count = len(dependents[entity_id])
        if count > most_count:
            most_depended_on, most_count = entity_id, count

    depths = dependency_depths(view)
    stats = GraphStatistics(
        entity_count=view.node_count,
        relationship_count=view.edge_count,
        alive_count=alive,
        counts_by_kind=counts_by_kind,
        average_lifespan=(
            lifespan_total / lifespan_count if lifespan_count else None
        ),
        max_lifespan=max_lifespan,
        max_dependency_depth=max(depths.values(), default=0),
        most_depended_on=most_depended_on,
        most_depended_on_count=most_count,
    )
    _LOGGER.debug("Computed statistics: %s", stats)
    return stats


def _lifespans(view: GraphView) -> List[int]:
    return sorted(
        entity.lifespan
        for entity in view.entities()
        if entity.lifespan is not None
    )


def lifespan_percentile(view: GraphView, percentile: float) -> Optional[int]:
    """Lifespan percentile over destroyed entities.

    Returns None when ``percentile`` is outside ``[0, 100]`` or nothing
    has been destroyed yet.
    """

    if not 0.0 <= percentile <= 100.0:
        return None
    lifespans = _lifespans(view)
    if not lifespans:
        return None
    # Round half up.
    index = math.floor((percentile / 100.0) * (len(lifespans) - 1) + 0.5)
    return lifespans[index]


def find_by_lifespan(
    view: GraphView,
    minimum: int = 0,
    maximum: Optional[int] = None,
) -> List[Entity]:
    """Destroyed entities whose lifespan lies in ``[minimum, maximum]``."""
    return [
        entity
        for entity in view.entities()
        if entity.lifespan is not None
        and entity.lifespan >= minimum
        and (maximum is None or entity.lifespan <= maximum)
    ]


def overlapping_lifetimes(view: GraphView, entity_id: int) -> List[Entity]:
    """Entities whose lifetime overlaps that of ``entity_id``."""
    subject = view.entity(entity_id)
    if subject is None:
        return []
    start = subject.created_at
    end = subject.destroyed_at
    return [
        entity
        for entity in view.entities()
        if entity.id != entity_id
        and (end is None or entity.created_at < end)
        and (entity.destroyed_at is None or entity.destroyed_at > start)
    ]


# Graph-wide lifetime timeline ----------------------------------------------

def active_relationships_at(view: GraphView, time: int) -> List[Relationship]:
    """Borrows and dynamic accesses whose ``[at, ends_at)`` covers ``time``."""
    return [rel for rel in view.relationships() if rel.covers(time)]


def relationships_for(view: GraphView, entity_id: int) -> List[Relationship]:
    """Interval relationships ``entity_id`` holds or is the target of."""
    edges = list(view.outgoing(entity_id)) + list(view.incoming(entity_id))
    return sorted(
        (rel for rel in edges if rel.kind.is_interval),
        key=lambda rel: rel.edge_id,
    )


def timeline_bounds(view: GraphView) -> Optional[Tuple[int, int]]:
    """Earliest and latest event time in the graph; None when empty."""
    times: List[int] = []
    for entity in view.entities():
        times.append(entity.created_at)
        if entity.destroyed_at is not None:
            times.append(entity.destroyed_at)
    for rel in view.relationships():
        times.append(rel.at)
        if rel.ends_at is not None:
            times.append(rel.ends_at)
    if not times:
        return None
    return min(times), max(times)


def total_duration(view: GraphView) -> int:
    bounds = timeline_bounds(view)
    return 0 if bounds is None else bounds[1] - bounds[0]
