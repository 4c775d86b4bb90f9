"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Arena-backed relationship graph store.

Entities live in a dict keyed by id and relationships in a list indexed by
``edge_id``; each entity keeps the edge ids of its outgoing and incoming
relationships. No node owns another, so cycles inserted by callers are
representable and detected later by the analysis layer.

Caller misuse (unknown ids, duplicate creation, double destruction) never
raises: it is logged at WARNING and kept as a ``ValidationWarning``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import (Any, Dict, Iterable, List, Mapping, Optional, Sequence,
                    Tuple, Union)

from borrowtrace.models import (Entity, Event, EventKind, Relationship,
                                RelationshipKind, ValidationWarning)

from .locking import TimedLock
from .snapshot import GraphSnapshot

_LOGGER = logging.getLogger(__name__)


class RelationshipGraphStore:
    """Thread-safe store of entities and the relationships between them."""

    def __init__(self) -> None:
        self._lock = TimedLock("graph_store")
        self._entities: Dict[int, Entity] = {}
        self._relationships: List[Relationship] = []
        self._outgoing: Dict[int, List[int]] = defaultdict(list)
        self._incoming: Dict[int, List[int]] = defaultdict(list)
        self._warnings: List[ValidationWarning] = []
        self._snapshot: Optional[GraphSnapshot] = None

    @classmethod
    def from_events(
        cls, events: Iterable[Event]
    ) -> "RelationshipGraphStore":
        """Build a store by replaying a recorded event log."""
        from .replay import replay_events

        return replay_events(events)

    @classmethod
    def from_snapshot(
        cls, snapshot: GraphSnapshot
    ) -> "RelationshipGraphStore":
        """Build a store holding exactly the contents of ``snapshot``."""
        store = cls()
        for entity in snapshot.entities():
            store._entities[entity.id] = entity
        for relationship in snapshot.relationships():
            store._relationships.append(relationship)
            store._outgoing[relationship.dependent_id].append(
                relationship.edge_id
            )
            store._incoming[relationship.depended_on_id].append(
                relationship.edge_id
            )
        return store

    # Mutations ---------------------------------------------------------------

    def add_entity(
        self, entity: Entity, *, event_id: Optional[int] = None
    ) -> int:
        """Insert ``entity``; a duplicate id is ignored with a warning."""
        self._insert_entity(entity, event_id)
        return entity.id

    def _insert_entity(
        self, entity: Entity, event_id: Optional[int]
    ) -> bool:
        warning: Optional[ValidationWarning] = None
        with self._lock.hold("add_entity"):
            if entity.id in self._entities:
                warning = self._warn(
                    "add_entity",
                    f"Entity {entity.id} already exists",
                    event_id,
                    (entity.id,),
                )
            else:
                self._entities[entity.id] = entity
                self._snapshot = None
        self._log(warning)
        return warning is None

    def add_entities(self, entities: Iterable[Entity]) -> List[int]:
        """Insert several entities under a single lock acquisition."""
        ids: List[int] = []
        warnings: List[ValidationWarning] = []
        with self._lock.hold("add_entities"):
            for entity in entities:
                if entity.id in self._entities:
                    warnings.append(
                        self._warn(
                            "add_entities",
                            f"Entity {entity.id} already exists",
                            None,
                            (entity.id,),
                        )
                    )
                else:
                    self._entities[entity.id] = entity
                ids.append(entity.id)
            self._snapshot = None
        for warning in warnings:
            self._log(warning)
        return ids

    def add_relationship(
        self,
        dependent_id: int,
        depended_on_id: int,
        kind: Union[RelationshipKind, str],
        at: int,
        payload: Optional[Mapping[str, Any]] = None,
        *,
        event_id: Optional[int] = None,
    ) -> Optional[int]:
        """
        Add an edge from ``dependent_id`` to ``depended_on_id``.

        :returns: the new ``edge_id``, or None when either id is unknown
        """

        kind = RelationshipKind(kind)
        warning: Optional[ValidationWarning] = None
        edge_id: Optional[int] = None
        with self._lock.hold("add_relationship"):
            missing = tuple(
                entity_id
                for entity_id in (dependent_id, depended_on_id)
                if entity_id not in self._entities
            )
            if missing:
                warning = self._warn(
                    "add_relationship",
                    f"{kind.value} references unknown entity id(s) "
                    f"{', '.join(str(item) for item in missing)}",
                    event_id,
                    (dependent_id, depended_on_id),
                )
            else:
                ends_at: Optional[int] = None
                if kind.is_interval:
                    # A dependent that is already gone closes the interval.
                    ends_at = self._entities[dependent_id].destroyed_at
                edge_id = len(self._relationships)
                self._relationships.append(
                    Relationship(
                        edge_id=edge_id,
                        dependent_id=dependent_id,
                        depended_on_id=depended_on_id,
                        kind=kind,
                        at=at,
                        ends_at=ends_at,
                        payload=dict(payload) if payload else None,
                    )
                )
                self._outgoing[dependent_id].append(edge_id)
                self._incoming[depended_on_id].append(edge_id)
                self._snapshot = None
        self._log(warning)
        return edge_id

    def mark_destroyed(
        self, entity_id: int, at: int, *, event_id: Optional[int] = None
    ) -> bool:
        """Record the destruction of ``entity_id`` at time ``at``.

        Every open interval relationship held by the entity ends at ``at``.
        """

        with self._lock.hold("mark_destroyed"):
            warning = self._destroy_locked(entity_id, at, event_id)
        self._log(warning)
        return warning is None

    def mark_destroyed_batch(self, entity_ids: Iterable[int], at: int) -> int:
        """Destroy several entities at ``at``; return how many succeeded."""
        warnings: List[ValidationWarning] = []
        marked = 0
        with self._lock.hold("mark_destroyed_batch"):
            for entity_id in entity_ids:
                warning = self._destroy_locked(entity_id, at, None)
                if warning is None:
                    marked += 1
                else:
                    warnings.append(warning)
        for warning in warnings:
            self._log(warning)
        return marked

    def apply(self, event: Event) -> bool:
        """Consume one stamped event; False when it was skipped."""
        if not isinstance(event.timestamp, int):
            self._record_warning(
                "apply", "Event has no integer timestamp", event.event_id
            )
            return False
        if not event.has_mapping_payload:
            self._record_warning(
                "apply",
                f"{event.kind.value} event payload is not a mapping",
                event.event_id,
            )
            return False
        missing = event.missing_keys()
        if missing:
            self._record_warning(
                "apply",
                f"{event.kind.value} event is missing payload key(s) "
                f"{', '.join(missing)}",
                event.event_id,
            )
            return False
        try:
            return self._dispatch(event, event.timestamp)
        except (TypeError, ValueError) as exc:
            self._record_warning(
                "apply",
                f"{event.kind.value} event has a malformed payload: {exc}",
                event.event_id,
            )
            return False

    def clear(self) -> None:
        """Drop all entities, relationships and warnings."""
        with self._lock.hold("clear"):
            self._entities = {}
            self._relationships = []
            self._outgoing = defaultdict(list)
            self._incoming = defaultdict(list)
            self._warnings = []
            self._snapshot = None

    # Reads -------------------------------------------------------------------

    def snapshot(self, timeout: Optional[float] = None) -> GraphSnapshot:
        """Return an immutable view, building it only after mutations.

        :raises LockUnavailable: when ``timeout`` expires first
        """

        with self._lock.hold("snapshot", timeout):
            if self._snapshot is None:
                self._snapshot = GraphSnapshot(
                    self._entities,
                    self._relationships,
                    self._outgoing,
                    self._incoming,
                )
            return self._snapshot

    def entity(self, entity_id: int) -> Optional[Entity]:
        with self._lock.hold("entity"):
            return self._entities.get(entity_id)

    def relationship(self, edge_id: int) -> Optional[Relationship]:
        with self._lock.hold("relationship"):
            if 0 <= edge_id < len(self._relationships):
                return self._relationships[edge_id]
            return None

    def entities(self) -> List[Entity]:
        with self._lock.hold("entities"):
            return [self._entities[key] for key in sorted(self._entities)]

    def relationships(self) -> List[Relationship]:
        with self._lock.hold("relationships"):
            return list(self._relationships)

    def outgoing(self, entity_id: int) -> List[Relationship]:
        with self._lock.hold("outgoing"):
            return [
                self._relationships[edge]
                for edge in self._outgoing.get(entity_id, ())
            ]

    def incoming(self, entity_id: int) -> List[Relationship]:
        with self._lock.hold("incoming"):
            return [
                self._relationships[edge]
                for edge in self._incoming.get(entity_id, ())
            ]

    @property
    def node_count(self) -> int:
        with self._lock.hold("node_count"):
            return len(self._entities)

    @property
    def edge_count(self) -> int:
        with self._lock.hold("edge_count"):
            return len(self._relationships)

    def warnings(self) -> Tuple[ValidationWarning, ...]:
        with self._lock.hold("warnings"):
            return tuple(self._warnings)

    # Internals ---------------------------------------------------------------

    def _dispatch(self, event: Event, at: int) -> bool:
        payload = event.payload
        event_id = event.event_id
        if event.kind is EventKind.CREATE:
            entity = Entity(
                id=_as_int(payload["entity_id"]),
                name=str(payload["name"]),
                type_tag=str(payload["type_tag"]),
                created_at=at,
                scope_depth=_as_int(payload.get("scope_depth", 0)),
            )
            return self._insert_entity(entity, event_id)
        if event.kind is EventKind.BORROW:
            edge = self.add_relationship(
                _as_int(payload["dependent_id"]),
                _as_int(payload["target_id"]),
                RelationshipKind.borrow(bool(payload["exclusive"])),
                at,
                event_id=event_id,
            )
            return edge is not None
        if event.kind is EventKind.MOVE:
            # The receiving entity now depends on the value it took over.
            edge = self.add_relationship(
                _as_int(payload["to_id"]),
                _as_int(payload["from_id"]),
                RelationshipKind.MOVE,
                at,
                event_id=event_id,
            )
            return edge is not None
        if event.kind is EventKind.SHARED_CLONE:
            edge = self.add_relationship(
                _as_int(payload["new_id"]),
                _as_int(payload["source_id"]),
                RelationshipKind.SHARED_OWNERSHIP_CLONE,
                at,
                {"strong_count": _as_int(payload["strong_count"])},
                event_id=event_id,
            )
            return edge is not None
        if event.kind is EventKind.DYNAMIC_ACCESS:
            edge = self.add_relationship(
                _as_int(payload["access_id"]),
                _as_int(payload["target_id"]),
                RelationshipKind.dynamic_access(bool(payload["exclusive"])),
                at,
                event_id=event_id,
            )
            return edge is not None
        return self.mark_destroyed(
            _as_int(payload["entity_id"]), at, event_id=event_id
        )

    def _destroy_locked(
        self, entity_id: int, at: int, event_id: Optional[int]
    ) -> Optional[ValidationWarning]:
        entity = self._entities.get(entity_id)
        if entity is None:
            return self._warn(
                "mark_destroyed",
                f"Entity {entity_id} is unknown",
                event_id,
                (entity_id,),
            )
        if entity.destroyed_at is not None:
            return self._warn(
                "mark_destroyed",
                f"Entity {entity_id} already destroyed at "
                f"{entity.destroyed_at}",
                event_id,
                (entity_id,),
            )
        if at < entity.created_at:
            return self._warn(
                "mark_destroyed",
                f"Entity {entity_id} destroyed at {at} before creation at "
                f"{entity.created_at}",
                event_id,
                (entity_id,),
            )
        self._entities[entity_id] = replace(entity, destroyed_at=at)
        for edge_id in self._outgoing.get(entity_id, ()):
            relationship = self._relationships[edge_id]
            if relationship.kind.is_interval and relationship.ends_at is None:
                self._relationships[edge_id] = replace(
                    relationship, ends_at=at
                )
        self._snapshot = None
        return None

    def _warn(
        self,
        operation: str,
        message: str,
        event_id: Optional[int],
        entity_ids: Sequence[int] = (),
    ) -> ValidationWarning:
        # Caller holds the lock.
        warning = ValidationWarning(
            operation=operation,
            message=message,
            event_id=event_id,
            entity_ids=tuple(entity_ids),
        )
        self._warnings.append(warning)
        return warning

    def _record_warning(
        self, operation: str, message: str, event_id: Optional[int]
    ) -> None:
        with self._lock.hold(operation):
            warning = self._warn(operation, message, event_id)
        self._log(warning)

    @staticmethod
    def _log(warning: Optional[ValidationWarning]) -> None:
        if warning is None:
            return
        if warning.event_id is None:
            _LOGGER.warning("%s: %s", warning.operation, warning.message)
        else:
            _LOGGER.warning(
                "%s (event %s): %s",
                warning.operation,
                warning.event_id,
                warning.message,
            )


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f"expected an integer id, got {value!r}")
    return int(value)
