"""Read-only graph interface consumed by analysis, query and export."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from borrowtrace.models import Entity, Relationship


class GraphView(Protocol):
    """Point-in-time view of entities and relationships."""

    @property
    def node_count(self) -> int:
        """Number of entities in the view."""

    @property
    def edge_count(self) -> int:
        """Number of relationships in the view."""

    def entity(self, entity_id: int) -> Optional[Entity]:
        """Return the entity or None when the id is unknown."""

    def entities(self) -> Sequence[Entity]:
        """Every entity, ordered by id."""

    def relationships(self) -> Sequence[Relationship]:
        """Every relationship, ordered by edge id."""

    def outgoing(self, entity_id: int) -> Sequence[Relationship]:
        """Relationships where ``entity_id`` is the dependent."""

    def incoming(self, entity_id: int) -> Sequence[Relationship]:
        """Relationships where ``entity_id`` is depended upon."""
