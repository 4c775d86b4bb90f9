"""Integrity checks over a graph view."""

from __future__ import annotations

from typing import List

from borrowtrace.storage.base import GraphView

from .traversal import find_cycle


def validate_graph(view: GraphView) -> List[str]:
    """
    Return human-readable integrity problems; an empty list means valid.

    Checks for cycles, relationships that reference missing entities, and
    borrows or accesses that start before their target exists or after it
    was destroyed.
    """

    problems: List[str] = []

    cycle = find_cycle(view)
    if cycle is not None:
        problems.append(
            "Graph contains a cycle (invalid ownership): "
            + " -> ".join(str(item) for item in cycle + cycle[:1])
        )

    for relationship in view.relationships():
        dependent = view.entity(relationship.dependent_id)
        target = view.entity(relationship.depended_on_id)
        if dependent is None or target is None:
            problems.append(
                f"Relationship {relationship.edge_id} references a missing "
                "entity"
            )
            continue
        if not relationship.kind.is_interval:
            continue
        if relationship.at < target.created_at:
            problems.append(
                f"Access by '{dependent.name}' (id={dependent.id}) happens "
                f"before '{target.name}' (id={target.id}) was created"
            )
        if (
            target.destroyed_at is not None
            and relationship.at >= target.destroyed_at
        ):
            problems.append(
                f"Access by '{dependent.name}' (id={dependent.id}) happens "
                f"after '{target.name}' (id={target.id}) was destroyed"
            )
    return problems
