"""Graphviz DOT rendering of a graph snapshot."""

from __future__ import annotations

from typing import Dict, List

from borrowtrace import config
from borrowtrace.models import Entity, Relationship, RelationshipKind
from borrowtrace.storage.base import GraphView

_EDGE_LINE_STYLE: Dict[RelationshipKind, str] = {
    RelationshipKind.EXCLUSIVE_BORROW: "solid",
    RelationshipKind.SHARED_BORROW: "solid",
    RelationshipKind.MOVE: "bold",
    RelationshipKind.SHARED_OWNERSHIP_CLONE: "dashed",
    RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS: "dotted",
    RelationshipKind.DYNAMIC_SHARED_ACCESS: "dotted",
}

_EDGE_PREFIX: Dict[RelationshipKind, str] = {
    RelationshipKind.EXCLUSIVE_BORROW: "&mut",
    RelationshipKind.SHARED_BORROW: "&",
    RelationshipKind.MOVE: "move",
    RelationshipKind.SHARED_OWNERSHIP_CLONE: "clone",
    RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS: "dyn-mut",
    RelationshipKind.DYNAMIC_SHARED_ACCESS: "dyn",
}


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _node_statement(entity: Entity) -> str:
    label = "\\n".join(
        (
            _escape(entity.name),
            _escape(entity.type_tag),
            f"@{entity.created_at}",
        )
    )
    colour = "lightblue" if entity.is_alive else "lightgray"
    return (
        f'  n{entity.id} [label="{label}", fillcolor={colour}, '
        "style=filled];"
    )


def _edge_label(relationship: Relationship) -> str:
    prefix = _EDGE_PREFIX[relationship.kind]
    if relationship.strong_count is not None:
        prefix = f"{prefix}({relationship.strong_count})"
    span = f"@{relationship.at}"
    if relationship.ends_at is not None:
        span = f"{span}..{relationship.ends_at}"
    return _escape(prefix + span)


def _edge_statement(relationship: Relationship) -> str:
    colour = config.EDGE_COLORS[relationship.kind.value]
    return (
        f"  n{relationship.dependent_id} -> n{relationship.depended_on_id} "
        f'[label="{_edge_label(relationship)}", color="{colour}", '
        f"style={_EDGE_LINE_STYLE[relationship.kind]}];"
    )


def export_graph_description(
    view: GraphView, *, graph_name: str = "OwnershipGraph"
) -> str:
    """One DOT statement per entity and per relationship.

    Edges point from the dependent to the entity it depends on.
    """

    lines: List[str] = [
        f"digraph {graph_name} {{",
        "  rankdir=LR;",
        "  node [shape=box];",
        "",
    ]
    lines.extend(_node_statement(entity) for entity in view.entities())
    lines.append("")
    lines.extend(_edge_statement(rel) for rel in view.relationships())
    lines.append("}")
    return "\n".join(lines) + "\n"

