"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Visualization-oriented export: graph elements with style classes, a style
sheet, a suggested layout and, optionally, one frame per event time for
animated playback.

Classes are derived from entity state and relationship kinds only, never
from the free-form ``type_tag``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from borrowtrace import config
from borrowtrace.errors import ExportError
from borrowtrace.models import Entity, Relationship, RelationshipKind
from borrowtrace.storage.base import GraphView

_LOGGER = logging.getLogger(__name__)

_ROLE_CLASSES: Dict[RelationshipKind, str] = {
    RelationshipKind.EXCLUSIVE_BORROW: "exclusive-ref",
    RelationshipKind.SHARED_BORROW: "shared-ref",
    RelationshipKind.MOVE: "moved-into",
    RelationshipKind.SHARED_OWNERSHIP_CLONE: "shared-owner",
    RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS: "dynamic-ref",
    RelationshipKind.DYNAMIC_SHARED_ACCESS: "dynamic-ref",
}

_NODE_ROLE_COLOURS = {
    "exclusive-ref": ("#e74c3c", "#c0392b"),
    "shared-ref": ("#2ecc71", "#27ae60"),
    "moved-into": ("#f39c12", "#e67e22"),
    "shared-owner": ("#9b59b6", "#8e44ad"),
    "dynamic-ref": ("#d35400", "#a04000"),
}


def _edge_class(kind: RelationshipKind) -> str:
    return kind.value.replace("_", "-")


def node_classes(view: GraphView, entity: Entity) -> List[str]:
    classes = ["alive" if entity.is_alive else "destroyed"]
    roles: List[str] = []
    for relationship in view.outgoing(entity.id):
        role = _ROLE_CLASSES[relationship.kind]
        if role not in roles:
            roles.append(role)
    classes.extend(roles or ["owner"])
    if view.incoming(entity.id):
        classes.append("depended-on")
    return classes


def edge_classes(
    relationship: Relationship, time: Optional[int] = None
) -> List[str]:
    classes = [_edge_class(relationship.kind)]
    if relationship.kind.is_dynamic:
        classes.append("dynamic")
    if relationship.kind.is_interval:
        if time is None:
            ended = relationship.ends_at is not None
        else:
            ended = not relationship.covers(time)
        classes.append("ended" if ended else "active")
    return classes


def _node_element(
    view: GraphView, entity: Entity, time: Optional[int] = None
) -> Dict[str, Any]:
    is_alive = (
        entity.is_alive if time is None else entity.is_alive_at(time)
    )
    classes = node_classes(view, entity)
    if time is not None:
        classes[0] = "alive" if is_alive else "destroyed"
    return {
        "data": {
            "id": str(entity.id),
            "label": entity.name,
            "type": entity.type_tag,
            "created_at": entity.created_at,
            "destroyed_at": entity.destroyed_at,
            "scope_depth": entity.scope_depth,
            "is_alive": is_alive,
        },
        "classes": " ".join(classes),
    }


def _edge_element(
    relationship: Relationship, time: Optional[int] = None
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": f"e{relationship.edge_id}",
        "source": str(relationship.dependent_id),
        "target": str(relationship.depended_on_id),
        "relationship": relationship.kind.value,
        "at": relationship.at,
    }
    if relationship.ends_at is not None:
        data["ends_at"] = relationship.ends_at
    if relationship.payload:
        data["extra"] = dict(relationship.payload)
    return {
        "data": data,
        "classes": " ".join(edge_classes(relationship, time)),
    }


def style_rules() -> List[Dict[str, Any]]:
    """Style sheet keyed by the classes emitted above."""
    rules: List[Dict[str, Any]] = [
        {
            "selector": "node",
            "style": {
                "label": "data(label)",
                "text-valign": "center",
                "text-halign": "center",
                "background-color": "#3498db",
                "color": "#fff",
                "font-size": "12px",
                "width": "60px",
                "height": "60px",
                "border-width": "2px",
                "border-color": "#2980b9",
            },
        },
        {
            "selector": "node.destroyed",
            "style": {
                "background-color": "#95a5a6",
                "border-color": "#7f8c8d",
                "opacity": 0.6,
            },
        },
    ]
    for role, (fill, border) in _NODE_ROLE_COLOURS.items():
        rules.append(
            {
                "selector": f"node.{role}",
                "style": {"background-color": fill, "border-color": border},
            }
        )
    rules.append(
        {
            "selector": "edge",
            "style": {
                "width": 2,
                "line-color": "#95a5a6",
                "target-arrow-color": "#95a5a6",
                "target-arrow-shape": "triangle",
                "curve-style": "bezier",
            },
        }
    )
    for kind in RelationshipKind:
        colour = config.EDGE_COLORS[kind.value]
        style: Dict[str, Any] = {
            "line-color": colour,
            "target-arrow-color": colour,
        }
        if kind.is_exclusive:
            style["width"] = 3
        if not kind.is_interval:
            style["line-style"] = "dashed"
        rules.append({"selector": f"edge.{_edge_class(kind)}", "style": style})
    rules.append(
        {"selector": "edge.dynamic", "style": {"line-style": "dotted"}}
    )
    rules.append({"selector": "edge.ended", "style": {"opacity": 0.5}})
    return rules


def layout_config(name: str = config.DEFAULT_LAYOUT) -> Dict[str, Any]:
    if name not in config.LAYOUT_PRESETS:
        raise ExportError(
            f"Unknown layout '{name}'; expected one of "
            f"{', '.join(sorted(config.LAYOUT_PRESETS))}"
        )
    return {"name": name, "options": dict(config.LAYOUT_PRESETS[name])}


def build_frames(view: GraphView) -> List[Dict[str, Any]]:
    """One frame per distinct event time, holding what existed by then."""
    times = set()
    for entity in view.entities():
        times.add(entity.created_at)
        if entity.destroyed_at is not None:
            times.add(entity.destroyed_at)
    for relationship in view.relationships():
        times.add(relationship.at)
        if relationship.ends_at is not None:
            times.add(relationship.ends_at)

    frames: List[Dict[str, Any]] = []
    for time in sorted(times):
        nodes = [
            _node_element(view, entity, time)
            for entity in view.entities()
            if entity.created_at <= time
        ]
        present = {int(node["data"]["id"]) for node in nodes}
        edges = [
            _edge_element(relationship, time)
            for relationship in view.relationships()
            if relationship.at <= time
            and relationship.dependent_id in present
            and relationship.depended_on_id in present
        ]
        frames.append({"timestamp": time, "nodes": nodes, "edges": edges})
    return frames


def build_visualization_document(
    view: GraphView,
    *,
    layout: str = config.DEFAULT_LAYOUT,
    frames: bool = False,
) -> Dict[str, Any]:
    """
    Build the visualization document as a dict.

    :param layout: key of ``config.LAYOUT_PRESETS``
    :param frames: include a ``frames`` list for animated playback
    :raises ExportError: on an unknown layout or a failed count check
    """

    nodes = [_node_element(view, entity) for entity in view.entities()]
    edges = [_edge_element(rel) for rel in view.relationships()]
    if len(nodes) != view.node_count or len(edges) != view.edge_count:
        raise ExportError(
            "visualization export self-check failed: "
            f"{len(nodes)}/{len(edges)} elements for "
            f"{view.node_count}/{view.edge_count} nodes/edges"
        )
    document: Dict[str, Any] = {
        "elements": {"nodes": nodes, "edges": edges},
        "style": style_rules(),
        "layout": layout_config(layout),
    }
    if frames:
        document["frames"] = build_frames(view)
    _LOGGER.debug(
        "Built visualization export (%d nodes, %d edges, frames=%s)",
        len(nodes),
        len(edges),
        frames,
    )
    return document


def export_for_visualization(
    view: GraphView,
    *,
    layout: str = config.DEFAULT_LAYOUT,
    frames: bool = False,
    indent: Optional[int] = None,
) -> str:
    """Encode the visualization document as JSON text."""
    document = build_visualization_document(
        view, layout=layout, frames=frames
    )
    try:
        return json.dumps(document, ensure_ascii=False, indent=indent)
    except (TypeError, ValueError) as exc:
        raise ExportError(f"Failed to encode visualization: {exc}") from exc
