"""Incremental refresh: what changed since a previous full export."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from borrowtrace.errors import ImportFormatError
from borrowtrace.storage.base import GraphView

from .json_export import edge_record, entity_record
from .schema import FULL_DOCUMENT_SCHEMA, check_document

_LOGGER = logging.getLogger(__name__)

# (from, to, kind, at, occurrence); occurrence separates identical edges.
EdgeKey = Tuple[int, int, str, int, int]


def _keyed_edges(
    records: Iterable[Dict[str, Any]],
) -> Dict[EdgeKey, Dict[str, Any]]:
    seen: Dict[Tuple[int, int, str, int], int] = {}
    keyed: Dict[EdgeKey, Dict[str, Any]] = {}
    for record in records:
        base = (record["from"], record["to"], record["kind"], record["at"])
        occurrence = seen.get(base, 0)
        seen[base] = occurrence + 1
        keyed[base + (occurrence,)] = record
    return keyed


@dataclass(frozen=True)
class GraphDelta:
    """Differences between a previous full export and a snapshot."""

    added_nodes: List[Dict[str, Any]] = field(default_factory=list)
    removed_nodes: List[int] = field(default_factory=list)
    modified_nodes: List[Dict[str, Any]] = field(default_factory=list)
    added_edges: List[Dict[str, Any]] = field(default_factory=list)
    removed_edges: List[EdgeKey] = field(default_factory=list)
    modified_edges: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_nodes
            or self.removed_nodes
            or self.modified_nodes
            or self.added_edges
            or self.removed_edges
            or self.modified_edges
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added_nodes": list(self.added_nodes),
            "removed_nodes": list(self.removed_nodes),
            "modified_nodes": list(self.modified_nodes),
            "added_edges": list(self.added_edges),
            "removed_edges": [list(key) for key in self.removed_edges],
            "modified_edges": list(self.modified_edges),
        }


def export_delta(
    previous: Union[str, Mapping[str, Any]], view: GraphView
) -> GraphDelta:
    """
    Compare ``previous`` (full export text or parsed document) with
    ``view``.

    Nodes are matched by id; edges by ``(from, to, kind, at)`` plus their
    position among edges sharing those fields. A node or
    edge whose record changed (typically a new ``destroyed_at`` or
    ``ends_at``) is reported as modified with its current record.
    """

    if isinstance(previous, str):
        try:
            document = json.loads(previous)
        except json.JSONDecodeError as exc:
            raise ImportFormatError(
                f"Previous export is not valid JSON: {exc}"
            ) from exc
    else:
        document = previous
    check_document(document, FULL_DOCUMENT_SCHEMA, ImportFormatError)

    before_nodes = {node["id"]: node for node in document["nodes"]}
    before_edges = _keyed_edges(document["edges"])

    current_nodes = {
        entity.id: entity_record(entity) for entity in view.entities()
    }
    current_edges = _keyed_edges(
        edge_record(relationship) for relationship in view.relationships()
    )

    delta = GraphDelta(
        added_nodes=[
            record
            for node_id, record in current_nodes.items()
            if node_id not in before_nodes
        ],
        removed_nodes=sorted(
            node_id for node_id in before_nodes if node_id not in current_nodes
        ),
        modified_nodes=[
            record
            for node_id, record in current_nodes.items()
            if node_id in before_nodes
            and _normalized(before_nodes[node_id]) != record
        ],
        added_edges=[
            record
            for key, record in current_edges.items()
            if key not in before_edges
        ],
        removed_edges=sorted(
            key for key in before_edges if key not in current_edges
        ),
        modified_edges=[
            record
            for key, record in current_edges.items()
            if key in before_edges and before_edges[key] != record
        ],
    )
    _LOGGER.debug(
        "Delta: +%d/-%d/~%d nodes, +%d/-%d/~%d edges",
        len(delta.added_nodes),
        len(delta.removed_nodes),
        len(delta.modified_nodes),
        len(delta.added_edges),
        len(delta.removed_edges),
        len(delta.modified_edges),
    )
    return delta


def _normalized(node: Mapping[str, Any]) -> Dict[str, Any]:
    # Older documents may omit optional node fields.
    return {
        "id": node["id"],
        "name": node["name"],
        "type_tag": node["type_tag"],
        "created_at": node["created_at"],
        "destroyed_at": node.get("destroyed_at"),
        "scope_depth": node.get("scope_depth", 0),
    }
