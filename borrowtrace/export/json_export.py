"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Full and compact JSON encodings of a graph snapshot, their importers, and
the event-log encoding used for offline replay.

Every exporter builds the whole document, self-checks it (metadata counts
against array lengths, then the JSON schema) and only then serializes, so
a caller never receives a partial document.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from borrowtrace import config
from borrowtrace.errors import ExportError, ImportFormatError
from borrowtrace.models import Entity, Event, Relationship, RelationshipKind
from borrowtrace.storage.base import GraphView
from borrowtrace.storage.graph_store import RelationshipGraphStore
from borrowtrace.storage.snapshot import GraphSnapshot

from .schema import (COMPACT_DOCUMENT_SCHEMA, EVENT_LOG_SCHEMA,
                     FULL_DOCUMENT_SCHEMA, check_document)

_LOGGER = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def entity_record(entity: Entity) -> Dict[str, Any]:
    return entity.to_dict()


def edge_record(relationship: Relationship) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "from": relationship.dependent_id,
        "to": relationship.depended_on_id,
        "kind": relationship.kind.value,
        "at": relationship.at,
    }
    if relationship.ends_at is not None:
        record["ends_at"] = relationship.ends_at
    if relationship.payload:
        record["payload"] = dict(relationship.payload)
    return record


def build_full_document(
    view: GraphView, *, generated_at: Optional[str] = None
) -> Dict[str, Any]:
    """Full export as a dict, already self-checked."""
    nodes = [entity_record(entity) for entity in view.entities()]
    edges = [edge_record(rel) for rel in view.relationships()]
    document = {
        "metadata": {
            "version": config.EXPORT_FORMAT_VERSION,
            "generated_at": generated_at or _now_iso(),
            "node_count": view.node_count,
            "edge_count": view.edge_count,
        },
        "nodes": nodes,
        "edges": edges,
    }
    _check_counts(
        "full export",
        document["metadata"]["node_count"],
        len(nodes),
        document["metadata"]["edge_count"],
        len(edges),
    )
    check_document(document, FULL_DOCUMENT_SCHEMA, ExportError)
    return document


def export_full_json(
    view: GraphView,
    *,
    generated_at: Optional[str] = None,
    indent: Optional[int] = 2,
) -> str:
    """
    Encode every entity and relationship as keyed JSON records.

    :raises ExportError: when a self-check fails or encoding breaks
    """

    document = build_full_document(view, generated_at=generated_at)
    text = _dumps(document, indent=indent)
    _LOGGER.info(
        "Exported full JSON (%d nodes, %d edges)",
        len(document["nodes"]),
        len(document["edges"]),
    )
    return text


def build_compact_document(view: GraphView) -> Dict[str, Any]:
    """Positional encoding: fixed-order tuples and integer kind tags.

    Edge tuples end with the relationship payload (or null) so nothing the
    full encoding carries is lost.
    """
    nodes = [
        [
            entity.id,
            entity.name,
            entity.type_tag,
            entity.created_at,
            entity.destroyed_at,
            entity.scope_depth,
        ]
        for entity in view.entities()
    ]
    edges = [
        [
            rel.dependent_id,
            rel.depended_on_id,
            rel.kind.tag,
            rel.at,
            rel.ends_at,
            dict(rel.payload) if rel.payload else None,
        ]
        for rel in view.relationships()
    ]
    document = {
        "v": config.COMPACT_FORMAT_VERSION,
        "kinds": [kind.value for kind in RelationshipKind],
        "nodes": nodes,
        "edges": edges,
    }
    _check_counts(
        "compact export",
        view.node_count,
        len(nodes),
        view.edge_count,
        len(edges),
    )
    check_document(document, COMPACT_DOCUMENT_SCHEMA, ExportError)
    return document


def export_compact_json(view: GraphView) -> str:
    document = build_compact_document(view)
    return _dumps(document, indent=None, separators=(",", ":"))


def import_full_json(text: str) -> RelationshipGraphStore:
    """
    Rebuild a store from ``export_full_json`` output.

    :raises ImportFormatError: on malformed JSON, schema violations,
        count mismatches or edges that reference unknown entities
    """

    document = _loads(text)
    check_document(document, FULL_DOCUMENT_SCHEMA, ImportFormatError)
    metadata = document["metadata"]
    if (
        metadata["node_count"] != len(document["nodes"])
        or metadata["edge_count"] != len(document["edges"])
    ):
        raise ImportFormatError(
            "full export metadata counts do not match its arrays"
        )
    try:
        entities = [Entity.from_dict(node) for node in document["nodes"]]
        relationships = [
            Relationship(
                edge_id=index,
                dependent_id=int(edge["from"]),
                depended_on_id=int(edge["to"]),
                kind=RelationshipKind(edge["kind"]),
                at=int(edge["at"]),
                ends_at=_optional_int(edge.get("ends_at")),
                payload=edge.get("payload") or None,
            )
            for index, edge in enumerate(document["edges"])
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ImportFormatError(f"Invalid full export record: {exc}") from exc
    return _restore(entities, relationships)


def import_compact_json(text: str) -> RelationshipGraphStore:
    """Rebuild a store from ``export_compact_json`` output."""
    document = _loads(text)
    check_document(document, COMPACT_DOCUMENT_SCHEMA, ImportFormatError)
    legend = document["kinds"]
    try:
        entities = [
            Entity(
                id=int(node[0]),
                name=node[1],
                type_tag=node[2],
                created_at=int(node[3]),
                destroyed_at=_optional_int(node[4]),
                scope_depth=int(node[5]),
            )
            for node in document["nodes"]
        ]
        relationships = [
            Relationship(
                edge_id=index,
                dependent_id=int(edge[0]),
                depended_on_id=int(edge[1]),
                kind=RelationshipKind(legend[edge[2]]),
                at=int(edge[3]),
                ends_at=_optional_int(edge[4]),
                payload=edge[5] or None,
            )
            for index, edge in enumerate(document["edges"])
        ]
    except (IndexError, TypeError, ValueError) as exc:
        raise ImportFormatError(
            f"Invalid compact export record: {exc}"
        ) from exc
    return _restore(entities, relationships)


def export_events_json(
    events: Iterable[Event], *, indent: Optional[int] = None
) -> str:
    """Encode an event log so it can be replayed elsewhere."""
    document = {
        "version": config.EXPORT_FORMAT_VERSION,
        "events": [event.to_dict() for event in events],
    }
    check_document(document, EVENT_LOG_SCHEMA, ExportError)
    return _dumps(document, indent=indent)


def load_events_json(text: str) -> List[Event]:
    document = _loads(text)
    check_document(document, EVENT_LOG_SCHEMA, ImportFormatError)
    try:
        return [Event.from_dict(item) for item in document["events"]]
    except (KeyError, ValueError) as exc:
        raise ImportFormatError(f"Invalid event record: {exc}") from exc


def _restore(
    entities: List[Entity], relationships: List[Relationship]
) -> RelationshipGraphStore:
    known = set()
    for entity in entities:
        if entity.id in known:
            raise ImportFormatError(f"Duplicate entity id {entity.id}")
        known.add(entity.id)
    for relationship in relationships:
        if (
            relationship.dependent_id not in known
            or relationship.depended_on_id not in known
        ):
            raise ImportFormatError(
                f"Edge {relationship.edge_id} references an unknown entity"
            )
    snapshot = GraphSnapshot.from_parts(entities, relationships)
    _LOGGER.info(
        "Imported graph (%d nodes, %d edges)",
        snapshot.node_count,
        snapshot.edge_count,
    )
    return RelationshipGraphStore.from_snapshot(snapshot)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _check_counts(
    label: str,
    node_count: int,
    nodes_written: int,
    edge_count: int,
    edges_written: int,
) -> None:
    if node_count != nodes_written or edge_count != edges_written:
        raise ExportError(
            f"{label} self-check failed: metadata says {node_count} nodes/"
            f"{edge_count} edges but wrote {nodes_written}/{edges_written}"
        )


def _dumps(document: Mapping[str, Any], **kwargs: Any) -> str:
    try:
        return json.dumps(document, ensure_ascii=False, **kwargs)
    except (TypeError, ValueError) as exc:
        raise ExportError(f"Failed to encode export: {exc}") from exc


def _loads(text: str) -> Dict[str, Any]:
    try:
        document = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ImportFormatError(f"Export is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ImportFormatError("Export document must be a JSON object")
    return document
