"""JSON schemas for exported documents and the checks that enforce them."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Type

from jsonschema import Draft7Validator

from borrowtrace.errors import SerializationError
from borrowtrace.models import RelationshipKind

_KIND_VALUES = [kind.value for kind in RelationshipKind]

_NULLABLE_INT = {"type": ["integer", "null"]}
_NON_NEGATIVE = {"type": "integer", "minimum": 0}

FULL_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "borrowtrace full export",
    "type": "object",
    "required": ["metadata", "nodes", "edges"],
    "properties": {
        "metadata": {
            "type": "object",
            "required": [
                "version",
                "generated_at",
                "node_count",
                "edge_count",
            ],
            "properties": {
                "version": {"type": "string"},
                "generated_at": {"type": "string"},
                "node_count": _NON_NEGATIVE,
                "edge_count": _NON_NEGATIVE,
            },
        },
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "name", "type_tag", "created_at"],
                "properties": {
                    "id": _NON_NEGATIVE,
                    "name": {"type": "string"},
                    "type_tag": {"type": "string"},
                    "created_at": {"type": "integer"},
                    "destroyed_at": _NULLABLE_INT,
                    "scope_depth": _NON_NEGATIVE,
                },
            },
        },
        "edges": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["from", "to", "kind", "at"],
                "properties": {
                    "from": _NON_NEGATIVE,
                    "to": _NON_NEGATIVE,
                    "kind": {"enum": _KIND_VALUES},
                    "at": {"type": "integer"},
                    "ends_at": _NULLABLE_INT,
                    "payload": {"type": ["object", "null"]},
                },
            },
        },
    },
}

COMPACT_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "borrowtrace compact export",
    "type": "object",
    "required": ["v", "kinds", "nodes", "edges"],
    "properties": {
        "v": {"type": "integer"},
        "kinds": {"type": "array", "items": {"enum": _KIND_VALUES}},
        "nodes": {
            "type": "array",
            "items": {
                "type": "array",
                "minItems": 6,
                "maxItems": 6,
                "items": [
                    _NON_NEGATIVE,
                    {"type": "string"},
                    {"type": "string"},
                    {"type": "integer"},
                    _NULLABLE_INT,
                    _NON_NEGATIVE,
                ],
            },
        },
        "edges": {
            "type": "array",
            "items": {
                "type": "array",
                "minItems": 6,
                "maxItems": 6,
                "items": [
                    _NON_NEGATIVE,
                    _NON_NEGATIVE,
                    {
                        "type": "integer",
                        "minimum": 0,
                        "maximum": len(_KIND_VALUES) - 1,
                    },
                    {"type": "integer"},
                    _NULLABLE_INT,
                    {"type": ["object", "null"]},
                ],
            },
        },
    },
}

EVENT_LOG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "borrowtrace event log",
    "type": "object",
    "required": ["version", "events"],
    "properties": {
        "version": {"type": "string"},
        "events": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["kind", "payload"],
                "properties": {
                    "event_id": _NULLABLE_INT,
                    "timestamp": _NULLABLE_INT,
                    "kind": {"type": "string"},
                    "payload": {"type": "object"},
                },
            },
        },
    },
}


def check_document(
    document: Mapping[str, Any],
    schema: Mapping[str, Any],
    error_cls: Type[SerializationError],
) -> None:
    """
    Validate ``document`` against ``schema``.

    :raises error_cls: naming the first offending path when invalid
    """

    validator = Draft7Validator(schema)
    errors = sorted(
        validator.iter_errors(document),
        key=lambda err: [str(part) for part in err.path],
    )
    if errors:
        first = errors[0]
        location = "/".join(str(part) for part in first.path) or "<root>"
        raise error_cls(
            f"{schema.get('title')} failed validation at {location}: "
            f"{first.message}"
        )
