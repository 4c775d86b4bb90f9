"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Unit tests for incremental export deltas.
"""

from __future__ import annotations

import json

import pytest

from borrowtrace.errors import ImportFormatError
from borrowtrace.export import export_delta, export_full_json
from borrowtrace.models import Entity, RelationshipKind
from borrowtrace.storage import RelationshipGraphStore
from borrowtrace.tracking import Tracker


def test_delta_reports_new_and_changed_records() -> None:
    """
    test_delta_reports_new_and_changed_records: Function description.
    :param:
    :returns:
    """

    tracker = Tracker()
    x = tracker.record_creation("x", "i32")
    r = tracker.record_creation("r", "&i32")
    tracker.record_borrow(r, x, exclusive=False)
    previous = export_full_json(tracker.snapshot())

    y = tracker.record_creation("y", "i32")
    tracker.record_move(x, y)
    tracker.record_destruction(r)

    delta = export_delta(previous, tracker.snapshot())

    assert [node["id"] for node in delta.added_nodes] == [y]
    assert [node["id"] for node in delta.modified_nodes] == [r]
    assert delta.modified_nodes[0]["destroyed_at"] is not None
    assert [edge["kind"] for edge in delta.added_edges] == ["move"]
    assert [edge["ends_at"] for edge in delta.modified_edges] == [6]
    assert delta.removed_nodes == []
    assert delta.removed_edges == []
    assert not delta.is_empty


def test_delta_against_unchanged_graph_is_empty() -> None:
    tracker = Tracker()
    tracker.record_creation("x", "i32")
    snapshot = tracker.snapshot()

    delta = export_delta(json.loads(export_full_json(snapshot)), snapshot)

    assert delta.is_empty
    assert delta.to_dict()["added_nodes"] == []


def test_delta_after_reset_reports_removals() -> None:
    tracker = Tracker()
    x = tracker.record_creation("x", "i32")
    r = tracker.record_creation("r", "&i32")
    tracker.record_borrow(r, x, exclusive=True)
    previous = export_full_json(tracker.snapshot())

    tracker.reset()
    delta = export_delta(previous, tracker.snapshot())

    assert delta.removed_nodes == [x, r]
    assert delta.removed_edges == [(r, x, "exclusive_borrow", 3, 0)]
    assert delta.to_dict()["removed_edges"] == [
        [r, x, "exclusive_borrow", 3, 0]
    ]


def test_delta_accepts_documents_without_optional_node_fields() -> None:
    tracker = Tracker()
    tracker.record_creation("x", "i32")
    document = json.loads(export_full_json(tracker.snapshot()))
    del document["nodes"][0]["destroyed_at"]
    del document["nodes"][0]["scope_depth"]

    assert export_delta(document, tracker.snapshot()).is_empty


@pytest.mark.parametrize("previous", ["{broken", json.dumps({"nodes": []})])
def test_delta_rejects_invalid_previous_export(previous: str) -> None:
    with pytest.raises(ImportFormatError):
        export_delta(previous, Tracker().snapshot())


def test_delta_keeps_edges_that_share_every_field_apart() -> None:
    """
    test_delta_keeps_edges_that_share_every_field_apart: Two identical
    borrows recorded at the same time are two edges, not one.
    :returns:
    """

    store = RelationshipGraphStore()
    store.add_entities([Entity(1, "x", "i32", 1), Entity(2, "r", "&i32", 2)])
    store.add_relationship(2, 1, RelationshipKind.SHARED_BORROW, 3)
    previous = export_full_json(store.snapshot())

    store.add_relationship(2, 1, RelationshipKind.SHARED_BORROW, 3)
    grown = export_delta(previous, store.snapshot())
    store.mark_destroyed(2, 9)
    ended = export_delta(previous, store.snapshot())

    assert [edge["at"] for edge in grown.added_edges] == [3]
    assert grown.modified_edges == []
    assert [edge["ends_at"] for edge in ended.added_edges] == [9]
    assert [edge["ends_at"] for edge in ended.modified_edges] == [9]
