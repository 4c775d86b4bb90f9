"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Unit tests for the visualization export.
"""

from __future__ import annotations

import json

import pytest

from borrowtrace import config
from borrowtrace.errors import ExportError
from borrowtrace.export import (build_visualization_document,
                                export_for_visualization)
from borrowtrace.export import visualization
from borrowtrace.export.visualization import (edge_classes, layout_config,
                                              node_classes, style_rules)
from borrowtrace.models import Entity, RelationshipKind
from borrowtrace.storage import GraphSnapshot, RelationshipGraphStore
from borrowtrace.tracking import Tracker


def _snapshot() -> GraphSnapshot:
    """
    _snapshot: ``x`` (1) is borrowed by ``r`` (2) from t=3 until ``r`` is
    destroyed at t=5, and accessed dynamically by ``guard`` (3) from t=4.
    :returns:
    """

    store = RelationshipGraphStore()
    store.add_entity(Entity(1, "x", "i32", 1))
    store.add_entity(Entity(2, "r", "&mut i32", 2))
    store.add_entity(Entity(3, "guard", "Ref<i32>", 3))
    store.add_relationship(2, 1, RelationshipKind.EXCLUSIVE_BORROW, 3)
    store.add_relationship(3, 1, RelationshipKind.DYNAMIC_SHARED_ACCESS, 4)
    store.mark_destroyed(2, 5)
    return store.snapshot()


def test_elements_carry_data_and_classes() -> None:
    """
    test_elements_carry_data_and_classes: Function description.
    :param:
    :returns:
    """

    document = build_visualization_document(_snapshot())

    nodes = document["elements"]["nodes"]
    edges = document["elements"]["edges"]
    assert [node["data"]["id"] for node in nodes] == ["1", "2", "3"]
    assert nodes[0]["classes"] == "alive owner depended-on"
    assert nodes[1]["classes"] == "destroyed exclusive-ref"
    assert nodes[2]["classes"] == "alive dynamic-ref"
    assert nodes[1]["data"]["destroyed_at"] == 5
    assert nodes[1]["data"]["is_alive"] is False

    assert edges[0]["data"] == {
        "id": "e0",
        "source": "2",
        "target": "1",
        "relationship": "exclusive_borrow",
        "at": 3,
        "ends_at": 5,
    }
    assert edges[0]["classes"] == "exclusive-borrow ended"
    assert edges[1]["classes"] == "dynamic-shared-access dynamic active"


def test_style_and_layout_sections() -> None:
    document = build_visualization_document(_snapshot(), layout="cola")

    assert document["layout"] == {
        "name": "cola",
        "options": config.LAYOUT_PRESETS["cola"],
    }
    selectors = {rule["selector"] for rule in document["style"]}
    assert {"node", "edge", "node.destroyed", "edge.dynamic"} <= selectors
    assert "edge.shared-ownership-clone" in selectors
    assert "frames" not in document
    assert document["style"] == style_rules()


def test_default_layout_is_dagre() -> None:
    assert build_visualization_document(_snapshot())["layout"]["name"] == (
        config.DEFAULT_LAYOUT
    )


def test_unknown_layout_raises_export_error() -> None:
    with pytest.raises(ExportError, match="Unknown layout 'spiral'"):
        layout_config("spiral")


def test_frames_follow_every_event_time() -> None:
    """
    test_frames_follow_every_event_time: Function description.
    :param:
    :returns:
    """

    frames = build_visualization_document(_snapshot(), frames=True)["frames"]

    assert [frame["timestamp"] for frame in frames] == [1, 2, 3, 4, 5]
    assert [len(frame["nodes"]) for frame in frames] == [1, 2, 3, 3, 3]
    assert [len(frame["edges"]) for frame in frames] == [0, 0, 1, 2, 2]
    at_four = frames[3]
    assert at_four["edges"][0]["classes"] == "exclusive-borrow active"
    assert at_four["nodes"][1]["data"]["is_alive"] is True
    last = frames[4]
    assert last["edges"][0]["classes"] == "exclusive-borrow ended"
    assert last["nodes"][1]["classes"].startswith("destroyed")


def test_class_helpers_for_point_edges() -> None:
    snapshot = GraphSnapshot.from_parts(
        [Entity(1, "a", "i32", 1), Entity(2, "b", "i32", 2)],
        [],
    )
    store = RelationshipGraphStore.from_snapshot(snapshot)
    store.add_relationship(2, 1, RelationshipKind.MOVE, 3)
    view = store.snapshot()
    move = view.relationships()[0]

    assert edge_classes(move) == ["move"]
    assert node_classes(view, view.entity(2)) == ["alive", "moved-into"]


def test_json_form_is_parseable() -> None:
    text = export_for_visualization(_snapshot(), frames=True, indent=2)

    document = json.loads(text)
    assert set(document) == {"elements", "style", "layout", "frames"}


def test_encoder_failure_surfaces_as_export_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    snapshot = _snapshot()

    def broken_dumps(*args: object, **kwargs: object) -> str:
        raise ValueError("circular reference")

    monkeypatch.setattr(visualization.json, "dumps", broken_dumps)

    with pytest.raises(ExportError, match="Failed to encode visualization"):
        export_for_visualization(snapshot)


def test_tracker_returns_visualization_text() -> None:
    tracker = Tracker()
    x = tracker.record_creation("x", "i32")
    r = tracker.record_creation("r", "&i32")
    tracker.record_borrow(r, x, exclusive=False)

    text = tracker.export_for_visualization()

    assert isinstance(text, str)
    document = json.loads(text)
    assert len(document["elements"]["edges"]) == 1
    assert document["layout"]["name"] == config.DEFAULT_LAYOUT
