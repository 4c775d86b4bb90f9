"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Unit tests for the query engine and graph statistics.
"""

from __future__ import annotations

import pytest

from borrowtrace.models import Entity, RelationshipKind
from borrowtrace.query import (EntityQuery, active_relationships_at,
                               compute_statistics, find_by_lifespan,
                               lifespan_percentile, overlapping_lifetimes,
                               query, relationships_for, timeline_bounds,
                               total_duration)
from borrowtrace.storage import GraphSnapshot, RelationshipGraphStore


def _sample() -> GraphSnapshot:
    """
    _sample: Small program graph.

    ``data`` (1) is borrowed by ``view`` (2) and ``editor`` (3); ``copy``
    (4) took ``data`` over by move; ``handle`` (5) is a shared-ownership
    clone of ``copy``; ``temp`` (6) lives inside a scope.
    :returns:
    """

    store = RelationshipGraphStore()
    store.add_entities(
        [
            Entity(1, "data", "Vec<u8>", 10),
            Entity(2, "view", "&Vec<u8>", 20, scope_depth=1),
            Entity(3, "editor", "&mut Vec<u8>", 30, scope_depth=1),
            Entity(4, "copy", "Vec<u8>", 40),
            Entity(5, "handle", "Rc<Vec<u8>>", 50),
            Entity(6, "temp", "String", 60, scope_depth=2),
        ]
    )
    store.add_relationship(2, 1, RelationshipKind.SHARED_BORROW, 21)
    store.add_relationship(3, 1, RelationshipKind.EXCLUSIVE_BORROW, 31)
    store.add_relationship(4, 1, RelationshipKind.MOVE, 41)
    store.add_relationship(
        5, 4, RelationshipKind.SHARED_OWNERSHIP_CLONE, 51, {"strong_count": 2}
    )
    store.mark_destroyed(2, 25)
    store.mark_destroyed(3, 45)
    store.mark_destroyed(6, 70)
    return store.snapshot()


def test_name_and_type_predicates() -> None:
    snapshot = _sample()

    assert query(snapshot).name_contains("e").names() == [
        "view",
        "editor",
        "handle",
        "temp",
    ]
    assert query(snapshot).name_is("copy").ids() == [4]
    assert query(snapshot).type_is("Vec<u8>").ids() == [1, 4]


def test_predicates_compose_with_and() -> None:
    """
    test_predicates_compose_with_and: Function description.
    :param:
    :returns:
    """

    snapshot = _sample()
    base = EntityQuery(snapshot).in_scope(1)

    assert base.ids() == [2, 3]
    assert base.name_contains("ed").ids() == [3]
    assert base.ids() == [2, 3]
    assert base.where(lambda entity: entity.created_at > 100).all() == []


def test_lifetime_predicates() -> None:
    snapshot = _sample()

    assert query(snapshot).alive_at(35).ids() == [1, 3]
    assert query(snapshot).alive().ids() == [1, 4, 5]
    assert query(snapshot).destroyed().ids() == [2, 3, 6]
    assert query(snapshot).created_between(20, 40).ids() == [2, 3, 4]
    assert query(snapshot).destroyed_between(45, 70).ids() == [3, 6]


def test_relationship_kind_predicate_respects_direction() -> None:
    snapshot = _sample()
    borrows = [
        RelationshipKind.SHARED_BORROW,
        RelationshipKind.EXCLUSIVE_BORROW,
    ]

    assert query(snapshot).with_relationship_kinds(borrows).ids() == [
        1,
        2,
        3,
    ]
    assert query(snapshot).with_relationship_kinds(
        borrows, direction="outgoing"
    ).ids() == [2, 3]
    assert query(snapshot).with_relationship_kinds(
        ["move"], direction="incoming"
    ).ids() == [1]
    with pytest.raises(ValueError):
        query(snapshot).with_relationship_kinds(borrows, direction="up")


def test_terminal_operations() -> None:
    snapshot = _sample()

    assert query(snapshot).count() == 6
    assert query(snapshot).destroyed().first().name == "view"
    assert query(snapshot).name_is("nobody").first() is None
    assert query(GraphSnapshot.from_parts([], [])).all() == []


def test_compute_statistics() -> None:
    """
    test_compute_statistics: Function description.
    :param:
    :returns:
    """

    stats = compute_statistics(_sample())

    assert stats.entity_count == 6
    assert stats.relationship_count == 4
    assert stats.alive_count == 3
    assert stats.counts_by_kind["shared_borrow"] == 1
    assert stats.counts_by_kind["dynamic_shared_access"] == 0
    assert stats.average_lifespan == pytest.approx((5 + 15 + 10) / 3)
    assert stats.max_lifespan == 15
    assert stats.max_dependency_depth == 2
    assert stats.most_depended_on == 1
    assert stats.most_depended_on_count == 3
    assert stats.to_dict()["most_depended_on"] == 1


def test_statistics_of_empty_graph() -> None:
    stats = compute_statistics(GraphSnapshot.from_parts([], []))

    assert stats.entity_count == 0
    assert stats.average_lifespan is None
    assert stats.max_lifespan is None
    assert stats.most_depended_on is None
    assert stats.max_dependency_depth == 0


def test_most_depended_on_ties_resolve_to_lowest_id() -> None:
    store = RelationshipGraphStore()
    for entity_id in range(1, 5):
        store.add_entity(Entity(entity_id, f"e{entity_id}", "i32", 0))
    store.add_relationship(3, 2, RelationshipKind.SHARED_BORROW, 1)
    store.add_relationship(4, 1, RelationshipKind.SHARED_BORROW, 2)

    assert compute_statistics(store.snapshot()).most_depended_on == 1


def test_lifespan_helpers() -> None:
    snapshot = _sample()

    assert lifespan_percentile(snapshot, 0) == 5
    assert lifespan_percentile(snapshot, 50) == 10
    assert lifespan_percentile(snapshot, 75) == 15
    assert lifespan_percentile(snapshot, 100) == 15
    assert lifespan_percentile(snapshot, 101) is None
    assert lifespan_percentile(GraphSnapshot.from_parts([], []), 50) is None
    assert [e.id for e in find_by_lifespan(snapshot, 6)] == [3, 6]
    assert [e.id for e in find_by_lifespan(snapshot, 0, 10)] == [2, 6]


def test_overlapping_lifetimes() -> None:
    snapshot = _sample()

    assert [e.id for e in overlapping_lifetimes(snapshot, 2)] == [1]
    assert [e.id for e in overlapping_lifetimes(snapshot, 6)] == [1, 4, 5]
    assert overlapping_lifetimes(snapshot, 99) == []


def test_active_relationships_across_the_graph() -> None:
    """
    test_active_relationships_across_the_graph: Only borrow intervals are
    reported, and an interval stops covering time at its end.
    :returns:
    """

    snapshot = _sample()

    def active(time: int) -> list[int]:
        return [
            rel.edge_id for rel in active_relationships_at(snapshot, time)
        ]

    assert active(22) == [0]
    assert active(25) == []
    assert active(31) == [1]
    assert active(44) == [1]
    assert active(51) == []


def test_relationships_for_entity() -> None:
    snapshot = _sample()

    assert [rel.edge_id for rel in relationships_for(snapshot, 1)] == [0, 1]
    assert [rel.edge_id for rel in relationships_for(snapshot, 3)] == [1]
    assert relationships_for(snapshot, 4) == []
    assert relationships_for(snapshot, 404) == []


def test_timeline_bounds_and_duration() -> None:
    snapshot = _sample()
    empty = GraphSnapshot.from_parts([], [])

    assert timeline_bounds(snapshot) == (10, 70)
    assert total_duration(snapshot) == 60
    assert timeline_bounds(empty) is None
    assert total_duration(empty) == 0
