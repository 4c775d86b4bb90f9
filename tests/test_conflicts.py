"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Unit tests for exclusivity conflict detection.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from borrowtrace.analysis import (active_accesses_at, check_conflicts_at,
                                  conflict_timeline, describe_conflict,
                                  find_conflicts, report_conflicts)
from borrowtrace.models import ConflictKind, Entity, RelationshipKind
from borrowtrace.storage import GraphSnapshot, RelationshipGraphStore

Access = Tuple[int, RelationshipKind, int, Optional[int]]


def _target_with(accesses: List[Access]) -> GraphSnapshot:
    """
    _target_with: Entity ``x`` (id 1, created at 1000) plus one dependent
    per access ``(dependent_id, kind, start, destroyed_at)``.
    :param accesses:
    :returns:
    """

    store = RelationshipGraphStore()
    store.add_entity(Entity(1, "x", "i32", 1000))
    for dependent_id, kind, start, end in accesses:
        if store.entity(dependent_id) is None:
            store.add_entity(
                Entity(dependent_id, f"r{dependent_id}", "&i32", start)
            )
        store.add_relationship(dependent_id, 1, kind, start)
        if end is not None:
            store.mark_destroyed(dependent_id, end)
    return store.snapshot()


EXCLUSIVE = RelationshipKind.EXCLUSIVE_BORROW
SHARED = RelationshipKind.SHARED_BORROW
DYN_EXCLUSIVE = RelationshipKind.DYNAMIC_EXCLUSIVE_ACCESS
DYN_SHARED = RelationshipKind.DYNAMIC_SHARED_ACCESS


def test_two_overlapping_exclusive_borrows() -> None:
    """
    test_two_overlapping_exclusive_borrows: Function description.
    :param:
    :returns:
    """

    snapshot = _target_with(
        [(2, EXCLUSIVE, 1100, 1300), (3, EXCLUSIVE, 1200, 1400)]
    )

    (record,) = find_conflicts(snapshot)

    assert record.kind is ConflictKind.MULTIPLE_EXCLUSIVE
    assert record.target_entity_id == 1
    assert record.participant_ids == (2, 3)
    assert record.overlap_range == (1200, 1300)
    assert record.dynamic is False


def test_overlapping_shared_borrows_do_not_conflict() -> None:
    snapshot = _target_with(
        [(2, SHARED, 1100, 1300), (3, SHARED, 1150, 1350)]
    )

    assert find_conflicts(snapshot) == []


def test_exclusive_overlapping_shared_borrow() -> None:
    snapshot = _target_with(
        [(2, SHARED, 1100, 1300), (3, EXCLUSIVE, 1200, 1400)]
    )

    (record,) = find_conflicts(snapshot)

    assert record.kind is ConflictKind.EXCLUSIVE_SHARED
    assert record.overlap_range == (1200, 1300)


def test_touching_intervals_do_not_overlap() -> None:
    snapshot = _target_with(
        [(2, EXCLUSIVE, 1100, 1200), (3, EXCLUSIVE, 1200, 1300)]
    )

    assert find_conflicts(snapshot) == []


def test_open_intervals_overlap_forever() -> None:
    snapshot = _target_with(
        [(2, EXCLUSIVE, 1100, None), (3, SHARED, 1500, None)]
    )

    (record,) = find_conflicts(snapshot)

    assert record.overlap_range == (1500, None)


def test_dynamic_access_flags_genuine_violation() -> None:
    """
    test_dynamic_access_flags_genuine_violation: Function description.
    :param:
    :returns:
    """

    snapshot = _target_with(
        [(2, DYN_EXCLUSIVE, 1100, 1300), (3, DYN_SHARED, 1200, 1250)]
    )

    (record,) = find_conflicts(snapshot)

    assert record.kind is ConflictKind.EXCLUSIVE_SHARED
    assert record.dynamic is True
    assert describe_conflict(record, snapshot) == (
        "Exclusive and shared accesses of 'x' by: r2, r3 (dynamic access)"
    )


def test_same_dependent_never_conflicts_with_itself() -> None:
    store = RelationshipGraphStore()
    store.add_entity(Entity(1, "x", "i32", 0))
    store.add_entity(Entity(2, "r", "&mut i32", 1))
    store.add_relationship(2, 1, EXCLUSIVE, 2)
    store.add_relationship(2, 1, EXCLUSIVE, 3)

    assert find_conflicts(store.snapshot()) == []


def test_pair_is_reported_once_per_target() -> None:
    store = RelationshipGraphStore()
    store.add_entity(Entity(1, "x", "i32", 0))
    store.add_entity(Entity(2, "a", "&i32", 1))
    store.add_entity(Entity(3, "b", "&mut i32", 1))
    store.add_relationship(2, 1, SHARED, 5)
    store.add_relationship(3, 1, EXCLUSIVE, 6)
    store.add_relationship(2, 1, EXCLUSIVE, 7)

    (record,) = find_conflicts(store.snapshot())

    assert record.participant_ids == (2, 3)
    assert record.kind is ConflictKind.MULTIPLE_EXCLUSIVE
    assert record.overlap_range == (7, None)


def test_move_and_clone_edges_are_ignored() -> None:
    store = RelationshipGraphStore()
    store.add_entity(Entity(1, "x", "i32", 0))
    store.add_entity(Entity(2, "y", "i32", 1))
    store.add_entity(Entity(3, "rc", "Rc<i32>", 1))
    store.add_relationship(2, 1, RelationshipKind.MOVE, 2)
    store.add_relationship(
        3, 1, RelationshipKind.SHARED_OWNERSHIP_CLONE, 3, {"strong_count": 2}
    )

    assert find_conflicts(store.snapshot()) == []


def _busy_snapshot() -> GraphSnapshot:
    return _target_with(
        [
            (2, EXCLUSIVE, 1010, 1100),
            (3, SHARED, 1050, 1200),
            (4, SHARED, 1060, None),
            (5, EXCLUSIVE, 1150, 1160),
            (6, DYN_EXCLUSIVE, 1300, 1400),
            (7, DYN_SHARED, 1399, 1500),
            (8, SHARED, 1500, 1600),
        ]
    )


def test_sweep_and_pairwise_agree_and_are_idempotent() -> None:
    """
    test_sweep_and_pairwise_agree_and_are_idempotent: Function description.
    :param:
    :returns:
    """

    snapshot = _busy_snapshot()

    sweep = find_conflicts(snapshot)
    pairwise = find_conflicts(snapshot, algorithm="pairwise")

    assert sweep == pairwise
    assert find_conflicts(snapshot) == sweep
    assert [record.participant_ids for record in sweep] == [
        (2, 3),
        (2, 4),
        (3, 5),
        (4, 5),
        (4, 6),
        (6, 7),
    ]
    assert [record.dynamic for record in sweep] == [
        False,
        False,
        False,
        False,
        True,
        True,
    ]


def test_unknown_algorithm_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown conflict algorithm"):
        find_conflicts(_busy_snapshot(), algorithm="quadratic")


def test_point_in_time_helpers() -> None:
    snapshot = _busy_snapshot()

    assert active_accesses_at(snapshot, 1, 1155) == [
        (3, False),
        (4, False),
        (5, True),
    ]
    at_time = check_conflicts_at(snapshot, 1, 1155)
    assert [record.participant_ids for record in at_time] == [(3, 5), (4, 5)]
    assert check_conflicts_at(snapshot, 1, 999) == []

    timeline = dict(conflict_timeline(snapshot, 1))
    assert timeline[1010] == [(2, True)]
    assert timeline[1160] == [(3, False), (4, False)]
    assert 999 not in timeline


def test_report_conflicts_text() -> None:
    snapshot = _target_with(
        [(2, EXCLUSIVE, 1100, 1300), (3, EXCLUSIVE, 1200, None)]
    )

    report = report_conflicts(snapshot)

    assert report.splitlines()[:4] == [
        "Found 1 conflict(s):",
        "",
        "1. Multiple exclusive accesses of 'x' by: r2, r3",
        "   Time range: 1200 - 1300",
    ]
    empty = _target_with([(2, SHARED, 1100, None)])
    assert report_conflicts(empty) == "No borrow conflicts detected."
