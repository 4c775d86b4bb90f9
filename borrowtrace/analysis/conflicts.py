"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Exclusivity conflict detection over borrow and access intervals.

Each borrow or dynamic access is the half-open interval ``[at, ends_at)``
on the entity it targets; an interval whose dependent is still alive is
open-ended. Two intervals on the same target conflict when they overlap
and at least one of them is exclusive.

Conflicts between purely static borrows indicate a tracking bug in a
program whose ownership was validated before instrumentation; conflicts
involving a dynamic access are genuine runtime violations and carry
``dynamic=True``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from borrowtrace.models import ConflictKind, ConflictRecord, Relationship
from borrowtrace.storage.base import GraphView

_LOGGER = logging.getLogger(__name__)

SWEEP = "sweep"
PAIRWISE = "pairwise"
ALGORITHMS = (SWEEP, PAIRWISE)

_KIND_RANK = {
    ConflictKind.MULTIPLE_EXCLUSIVE: 0,
    ConflictKind.EXCLUSIVE_SHARED: 1,
}


@dataclass(frozen=True)
class _Interval:
    edge_id: int
    dependent_id: int
    start: int
    end: Optional[int]
    exclusive: bool
    dynamic: bool

    @property
    def is_empty(self) -> bool:
        return self.end is not None and self.end <= self.start

    def covers(self, time: int) -> bool:
        return self.start <= time and (self.end is None or self.end > time)


def _end_key(end: Optional[int]) -> float:
    return float("inf") if end is None else end


def _min_end(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _interval(view: GraphView, relationship: Relationship) -> _Interval:
    end = relationship.ends_at
    if end is None:
        dependent = view.entity(relationship.dependent_id)
        if dependent is not None:
            end = dependent.destroyed_at
    return _Interval(
        edge_id=relationship.edge_id,
        dependent_id=relationship.dependent_id,
        start=relationship.at,
        end=end,
        exclusive=relationship.kind.is_exclusive,
        dynamic=relationship.kind.is_dynamic,
    )


def _intervals_on(view: GraphView, target_id: int) -> List[_Interval]:
    return [
        _interval(view, relationship)
        for relationship in view.incoming(target_id)
        if relationship.kind.is_interval
    ]


def _classify(a: _Interval, b: _Interval) -> Optional[ConflictKind]:
    if a.exclusive and b.exclusive:
        return ConflictKind.MULTIPLE_EXCLUSIVE
    if a.exclusive or b.exclusive:
        return ConflictKind.EXCLUSIVE_SHARED
    return None


def _record(
    target_id: int, a: _Interval, b: _Interval
) -> Optional[ConflictRecord]:
    if a.dependent_id == b.dependent_id:
        return None
    kind = _classify(a, b)
    if kind is None:
        return None
    start = max(a.start, b.start)
    end = _min_end(a.end, b.end)
    if end is not None and start >= end:
        return None
    return ConflictRecord(
        kind=kind,
        target_entity_id=target_id,
        participant_ids=tuple(sorted((a.dependent_id, b.dependent_id))),
        overlap_range=(start, end),
        dynamic=a.dynamic or b.dynamic,
    )


def _preference(record: ConflictRecord) -> Tuple[int, int, float, bool]:
    start, end = record.overlap_range
    return (_KIND_RANK[record.kind], start, _end_key(end), not record.dynamic)


def _collect(
    found: Dict[Tuple[int, Tuple[int, int]], ConflictRecord],
    record: Optional[ConflictRecord],
) -> None:
    # One record per (target, pair); the choice must not depend on the
    # order in which the algorithm met the overlapping edges.
    if record is None:
        return
    key = (record.target_entity_id, record.participant_ids)
    existing = found.get(key)
    if existing is None or _preference(record) < _preference(existing):
        found[key] = record


def _sweep(
    target_id: int,
    intervals: Sequence[_Interval],
    found: Dict[Tuple[int, Tuple[int, int]], ConflictRecord],
) -> None:
    ordered = sorted(
        (item for item in intervals if not item.is_empty),
        key=lambda item: (item.start, _end_key(item.end), item.edge_id),
    )
    active: List[_Interval] = []
    for current in ordered:
        active = [
            item for item in active if _end_key(item.end) > current.start
        ]
        for other in active:
            _collect(found, _record(target_id, other, current))
        active.append(current)


def _pairwise(
    target_id: int,
    intervals: Sequence[_Interval],
    found: Dict[Tuple[int, Tuple[int, int]], ConflictRecord],
) -> None:
    for index, first in enumerate(intervals):
        for second in intervals[index + 1:]:
            _collect(found, _record(target_id, first, second))


def find_conflicts(
    view: GraphView, *, algorithm: str = SWEEP
) -> List[ConflictRecord]:
    """
    Detect every exclusivity violation in ``view``.

    :param algorithm: ``"sweep"`` (sort by start, prune the active set by
        end) or ``"pairwise"``; both return the same records
    :returns: records sorted by target id, then participant ids
    """

    if algorithm == SWEEP:
        scan = _sweep
    elif algorithm == PAIRWISE:
        scan = _pairwise
    else:
        raise ValueError(
            f"Unknown conflict algorithm '{algorithm}'; "
            f"expected one of {', '.join(ALGORITHMS)}"
        )

    found: Dict[Tuple[int, Tuple[int, int]], ConflictRecord] = {}
    for entity in view.entities():
        intervals = _intervals_on(view, entity.id)
        if len(intervals) > 1:
            scan(entity.id, intervals, found)

    conflicts = [found[key] for key in sorted(found)]
    if conflicts:
        _LOGGER.info(
            "Detected %d conflict(s) (%d dynamic)",
            len(conflicts),
            sum(1 for record in conflicts if record.dynamic),
        )
    return conflicts


def active_accesses_at(
    view: GraphView, target_id: int, time: int
) -> List[Tuple[int, bool]]:
    """``(dependent_id, exclusive)`` for every access live at ``time``."""
    return [
        (item.dependent_id, item.exclusive)
        for item in _intervals_on(view, target_id)
        if item.covers(time)
    ]


def check_conflicts_at(
    view: GraphView, target_id: int, time: int
) -> List[ConflictRecord]:
    """Conflicting pairs among the accesses live on ``target_id`` at
    ``time``; overlap ranges are those of the full intervals."""

    live = [
        item for item in _intervals_on(view, target_id) if item.covers(time)
    ]
    found: Dict[Tuple[int, Tuple[int, int]], ConflictRecord] = {}
    _pairwise(target_id, live, found)
    return [found[key] for key in sorted(found)]


def conflict_timeline(
    view: GraphView, target_id: int
) -> List[Tuple[int, List[Tuple[int, bool]]]]:
    """Live accesses on ``target_id`` at each time the set can change."""
    intervals = _intervals_on(view, target_id)
    times = set()
    for item in intervals:
        times.add(item.start)
        if item.end is not None:
            times.add(item.end)
    timeline: List[Tuple[int, List[Tuple[int, bool]]]] = []
    for time in sorted(times):
        live = [
            (item.dependent_id, item.exclusive)
            for item in intervals
            if item.covers(time)
        ]
        if live:
            timeline.append((time, live))
    return timeline


def describe_conflict(record: ConflictRecord, view: GraphView) -> str:
    def _name(entity_id: int) -> str:
        entity = view.entity(entity_id)
        return entity.name if entity is not None else "<unknown>"

    target = _name(record.target_entity_id)
    names = ", ".join(_name(item) for item in record.participant_ids)
    if record.kind is ConflictKind.MULTIPLE_EXCLUSIVE:
        text = f"Multiple exclusive accesses of '{target}' by: {names}"
    else:
        text = f"Exclusive and shared accesses of '{target}' by: {names}"
    if record.dynamic:
        text += " (dynamic access)"
    return text


def report_conflicts(
    view: GraphView, conflicts: Optional[Iterable[ConflictRecord]] = None
) -> str:
    """Human-readable summary of ``find_conflicts`` output."""
    records = (
        list(conflicts) if conflicts is not None else find_conflicts(view)
    )
    if not records:
        return "No borrow conflicts detected."

    lines = [f"Found {len(records)} conflict(s):", ""]
    for index, record in enumerate(records, start=1):
        start, end = record.overlap_range
        lines.append(f"{index}. {describe_conflict(record, view)}")
        lines.append(
            f"   Time range: {start} - {'open' if end is None else end}"
        )
        lines.append("")
    return "\n".join(lines)
