"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Structural graph algorithms over a read-only graph view.

Every function walks the graph with an explicit stack or queue so deep
ownership chains cannot exhaust the interpreter's recursion limit. Unknown
ids and empty graphs yield empty results rather than errors; the only
refusal is ``topological_order`` on a cyclic graph.
"""

from __future__ import annotations

import heapq
import logging
from collections import deque
from typing import Deque, Dict, Iterator, List, Optional, Set, Tuple

from borrowtrace.errors import CycleError
from borrowtrace.storage.base import GraphView

_LOGGER = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


def _successors(view: GraphView, entity_id: int) -> List[int]:
    seen: Set[int] = set()
    ordered: List[int] = []
    for relationship in view.outgoing(entity_id):
        target = relationship.depended_on_id
        if target not in seen and view.entity(target) is not None:
            seen.add(target)
            ordered.append(target)
    return ordered


def _predecessors(view: GraphView, entity_id: int) -> List[int]:
    seen: Set[int] = set()
    ordered: List[int] = []
    for relationship in view.incoming(entity_id):
        source = relationship.dependent_id
        if source not in seen and view.entity(source) is not None:
            seen.add(source)
            ordered.append(source)
    return ordered


def _closure(view: GraphView, start: int, *, forward: bool) -> Set[int]:
    if view.entity(start) is None:
        return set()
    step = _successors if forward else _predecessors
    visited: Set[int] = {start}
    stack = [start]
    while stack:
        current = stack.pop()
        for neighbour in step(view, current):
            if neighbour not in visited:
                visited.add(neighbour)
                stack.append(neighbour)
    visited.discard(start)
    return visited


def reachable_from(view: GraphView, entity_id: int) -> Set[int]:
    """Everything ``entity_id`` transitively depends on (start excluded)."""
    return _closure(view, entity_id, forward=True)


def dependents_of(view: GraphView, entity_id: int) -> Set[int]:
    """Everything that transitively depends on ``entity_id``."""
    return _closure(view, entity_id, forward=False)


def can_reach(view: GraphView, from_id: int, to_id: int) -> bool:
    if view.entity(from_id) is None or view.entity(to_id) is None:
        return False
    if from_id == to_id:
        return True
    return to_id in reachable_from(view, from_id)


def find_cycle(view: GraphView) -> Optional[List[int]]:
    """
    Return one cycle as a list of ids in traversal order, or None.

    Three-colour DFS started from each unvisited entity in id order; a
    grey successor closes the cycle found on the current path.
    """

    colour: Dict[int, int] = {}
    for root in (entity.id for entity in view.entities()):
        if colour.get(root, _WHITE) != _WHITE:
            continue
        path: List[int] = [root]
        position: Dict[int, int] = {root: 0}
        colour[root] = _GRAY
        stack: List[Tuple[int, Iterator[int]]] = [
            (root, iter(_successors(view, root)))
        ]
        while stack:
            node, children = stack[-1]
            advanced = False
            for child in children:
                state = colour.get(child, _WHITE)
                if state == _GRAY:
                    return path[position[child]:]
                if state == _WHITE:
                    colour[child] = _GRAY
                    position[child] = len(path)
                    path.append(child)
                    stack.append((child, iter(_successors(view, child))))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                colour[node] = _BLACK
                path.pop()
                del position[node]
    return None


def has_cycle(view: GraphView) -> bool:
    return find_cycle(view) is not None


def topological_order(view: GraphView) -> List[int]:
    """Order entities so every dependent precedes what it depends on.

    Kahn's algorithm with a min-heap, so ties resolve to the lowest id.

    :raises CycleError: when the graph is cyclic; no partial order is
        returned
    """

    indegree: Dict[int, int] = {}
    for entity in view.entities():
        indegree[entity.id] = len(_predecessors(view, entity.id))
    ready = [entity_id for entity_id, count in indegree.items() if not count]
    heapq.heapify(ready)
    order: List[int] = []
    while ready:
        current = heapq.heappop(ready)
        order.append(current)
        for target in _successors(view, current):
            indegree[target] -= 1
            if indegree[target] == 0:
                heapq.heappush(ready, target)

    if len(order) != len(indegree):
        cycle = find_cycle(view) or []
        _LOGGER.warning("Topological order refused: cycle %s", cycle)
        raise CycleError(
            "Relationship graph contains a cycle: "
            + " -> ".join(str(item) for item in cycle + cycle[:1]),
            cycle,
        )
    return order


def connected_components(view: GraphView) -> List[Set[int]]:
    """Weakly connected components, ordered by their smallest id."""
    seen: Set[int] = set()
    components: List[Set[int]] = []
    for entity in view.entities():
        if entity.id in seen:
            continue
        component: Set[int] = {entity.id}
        seen.add(entity.id)
        queue: Deque[int] = deque([entity.id])
        while queue:
            current = queue.popleft()
            neighbours = _successors(view, current)
            neighbours.extend(_predecessors(view, current))
            for neighbour in neighbours:
                if neighbour not in seen:
                    seen.add(neighbour)
                    component.add(neighbour)
                    queue.append(neighbour)
        components.append(component)
    # entities() is id-ordered, so the first member found is the smallest.
    return components


def shortest_chain(
    view: GraphView, from_id: int, to_id: int
) -> Optional[List[int]]:
    """Fewest-hop path following dependent -> depended-upon edges."""
    if view.entity(from_id) is None or view.entity(to_id) is None:
        return None
    if from_id == to_id:
        return [from_id]
    parents: Dict[int, int] = {}
    visited: Set[int] = {from_id}
    queue: Deque[int] = deque([from_id])
    while queue:
        current = queue.popleft()
        for neighbour in _successors(view, current):
            if neighbour in visited:
                continue
            visited.add(neighbour)
            parents[neighbour] = current
            if neighbour == to_id:
                chain = [to_id]
                while chain[-1] != from_id:
                    chain.append(parents[chain[-1]])
                chain.reverse()
                return chain
            queue.append(neighbour)
    return None


def dependency_depths(view: GraphView) -> Dict[int, int]:
    """Longest forward chain length (in edges) from every entity.

    Back edges are ignored, so the result is defined for cyclic graphs too.
    """

    depth: Dict[int, int] = {}
    on_path: Set[int] = set()
    for root in (entity.id for entity in view.entities()):
        if root in depth:
            continue
        best: Dict[int, int] = {root: 0}
        on_path.add(root)
        stack: List[Tuple[int, Iterator[int]]] = [
            (root, iter(_successors(view, root)))
        ]
        while stack:
            node, children = stack[-1]
            pushed = False
            for child in children:
                if child in depth:
                    best[node] = max(best[node], depth[child] + 1)
                elif child not in on_path:
                    best[child] = 0
                    on_path.add(child)
                    stack.append((child, iter(_successors(view, child))))
                    pushed = True
                    break
            if pushed:
                continue
            stack.pop()
            on_path.discard(node)
            depth[node] = best.pop(node)
            if stack:
                parent = stack[-1][0]
                best[parent] = max(best[parent], depth[node] + 1)
    return depth


def dependency_depth(view: GraphView, entity_id: int) -> int:
    if view.entity(entity_id) is None:
        return 0
    return dependency_depths(view).get(entity_id, 0)


def find_roots(view: GraphView) -> List[int]:
    """Entities nothing depends on."""
    return [
        entity.id
        for entity in view.entities()
        if not _predecessors(view, entity.id)
    ]


def find_leaves(view: GraphView) -> List[int]:
    """Entities that depend on nothing."""
    return [
        entity.id
        for entity in view.entities()
        if not _successors(view, entity.id)
    ]
