"""Read-only algorithms over graph snapshots."""

from .conflicts import (active_accesses_at, check_conflicts_at,
                        conflict_timeline, describe_conflict, find_conflicts,
                        report_conflicts)
from .traversal import (can_reach, connected_components, dependency_depth,
                        dependency_depths, dependents_of, find_cycle,
                        find_leaves, find_roots, has_cycle, reachable_from,
                        shortest_chain, topological_order)
from .validation import validate_graph

__all__ = [
    "active_accesses_at",
    "can_reach",
    "check_conflicts_at",
    "conflict_timeline",
    "connected_components",
    "dependency_depth",
    "dependency_depths",
    "dependents_of",
    "describe_conflict",
    "find_conflicts",
    "find_cycle",
    "find_leaves",
    "find_roots",
    "has_cycle",
    "reachable_from",
    "report_conflicts",
    "shortest_chain",
    "topological_order",
    "validate_graph",
]
