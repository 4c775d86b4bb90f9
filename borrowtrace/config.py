"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Central configuration constants for the ownership tracker.
"""

from __future__ import annotations

from typing import Any, Dict

# Export format ---------------------------------------------------------------

EXPORT_FORMAT_VERSION = "1.0.0"
"""Version string written into every exported document."""

COMPACT_FORMAT_VERSION = 2
"""Integer version for the positional (compact) export."""

# Locking ---------------------------------------------------------------------

DEFAULT_LOCK_TIMEOUT_SECONDS = 2.0
"""Bounded wait used by exporters that must not stall a UI thread."""

# Environment variable names --------------------------------------------------

ENV_TRACK = "BORROWTRACE_TRACK"
ENV_LOCK_TIMEOUT = "BORROWTRACE_LOCK_TIMEOUT"
ENV_EXPORT_DIR = "BORROWTRACE_EXPORT_DIR"
ENV_EXPORT_BUCKET = "BORROWTRACE_EXPORT_BUCKET"
ENV_EXPORT_PREFIX = "BORROWTRACE_EXPORT_PREFIX"

DEFAULT_EXPORT_DIR = "/tmp/borrowtrace-exports"

# Visualization ---------------------------------------------------------------

DEFAULT_LAYOUT = "dagre"

LAYOUT_PRESETS: Dict[str, Dict[str, Any]] = {
    "dagre": {
        "rankDir": "LR",
        "nodeSep": 50,
        "rankSep": 100,
        "ranker": "network-simplex",
    },
    "cola": {
        "animate": True,
        "maxSimulationTime": 2000,
        "nodeSpacing": 50,
        "edgeLength": 100,
    },
    "circle": {
        "radius": 200,
        "startAngle": 0,
        "sweep": 6.283185307179586,
    },
    "grid": {
        "rows": 5,
        "cols": 5,
        "position": None,
    },
    "breadthfirst": {
        "directed": True,
        "spacingFactor": 1.5,
    },
}
"""Layout algorithm names understood by the visualization client."""

EDGE_COLORS: Dict[str, str] = {
    "exclusive_borrow": "#e74c3c",
    "shared_borrow": "#2ecc71",
    "move": "#f39c12",
    "shared_ownership_clone": "#9b59b6",
    "dynamic_exclusive_access": "#d35400",
    "dynamic_shared_access": "#16a085",
}
"""Colour per relationship kind, shared by DOT and visualization output."""
