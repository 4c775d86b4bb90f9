"""Encoders, importers and the visualization export."""

from .delta import GraphDelta, export_delta
from .graph_description import export_graph_description
from .json_export import (build_compact_document, build_full_document,
                          export_compact_json, export_events_json,
                          export_full_json, import_compact_json,
                          import_full_json, load_events_json)
from .visualization import (build_visualization_document,
                            export_for_visualization)

__all__ = [
    "GraphDelta",
    "build_compact_document",
    "build_full_document",
    "build_visualization_document",
    "export_compact_json",
    "export_delta",
    "export_events_json",
    "export_for_visualization",
    "export_full_json",
    "export_graph_description",
    "import_compact_json",
    "import_full_json",
    "load_events_json",
]
