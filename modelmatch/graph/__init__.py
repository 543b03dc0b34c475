"""Match graph package: builder, data structures and report exports."""

from modelmatch.graph.builder import MatchGraphBuilder
from modelmatch.graph.export import (
    duplicates_to_csv,
    graph_to_dictionary,
    graph_to_dot,
    write_match_report,
)
from modelmatch.graph.models import (
    DuplicateRow,
    DuplicateTable,
    GraphNode,
    MatchEdge,
    MatchGraph,
    MatchQueryFailure,
)

__all__ = [
    "MatchGraphBuilder",
    "duplicates_to_csv",
    "graph_to_dictionary",
    "graph_to_dot",
    "write_match_report",
    "DuplicateRow",
    "DuplicateTable",
    "GraphNode",
    "MatchEdge",
    "MatchGraph",
    "MatchQueryFailure",
]
