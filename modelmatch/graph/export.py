"""Serialise one built match graph to the three report files.

All three outputs are rendered from the same :class:`MatchGraph` /
:class:`DuplicateTable` snapshot, so a graph index means the same model in
every file.
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any, Optional

from modelmatch.graph.models import DuplicateTable, MatchGraph

DUPLICATE_COLUMNS = [
    "SOURCE_UUID",
    "SOURCE_FOLDER",
    "MATCH_UUID",
    "MATCH_FOLDER",
    "FORWARD_SCORE",
    "REVERSE_SCORE",
]


def format_score(score: Optional[float]) -> str:
    return "" if score is None else f"{score:.4f}"


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def duplicates_to_csv(table: DuplicateTable) -> str:
    """Render the duplicate table as CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(DUPLICATE_COLUMNS + table.metadata_columns)
    for row in table.rows:
        writer.writerow(
            [
                row.source_id,
                row.source_folder,
                row.match_id,
                row.match_folder,
                format_score(row.forward_score),
                format_score(row.reverse_score),
            ]
            + [row.metadata.get(column, "") for column in table.metadata_columns]
        )
    return buffer.getvalue()


def graph_to_dot(graph: MatchGraph) -> str:
    """Render the graph in Graphviz DOT.

    One node statement per graph index, labelled with the model name (the
    identifier for stubs), and one edge per pair labelled with the larger
    of its two directional scores.
    """
    lines = ["digraph {"]
    for node in graph.nodes():
        lines.append(f'    {node.index} [ label = "{_dot_escape(node.ref.display_name)}" ]')
    for edge in graph.edges():
        lines.append(
            f'    {edge.a.index} -> {edge.b.index} '
            f'[ label = "{format_score(edge.dominant_score)}" ]'
        )
    lines.append("}")
    return "\n".join(lines) + "\n"


def graph_to_dictionary(graph: MatchGraph) -> dict[str, dict[str, Any]]:
    """Map every graph index (stubs included) to the model it stands for."""
    return {
        str(node.index): {
            "uuid": node.ref.id,
            "name": node.ref.name,
            "resolved": node.resolved,
        }
        for node in graph.nodes()
    }


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

def write_match_report(
    graph: MatchGraph,
    table: DuplicateTable,
    duplicates_path: Path,
    graph_path: Path,
    dictionary_path: Path,
) -> None:
    """Render all three outputs first, then write them.

    Nothing is written if rendering fails, so a failed run never leaves a
    partial set of report files behind.
    """
    duplicates = duplicates_to_csv(table)
    dot = graph_to_dot(graph)
    dictionary = json.dumps(graph_to_dictionary(graph), indent=2)

    Path(duplicates_path).write_text(duplicates, encoding="utf-8", newline="")
    Path(graph_path).write_text(dot, encoding="utf-8")
    Path(dictionary_path).write_text(dictionary + "\n", encoding="utf-8")
