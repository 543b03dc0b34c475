"""Utilities for rendering command results in the CLI."""

from __future__ import annotations

from modelmatch.api.models import MatchCandidate
from modelmatch.assembly.models import AssemblyNode
from modelmatch.graph.export import format_score
from modelmatch.graph.models import DuplicateTable, MatchGraph
from modelmatch.labels.models import Outcome, PropagationReport


def render_tree(root: AssemblyNode) -> str:
    """Render a resolved assembly as an ASCII tree.

    Stubs are flagged ``[unresolved]``; nodes whose children could not be
    listed are flagged ``[incomplete]``.

    Args:
        root: The resolved assembly.

    Returns:
        String representation of the tree.
    """
    lines: list[str] = []
    # (node, prefix, is_last, is_root)
    stack: list[tuple[AssemblyNode, str, bool, bool]] = [(root, "", True, True)]
    while stack:
        node, prefix, is_last, is_root = stack.pop()
        label = f"{node.ref.display_name} ({node.id})"
        if not node.resolved:
            label += " [unresolved]"
        elif node.warning:
            label += " [incomplete]"

        if is_root:
            lines.append(label)
            child_prefix = ""
        else:
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{label}")
            child_prefix = prefix + ("    " if is_last else "│   ")

        count = len(node.children)
        for i, child in reversed(list(enumerate(node.children))):
            stack.append((child, child_prefix, i == count - 1, False))
    return "\n".join(lines)


def render_candidates(candidates: list[MatchCandidate]) -> str:
    if not candidates:
        return "No matches found."
    lines = []
    for c in sorted(candidates, key=lambda c: (-c.score, c.model.id)):
        reverse = format_score(c.reverse_score) or "-"
        lines.append(f"  {format_score(c.score)}  {reverse:>6}  {c.model.id}  {c.model.name!r}")
    return "\n".join(lines)


def render_build_summary(graph: MatchGraph, table: DuplicateTable) -> str:
    stubs = sum(1 for n in graph.nodes() if not n.resolved)
    lines = [
        f"Models: {len(graph)}  Pairs: {len(table)}  Stubs: {stubs}  "
        f"Failed queries: {len(table.skipped)}"
    ]
    for failure in table.skipped:
        lines.append(f"  skipped {failure.model_id}: {failure.reason}")
    return "\n".join(lines)


def render_propagation(report: PropagationReport) -> str:
    """One line per model that did not stay unchanged, then the summary."""
    lines = []
    for o in report.outcomes:
        if o.outcome is Outcome.ASSIGNED:
            lines.append(
                f"  assigned  {o.model.id}  {o.value!r}  "
                f"(confidence {format_score(o.confidence)} from {o.evidence_id})"
            )
        elif o.outcome is Outcome.DELETED:
            lines.append(f"  deleted   {o.model.id}  was {o.previous_value!r}")
        elif o.outcome is Outcome.SKIPPED:
            lines.append(f"  skipped   {o.model.id}  {o.reason}")
    lines.append(report.summary())
    return "\n".join(lines)
