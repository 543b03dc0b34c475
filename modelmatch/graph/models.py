"""Match graph data structures.

Every model added to a :class:`MatchGraph` gets a stable integer *graph
index* on first insertion.  That index is the join key between the duplicate
report, the DOT export and the dictionary export.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from modelmatch.api.models import ModelRef


@dataclass
class GraphNode:
    index: int
    ref: ModelRef
    resolved: bool = True


@dataclass
class MatchEdge:
    """Unordered pair of models with one score per direction.

    ``a`` is always the endpoint with the lower graph index.  ``forward`` is
    the score of ``a`` matched against ``b``; ``reverse`` is ``b`` against
    ``a``.  Either may be ``None`` until that direction is observed.
    """

    a: GraphNode
    b: GraphNode
    forward: Optional[float] = None
    reverse: Optional[float] = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.a.index, self.b.index)

    @property
    def dominant_score(self) -> float:
        return max(s for s in (self.forward, self.reverse) if s is not None)

    def observe(self, source_id: str, score: float) -> None:
        """Record *score* for the direction that starts at *source_id*.

        A direction observed twice keeps the larger score.
        """
        if source_id == self.a.ref.id:
            self.forward = score if self.forward is None else max(self.forward, score)
        elif source_id == self.b.ref.id:
            self.reverse = score if self.reverse is None else max(self.reverse, score)
        else:
            raise ValueError(f"{source_id} is not an endpoint of this edge")


class MatchGraph:
    """Deduplicated graph of models and their pairwise match scores.

    Not thread-safe: exactly one owner mutates it.  Concurrent workers hand
    their results to that owner instead of inserting themselves.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._edges: dict[tuple[int, int], MatchEdge] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_node(self, ref: ModelRef, resolved: bool = True) -> int:
        """Insert *ref* and return its graph index.

        Idempotent: inserting an identifier that is already present returns
        the existing index and leaves its edges untouched.  A stub that is
        later inserted with full data is upgraded in place.
        """
        existing = self._nodes.get(ref.id)
        if existing is not None:
            if resolved and not existing.resolved:
                existing.ref = ref
                existing.resolved = True
            return existing.index
        node = GraphNode(index=len(self._nodes), ref=ref, resolved=resolved)
        self._nodes[ref.id] = node
        return node.index

    def add_match(
        self,
        source_id: str,
        target_id: str,
        score: float,
        reverse_score: Optional[float] = None,
    ) -> Optional[MatchEdge]:
        """Add or update the edge between two nodes already in the graph.

        Self-matches are discarded and return ``None``.

        Args:
            source_id: The queried model.
            target_id: The candidate returned for it.
            score: Score of source matched against target.
            reverse_score: Score of target matched against source, if known.
        """
        if source_id == target_id:
            return None
        source = self._nodes[source_id]
        target = self._nodes[target_id]
        a, b = (source, target) if source.index < target.index else (target, source)

        edge = self._edges.get((a.index, b.index))
        if edge is None:
            edge = MatchEdge(a=a, b=b)
            self._edges[edge.key] = edge
        edge.observe(source_id, score)
        if reverse_score is not None:
            edge.observe(target_id, reverse_score)
        return edge

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def node(self, model_id: str) -> Optional[GraphNode]:
        return self._nodes.get(model_id)

    def index_of(self, model_id: str) -> Optional[int]:
        node = self._nodes.get(model_id)
        return node.index if node else None

    def nodes(self) -> list[GraphNode]:
        """All nodes in index order."""
        return list(self._nodes.values())

    def edges(self) -> list[MatchEdge]:
        """All edges ordered by ``(a.index, b.index)``."""
        return [self._edges[k] for k in sorted(self._edges)]

    def edge(self, first_id: str, second_id: str) -> Optional[MatchEdge]:
        first, second = self._nodes.get(first_id), self._nodes.get(second_id)
        if first is None or second is None:
            return None
        return self._edges.get(tuple(sorted((first.index, second.index))))  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._nodes

    @property
    def edge_count(self) -> int:
        return len(self._edges)


# ---------------------------------------------------------------------------
# Duplicate report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchQueryFailure:
    """A match query that failed and was skipped."""

    model_id: str
    reason: str


@dataclass
class DuplicateRow:
    source_index: int
    source_id: str
    source_name: str
    source_folder: str
    match_index: int
    match_id: str
    match_name: str
    match_folder: str
    forward_score: Optional[float]
    reverse_score: Optional[float]
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class DuplicateTable:
    """The edge set of a :class:`MatchGraph` projected to report rows.

    ``skipped`` lists match queries that failed, so an empty table can be
    told apart from a table with gaps.
    """

    rows: list[DuplicateRow] = field(default_factory=list)
    metadata_columns: list[str] = field(default_factory=list)
    skipped: list[MatchQueryFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)
