"""Build a deduplicated match graph from one or more resolved assemblies.

Pipeline
--------
1. Flatten the assembly trees in pre-order and insert every model, stubs
   included, into the graph.  This fixes the index of every assembly model
   before any query runs.
2. Fan out one part-to-part match query per unique resolved model.
3. Merge the results on the calling thread, in flatten order, never in
   completion order.  Candidates are inserted (idempotently) and their
   directional scores recorded on the pair's edge.
4. Project the finished graph to a :class:`DuplicateTable`.

Steps 1 and 3 make the index assignment and the report order identical
across runs no matter how the concurrent queries interleave.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence, Union

from modelmatch.api.models import MatchCandidate, ModelMetadata
from modelmatch.assembly.models import AssemblyNode
from modelmatch.config import settings
from modelmatch.errors import AllQueriesFailedError, ClientError
from modelmatch.fanout import fan_out
from modelmatch.graph.models import (
    DuplicateRow,
    DuplicateTable,
    GraphNode,
    MatchGraph,
    MatchQueryFailure,
)

if TYPE_CHECKING:
    from modelmatch.api.client import ApiClient

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "reference."


class MatchGraphBuilder:
    """Turns assemblies plus a threshold into a :class:`MatchGraph`.

    Args:
        client: Remote API adapter.
        max_workers: Concurrent match queries (defaults to
            ``settings.max_concurrency``).
        folders: Optional ``folder id -> folder name`` map used to label the
            folder columns of the duplicate report.
    """

    def __init__(
        self,
        client: ApiClient,
        max_workers: Optional[int] = None,
        folders: Optional[dict[int, str]] = None,
    ) -> None:
        self._client = client
        self._max_workers = max_workers or settings.max_concurrency
        self._folders = folders or {}

    def build(
        self,
        seed: Union[AssemblyNode, Sequence[AssemblyNode]],
        threshold: float,
        include_meta: bool = False,
    ) -> tuple[MatchGraph, DuplicateTable]:
        """Build the graph and its duplicate table.

        Args:
            seed: A resolved assembly, or several (flattened in the given order).
            threshold: Minimum score in ``[0, 1]``; a score equal to the
                threshold is included.
            include_meta: Add metadata columns to the duplicate table.

        Raises:
            ValueError: If *threshold* is outside ``[0, 1]``.
            AllQueriesFailedError: If every match query failed.
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")

        seeds = [seed] if isinstance(seed, AssemblyNode) else list(seed)
        graph = MatchGraph()
        query_ids = self._flatten_into(graph, seeds)

        logger.info("Running %d match queries at threshold %.4f", len(query_ids), threshold)
        results = fan_out(
            lambda model_id: self._client.match_model(model_id, threshold),
            query_ids,
            self._max_workers,
        )

        failures: list[MatchQueryFailure] = []
        for model_id in query_ids:
            result = results[model_id]
            if isinstance(result, ClientError):
                logger.warning("Match query for %s failed: %s", model_id, result)
                failures.append(MatchQueryFailure(model_id=model_id, reason=str(result)))
                continue
            self._merge(graph, model_id, result, threshold)

        if query_ids and len(failures) == len(query_ids):
            raise AllQueriesFailedError(len(failures))

        table = DuplicateTable(rows=self._project(graph), skipped=failures)
        if include_meta:
            self._attach_metadata(table)
        return graph, table

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _flatten_into(graph: MatchGraph, seeds: list[AssemblyNode]) -> list[str]:
        """Insert every assembly model in pre-order; return the ids to query."""
        query_ids: list[str] = []
        queued: set[str] = set()
        for root in seeds:
            for node in root.walk():
                graph.add_node(node.ref, resolved=node.resolved)
                if node.resolved and node.id not in queued:
                    queued.add(node.id)
                    query_ids.append(node.id)
        return query_ids

    @staticmethod
    def _merge(
        graph: MatchGraph,
        model_id: str,
        candidates: list[MatchCandidate],
        threshold: float,
    ) -> None:
        ranked = sorted(candidates, key=lambda c: (-c.score, c.model.id))
        for candidate in ranked:
            if candidate.score < threshold or candidate.model.id == model_id:
                continue
            graph.add_node(candidate.model)
            graph.add_match(model_id, candidate.model.id, candidate.score, candidate.reverse_score)

    def _folder_label(self, node: GraphNode) -> str:
        folder_id = node.ref.folder_id
        if folder_id is None:
            return ""
        return self._folders.get(folder_id, str(folder_id))

    def _project(self, graph: MatchGraph) -> list[DuplicateRow]:
        """One row per edge, oriented so the forward score is an observed one."""
        rows: list[DuplicateRow] = []
        for edge in graph.edges():
            if edge.forward is not None:
                source, match, forward, reverse = edge.a, edge.b, edge.forward, edge.reverse
            else:
                source, match, forward, reverse = edge.b, edge.a, edge.reverse, edge.forward
            rows.append(
                DuplicateRow(
                    source_index=source.index,
                    source_id=source.ref.id,
                    source_name=source.ref.name,
                    source_folder=self._folder_label(source),
                    match_index=match.index,
                    match_id=match.ref.id,
                    match_name=match.ref.name,
                    match_folder=self._folder_label(match),
                    forward_score=forward,
                    reverse_score=reverse,
                )
            )
        rows.sort(key=lambda r: (-(r.forward_score or 0.0), r.source_id, r.match_id))
        return rows

    def _attach_metadata(self, table: DuplicateTable) -> None:
        """Fill metadata cells: match properties by name, source ones prefixed."""
        ids = list(dict.fromkeys(i for r in table.rows for i in (r.source_id, r.match_id)))
        results = fan_out(self._client.get_model_metadata, ids, self._max_workers)

        metadata: dict[str, ModelMetadata] = {}
        for model_id in ids:
            result = results[model_id]
            if isinstance(result, ClientError):
                logger.warning("Metadata for %s could not be read: %s", model_id, result)
                metadata[model_id] = ModelMetadata()
            else:
                metadata[model_id] = result

        columns: set[str] = set()
        for row in table.rows:
            row.metadata = dict(metadata[row.match_id].as_dict())
            for name, value in metadata[row.source_id].as_dict().items():
                row.metadata[f"{REFERENCE_PREFIX}{name}"] = value
            columns.update(row.metadata)
        table.metadata_columns = sorted(columns)
