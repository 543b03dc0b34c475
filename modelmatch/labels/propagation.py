"""Confidence-ranked label propagation over a folder of models.

For every target model the pass looks at its match candidates, best score
first, and takes the property value of the highest-scoring candidate that
carries one.

Rules
-----
* Unlabeled target, evidence found      -> value assigned, confidence = score.
* Labeled target, no evidence found     -> property deleted.  Evidence is
  re-derived on every pass; a label nothing supports any more is removed.
* Labeled target, evidence found        -> left as is.  Existing values are
  authoritative and are never overwritten, so no mutation is issued.
* Equal top scores with different values: the candidate with the
  lexicographically smallest model identifier wins.

A pass is not iterated to a fixed point.  All evidence is read from one
metadata snapshot taken before any decision, so a model labeled in this pass
only becomes evidence for others on the next run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

from modelmatch.api.models import MatchCandidate, ModelMetadata, ModelRef
from modelmatch.config import settings
from modelmatch.errors import AllQueriesFailedError, ClientError
from modelmatch.fanout import fan_out
from modelmatch.labels.models import (
    MutationFailure,
    Outcome,
    PropagationOutcome,
    PropagationReport,
    WithdrawnEvidence,
)

if TYPE_CHECKING:
    from modelmatch.api.client import ApiClient

logger = logging.getLogger(__name__)

Snapshot = dict[str, Union[ModelMetadata, ClientError]]


def rank_candidates(
    target_id: str,
    candidates: list[MatchCandidate],
    threshold: float,
    scope: Optional[set[int]] = None,
) -> list[MatchCandidate]:
    """Qualifying candidates, best first; ties broken by model identifier.

    Self-matches and scores below *threshold* are dropped.  With *scope*
    set, only candidates whose folder is in it qualify.
    """
    best: dict[str, MatchCandidate] = {}
    for c in candidates:
        if c.model.id == target_id or c.score < threshold:
            continue
        if scope is not None and c.model.folder_id not in scope:
            continue
        if c.model.id not in best or c.score > best[c.model.id].score:
            best[c.model.id] = c
    return sorted(best.values(), key=lambda c: (-c.score, c.model.id))


def decide(
    target: ModelRef,
    current_value: Optional[str],
    ranked: list[MatchCandidate],
    snapshot: Snapshot,
    property_name: str,
) -> PropagationOutcome:
    """Pure decision for one target against a metadata snapshot."""
    evidence: Optional[MatchCandidate] = None
    evidence_value: Optional[str] = None
    for candidate in ranked:
        metadata = snapshot.get(candidate.model.id)
        if isinstance(metadata, ClientError) or metadata is None:
            return PropagationOutcome(
                model=target,
                outcome=Outcome.SKIPPED,
                previous_value=current_value,
                reason=f"metadata of candidate {candidate.model.id} unavailable: {metadata}",
            )
        value = metadata.value(property_name)
        if value is not None:
            evidence, evidence_value = candidate, value
            break

    if evidence is None:
        if current_value is None:
            return PropagationOutcome(
                model=target, outcome=Outcome.UNCHANGED, reason="no evidence"
            )
        return PropagationOutcome(
            model=target,
            outcome=Outcome.DELETED,
            previous_value=current_value,
            reason=f"no candidate carries {property_name!r}",
        )

    if current_value is None:
        return PropagationOutcome(
            model=target,
            outcome=Outcome.ASSIGNED,
            value=evidence_value,
            confidence=evidence.score,
            evidence_id=evidence.model.id,
        )

    reason = "already labeled"
    if current_value != evidence_value:
        reason = (
            f"kept existing value; best evidence {evidence_value!r} "
            f"from {evidence.model.id} at {evidence.score:.4f}"
        )
    return PropagationOutcome(
        model=target,
        outcome=Outcome.UNCHANGED,
        value=current_value,
        previous_value=current_value,
        confidence=1.0,
        reason=reason,
    )


class LabelPropagator:
    """Runs one propagation pass over the models of a folder scope."""

    def __init__(self, client: ApiClient, max_workers: Optional[int] = None) -> None:
        self._client = client
        self._max_workers = max_workers or settings.max_concurrency

    def propagate(
        self,
        folder_ids: Optional[set[int]],
        threshold: float,
        property_name: str,
        exclusive: bool = False,
        search: Optional[str] = None,
        apply: bool = True,
    ) -> PropagationReport:
        """Run one pass and return its per-model report.

        Args:
            folder_ids: Folders whose models are labeled; ``None`` means all.
            threshold: Minimum match score in ``[0, 1]`` (inclusive).
            property_name: Metadata property to propagate.
            exclusive: Only accept evidence from models inside *folder_ids*.
            search: Optional search term narrowing the target models.
            apply: ``False`` computes the report without writing anything.

        Raises:
            ValueError: On an invalid threshold or empty property name.
            ClientError: If the target models cannot be listed.
            AllQueriesFailedError: If the match query of every target failed.
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        if not property_name.strip():
            raise ValueError("property name must not be empty")

        report = PropagationReport(
            property_name=property_name, threshold=threshold, applied=apply
        )
        targets = list({m.id: m for m in self._client.list_models(folder_ids, search)}.values())
        logger.info("Propagating %r over %d model(s)", property_name, len(targets))
        if not targets:
            return report

        scope = folder_ids if exclusive else None
        matches = fan_out(
            lambda model_id: self._client.match_model(model_id, threshold),
            [t.id for t in targets],
            self._max_workers,
        )

        ranked: dict[str, list[MatchCandidate]] = {}
        for target in targets:
            result = matches[target.id]
            if isinstance(result, ClientError):
                logger.warning("Match query for %s failed: %s", target.id, result)
                continue
            ranked[target.id] = rank_candidates(target.id, result, threshold, scope)
        if not ranked:
            raise AllQueriesFailedError(len(targets))

        needed = list(ranked) + [c.model.id for cs in ranked.values() for c in cs]
        snapshot: Snapshot = fan_out(
            self._client.get_model_metadata, needed, self._max_workers
        )

        for target in targets:
            report.outcomes.append(self._evaluate(target, matches, ranked, snapshot, property_name))

        if apply:
            self._apply(report)
        self._note_withdrawn_evidence(report)
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _evaluate(
        target: ModelRef,
        matches: dict,
        ranked: dict[str, list[MatchCandidate]],
        snapshot: Snapshot,
        property_name: str,
    ) -> PropagationOutcome:
        if target.id not in ranked:
            return PropagationOutcome(
                model=target,
                outcome=Outcome.SKIPPED,
                reason=f"match query failed: {matches[target.id]}",
            )
        own = snapshot.get(target.id)
        if isinstance(own, ClientError) or own is None:
            logger.warning("Metadata for %s could not be read: %s", target.id, own)
            return PropagationOutcome(
                model=target,
                outcome=Outcome.SKIPPED,
                reason=f"own metadata unavailable: {own}",
            )
        return decide(target, own.value(property_name), ranked[target.id], snapshot, property_name)

    @staticmethod
    def _note_withdrawn_evidence(report: PropagationReport) -> None:
        # An assignment taken from a model that loses its own value in the
        # same pass has no support left; the next run deletes it again.
        deleted = {o.model.id for o in report.with_outcome(Outcome.DELETED)}
        for o in report.with_outcome(Outcome.ASSIGNED):
            if o.evidence_id in deleted:
                logger.warning(
                    "%s was assigned %r from %s, whose own %r is deleted in this pass",
                    o.model.id,
                    o.value,
                    o.evidence_id,
                    report.property_name,
                )
                report.withdrawn_evidence.append(
                    WithdrawnEvidence(model_id=o.model.id, evidence_id=o.evidence_id)
                )

    def _apply(self, report: PropagationReport) -> None:
        pending = {
            o.model.id: o
            for o in report.outcomes
            if o.outcome in (Outcome.ASSIGNED, Outcome.DELETED)
        }
        name = report.property_name

        def mutate(model_id: str) -> None:
            outcome = pending[model_id]
            if outcome.outcome is Outcome.ASSIGNED:
                self._client.set_model_property(model_id, name, outcome.value or "")
            else:
                self._client.delete_model_property(model_id, name)

        results = fan_out(mutate, list(pending), self._max_workers)
        for model_id, outcome in pending.items():
            result = results[model_id]
            if not isinstance(result, ClientError):
                continue
            action = "assign" if outcome.outcome is Outcome.ASSIGNED else "delete"
            logger.warning("Failed to %s %r on %s: %s", action, name, model_id, result)
            report.mutation_failures.append(
                MutationFailure(model_id=model_id, action=action, reason=str(result))
            )
            outcome.reason = f"failed to {action} {name!r}: {result}"
            outcome.outcome = Outcome.SKIPPED
