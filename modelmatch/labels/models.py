"""Result types of a label propagation pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from modelmatch.api.models import ModelRef


class Outcome(str, Enum):
    ASSIGNED = "assigned"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LabelAssignment:
    """A property value inferred for a model.

    ``confidence`` is the match score of the candidate the value was taken
    from.  Values already present on a model are authoritative and never
    appear as assignments.
    """

    model: ModelRef
    property_name: str
    value: str
    confidence: float
    evidence_id: str


@dataclass(frozen=True)
class MutationFailure:
    model_id: str
    action: str
    reason: str


@dataclass(frozen=True)
class WithdrawnEvidence:
    """An assignment whose evidence model lost its own value in the same pass."""

    model_id: str
    evidence_id: str


@dataclass
class PropagationOutcome:
    """What one pass decided (and, unless dry-run, did) for one model."""

    model: ModelRef
    outcome: Outcome
    value: Optional[str] = None
    previous_value: Optional[str] = None
    confidence: Optional[float] = None
    evidence_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class PropagationReport:
    property_name: str
    threshold: float
    applied: bool = True
    outcomes: list[PropagationOutcome] = field(default_factory=list)
    mutation_failures: list[MutationFailure] = field(default_factory=list)
    withdrawn_evidence: list[WithdrawnEvidence] = field(default_factory=list)

    def with_outcome(self, outcome: Outcome) -> list[PropagationOutcome]:
        return [o for o in self.outcomes if o.outcome is outcome]

    @property
    def assignments(self) -> list[LabelAssignment]:
        return [
            LabelAssignment(
                model=o.model,
                property_name=self.property_name,
                value=o.value or "",
                confidence=o.confidence or 0.0,
                evidence_id=o.evidence_id or "",
            )
            for o in self.with_outcome(Outcome.ASSIGNED)
        ]

    @property
    def has_failures(self) -> bool:
        return bool(self.with_outcome(Outcome.SKIPPED))

    def counts(self) -> dict[str, int]:
        return {o.value: len(self.with_outcome(o)) for o in Outcome}

    def warnings(self) -> list[str]:
        return [
            f"Warning: {w.model_id} took {self.property_name!r} from {w.evidence_id}, "
            f"whose own {self.property_name!r} is deleted by this pass; "
            "the next run will delete it again."
            for w in self.withdrawn_evidence
        ]

    def summary(self) -> str:
        counts = self.counts()
        verb = "" if self.applied else " (dry run, nothing written)"
        return (
            f"Property {self.property_name!r} at threshold {self.threshold:.4f}: "
            f"{counts['assigned']} assigned, {counts['deleted']} deleted, "
            f"{counts['unchanged']} unchanged, {counts['skipped']} skipped{verb}.\n"
            "Propagation is single-pass: values assigned now become evidence "
            "only on the next run."
        )
