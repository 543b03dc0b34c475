"""Label propagation package."""

from modelmatch.labels.models import (
    LabelAssignment,
    MutationFailure,
    Outcome,
    PropagationOutcome,
    PropagationReport,
    WithdrawnEvidence,
)
from modelmatch.labels.propagation import LabelPropagator, decide, rank_candidates

__all__ = [
    "LabelAssignment",
    "LabelPropagator",
    "MutationFailure",
    "Outcome",
    "PropagationOutcome",
    "PropagationReport",
    "WithdrawnEvidence",
    "decide",
    "rank_candidates",
]
