"""Domain types returned by :class:`~modelmatch.api.client.ApiClient`.

These are plain Python objects, not wire schemas.  The client converts the
pydantic payloads in :mod:`modelmatch.api.schemas` into these types, and the
rest of the package only ever sees these.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional


def normalize_property_name(name: str) -> str:
    """Return the comparison key for a metadata property name.

    Property names are case-insensitive on the remote side.  This is the one
    place that rule lives; callers keep the original spelling for display.
    """
    return name.strip().casefold()


# ---------------------------------------------------------------------------
# Models and folders
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelRef:
    """Identifies one model in the tenant.

    A ref built from only an identifier (``ModelRef.stub(...)``) has no name
    and no folder; it stands for a model whose lookup failed.
    """

    id: str
    name: str = ""
    folder_id: Optional[int] = None
    is_assembly: bool = False

    @classmethod
    def stub(cls, model_id: str) -> ModelRef:
        return cls(id=model_id)

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Folder:
    id: int
    name: str


@dataclass(frozen=True)
class MatchCandidate:
    """One result of a part-to-part match query.

    ``score`` is the forward score (queried model against ``model``);
    ``reverse_score`` is only present when the backend reports it.
    Both are in ``[0, 1]``.
    """

    model: ModelRef
    score: float
    reverse_score: Optional[float] = None


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetadataItem:
    key_id: int
    name: str
    value: str


@dataclass
class ModelMetadata:
    """A model's property bag, keyed case-insensitively by property name."""

    items: dict[str, MetadataItem] = field(default_factory=dict)

    @classmethod
    def from_items(cls, items: list[MetadataItem]) -> ModelMetadata:
        return cls(items={normalize_property_name(i.name): i for i in items})

    def get(self, name: str) -> Optional[MetadataItem]:
        return self.items.get(normalize_property_name(name))

    def value(self, name: str) -> Optional[str]:
        """Return the non-empty value of *name*, or ``None``."""
        item = self.get(name)
        if item is None or not item.value:
            return None
        return item.value

    def as_dict(self) -> dict[str, str]:
        return {item.name: item.value for item in self.items.values()}

    def __iter__(self) -> Iterator[MetadataItem]:
        return iter(self.items.values())

    def __len__(self) -> int:
        return len(self.items)


# ---------------------------------------------------------------------------
# Score conversion (wire scores are percentages)
# ---------------------------------------------------------------------------

def score_from_percentage(percentage: float) -> float:
    return round(percentage / 100.0, 10)


def percentage_from_score(score: float) -> float:
    return round(score * 100.0, 6)
