"""In-memory assembly tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from modelmatch.api.models import ModelRef


@dataclass
class AssemblyNode:
    """A model plus its ordered immediate sub-components.

    ``resolved=False`` marks a *stub*: a child reference whose lookup failed.
    A stub carries only the identifier and never has children.  ``warning``
    is set on any node whose data is incomplete (stub, or children that
    could not be listed).
    """

    ref: ModelRef
    children: list[AssemblyNode] = field(default_factory=list)
    resolved: bool = True
    warning: Optional[str] = None

    @property
    def id(self) -> str:
        return self.ref.id

    def walk(self) -> Iterator[AssemblyNode]:
        """Pre-order traversal (node first, then children in order)."""
        for _, node in self.walk_with_parent():
            yield node

    def walk_with_parent(self) -> Iterator[tuple[Optional[AssemblyNode], AssemblyNode]]:
        stack: list[tuple[Optional[AssemblyNode], AssemblyNode]] = [(None, self)]
        while stack:
            parent, node = stack.pop()
            yield parent, node
            for child in reversed(node.children):
                stack.append((node, child))

    def stubs(self) -> list[AssemblyNode]:
        return [n for n in self.walk() if not n.resolved]


@dataclass(frozen=True)
class LookupWarning:
    """A recovered lookup failure below the root of an assembly."""

    model_id: str
    parent_id: Optional[str]
    reason: str


def collect_warnings(root: AssemblyNode) -> list[LookupWarning]:
    """Return one warning per incomplete node, in traversal order."""
    return [
        LookupWarning(
            model_id=node.id,
            parent_id=parent.id if parent else None,
            reason=node.warning,
        )
        for parent, node in root.walk_with_parent()
        if node.warning
    ]
