"""Resolve an assembly's component tree from the remote model store.

The backend can return child references that no longer resolve (a component
deleted after the assembly was processed).  Those become stub nodes instead
of failing the whole walk.  Only the root must resolve.

The walk is an explicit stack, not recursion.  Each stack entry carries the
identifiers of its ancestors so a child that points back up its own path is
reported as a cycle.  A component reused in two places of the assembly is
not a cycle and is expanded at both places.

One tree request normally covers the whole assembly: the backend nests every
subassembly's children in the root's response.  A node is requested on its
own only when its structure is missing from every response so far, and only
if it is the root or flagged as an assembly.  Parts are never requested.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

from modelmatch.api.models import ModelRef
from modelmatch.assembly.models import AssemblyNode
from modelmatch.config import settings
from modelmatch.errors import ClientError, ResolutionError, StructureError

if TYPE_CHECKING:
    from modelmatch.api.client import ApiClient

logger = logging.getLogger(__name__)


class AssemblyResolver:
    """Depth-first resolver producing :class:`AssemblyNode` trees."""

    def __init__(self, client: ApiClient, max_depth: Optional[int] = None) -> None:
        self._client = client
        self._max_depth = max_depth if max_depth is not None else settings.max_assembly_depth

    def resolve(self, root: Union[ModelRef, str]) -> AssemblyNode:
        """Resolve the full tree below *root*.

        Lookups and child listings are memoised for the duration of this
        call only.

        Raises:
            ResolutionError: If the root, or the root's children, cannot be
                fetched (including timeouts).
            StructureError: If a cycle is found or the tree is deeper than
                the configured maximum depth.
        """
        root_id = root.id if isinstance(root, ModelRef) else str(root)
        refs: dict[str, Union[ModelRef, ClientError]] = {}
        children_of: dict[str, Union[list[ModelRef], ClientError]] = {}

        root_ref = self._lookup(root_id, refs)
        if isinstance(root_ref, ClientError):
            raise ResolutionError(root_id, str(root_ref))

        root_node = AssemblyNode(ref=root_ref)
        stack: list[tuple[AssemblyNode, tuple[str, ...]]] = [(root_node, ())]

        while stack:
            node, ancestors = stack.pop()
            path = ancestors + (node.id,)

            child_refs = self._children(node, children_of, is_root=not ancestors)
            if isinstance(child_refs, ClientError):
                if not ancestors:
                    raise ResolutionError(root_id, str(child_refs))
                logger.warning(
                    "Could not list components of %s (%s); keeping it without children",
                    node.id,
                    child_refs,
                )
                node.warning = f"components unavailable: {child_refs}"
                continue

            if child_refs and len(path) > self._max_depth:
                raise StructureError(
                    f"Assembly {root_id} is deeper than the maximum depth of "
                    f"{self._max_depth} (at {node.id})"
                )

            for child_ref in child_refs:
                if child_ref.id in path:
                    cycle = " -> ".join(path[path.index(child_ref.id):] + (child_ref.id,))
                    raise StructureError(f"Cycle in assembly {root_id}: {cycle}")
                node.children.append(self._child_node(child_ref.id, node.id, refs))

            for child in reversed(node.children):
                if child.resolved:
                    stack.append((child, path))

        return root_node

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _lookup(
        self,
        model_id: str,
        refs: dict[str, Union[ModelRef, ClientError]],
    ) -> Union[ModelRef, ClientError]:
        if model_id not in refs:
            try:
                refs[model_id] = self._client.get_model(model_id)
            except ClientError as exc:
                refs[model_id] = exc
        return refs[model_id]

    def _children(
        self,
        node: AssemblyNode,
        children_of: dict[str, Union[list[ModelRef], ClientError]],
        is_root: bool,
    ) -> Union[list[ModelRef], ClientError]:
        if node.id not in children_of:
            if not is_root and not node.ref.is_assembly:
                return []
            try:
                tree = self._client.get_assembly_tree(node.id)
            except ClientError as exc:
                children_of[node.id] = exc
            else:
                for model_id, refs in tree.items():
                    children_of.setdefault(model_id, refs)
        return children_of[node.id]

    def _child_node(
        self,
        model_id: str,
        parent_id: str,
        refs: dict[str, Union[ModelRef, ClientError]],
    ) -> AssemblyNode:
        ref = self._lookup(model_id, refs)
        if isinstance(ref, ClientError):
            logger.warning(
                "Component %s of %s could not be resolved (%s); using a stub",
                model_id,
                parent_id,
                ref,
            )
            return AssemblyNode(
                ref=ModelRef.stub(model_id),
                resolved=False,
                warning=f"unresolved: {ref}",
            )
        return AssemblyNode(ref=ref)
