"""Shared fixtures: an in-memory stand-in for the remote model store.

``FakeModelStore`` implements the subset of :class:`ApiClient` the resolver,
the graph builder and the label propagator call.  Failures can be injected
per operation and model id, match queries can be delayed to shuffle their
completion order, and child references can point at models that do not
exist (dangling references).  A model listed in ``truncated`` comes back
without its children inside an enclosing tree, so the resolver has to ask
for it separately.
"""

from __future__ import annotations

import threading
import time
from typing import Iterable, Optional

import pytest

from modelmatch.api.models import (
    Folder,
    MatchCandidate,
    MetadataItem,
    ModelMetadata,
    ModelRef,
    normalize_property_name,
)
from modelmatch.errors import FolderNotFoundError, NotFoundError, RemoteUnavailableError


class FakeModelStore:
    def __init__(self) -> None:
        self.models: dict[str, ModelRef] = {}
        self.children: dict[str, list[str]] = {}
        self.truncated: set[str] = set()
        self.matches: dict[str, list[MatchCandidate]] = {}
        self.metadata: dict[str, dict[str, str]] = {}
        self.folders: dict[int, str] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[str, str]] = []
        self.mutations: list[tuple[str, str, str, Optional[str]]] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------
    def add_folder(self, folder_id: int, name: str) -> None:
        self.folders[folder_id] = name

    def add_model(
        self,
        model_id: str,
        name: Optional[str] = None,
        folder_id: Optional[int] = 1,
        children: Iterable[str] = (),
        **properties: str,
    ) -> ModelRef:
        children = list(children)
        ref = ModelRef(
            id=model_id,
            name=name or model_id.upper(),
            folder_id=folder_id,
            is_assembly=bool(children),
        )
        self.models[model_id] = ref
        self.children[model_id] = children
        self.metadata[model_id] = dict(properties)
        return ref

    def add_match(
        self,
        source: str,
        target: str,
        score: float,
        reverse: Optional[float] = None,
    ) -> None:
        ref = self.models.get(target, ModelRef.stub(target))
        self.matches.setdefault(source, []).append(
            MatchCandidate(model=ref, score=score, reverse_score=reverse)
        )

    def add_symmetric_match(self, first: str, second: str, score: float) -> None:
        self.add_match(first, second, score)
        self.add_match(second, first, score)

    def fail(self, operation: str, model_id: str, error: Optional[Exception] = None) -> None:
        self.failures[(operation, model_id)] = error or RemoteUnavailableError(
            f"{operation} {model_id}: HTTP 503"
        )

    def calls_to(self, operation: str) -> list[str]:
        return [model_id for op, model_id in self.calls if op == operation]

    def _record(self, operation: str, model_id: str) -> None:
        with self._lock:
            self.calls.append((operation, model_id))
        error = self.failures.get((operation, model_id))
        if error is not None:
            raise error

    # ------------------------------------------------------------------
    # ApiClient surface
    # ------------------------------------------------------------------
    def __enter__(self) -> FakeModelStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        pass

    def close(self) -> None:
        pass

    def get_model(self, model_id: str) -> ModelRef:
        self._record("get_model", model_id)
        if model_id not in self.models:
            raise NotFoundError(f"GET /v2/models/{model_id}: not found")
        return self.models[model_id]

    def get_assembly_tree(self, model_id: str) -> dict[str, list[ModelRef]]:
        self._record("get_assembly_tree", model_id)
        structure = {model_id: [ModelRef.stub(c) for c in self.children.get(model_id, [])]}
        stack = list(reversed(self.children.get(model_id, [])))
        while stack:
            node = stack.pop()
            # Dangling and truncated nodes come back without a children list.
            if node in structure or node not in self.models or node in self.truncated:
                continue
            structure[node] = [ModelRef.stub(c) for c in self.children[node]]
            stack.extend(reversed(self.children[node]))
        return structure

    def list_models(
        self,
        folder_ids: Optional[Iterable[int]] = None,
        search: Optional[str] = None,
    ) -> list[ModelRef]:
        self._record("list_models", "")
        wanted = set(folder_ids) if folder_ids is not None else None
        return [
            ref
            for ref in self.models.values()
            if (wanted is None or ref.folder_id in wanted)
            and (not search or search.casefold() in ref.name.casefold())
        ]

    def match_model(self, model_id: str, threshold: float) -> list[MatchCandidate]:
        self._record("match_model", model_id)
        delay = self.delays.get(model_id)
        if delay:
            time.sleep(delay)
        return list(self.matches.get(model_id, []))

    def list_folders(self) -> list[Folder]:
        return [Folder(id=i, name=n) for i, n in sorted(self.folders.items())]

    def resolve_folder_ids(self, names: Iterable[str]) -> set[int]:
        by_name = {n: i for i, n in self.folders.items()}
        missing = [n for n in names if n not in by_name]
        if missing:
            raise FolderNotFoundError(missing)
        return {by_name[n] for n in names}

    def get_model_metadata(self, model_id: str) -> ModelMetadata:
        self._record("get_model_metadata", model_id)
        with self._lock:
            props = dict(self.metadata.get(model_id, {}))
        return ModelMetadata.from_items(
            [MetadataItem(key_id=i, name=k, value=v) for i, (k, v) in enumerate(props.items())]
        )

    def set_model_property(self, model_id: str, name: str, value: str) -> None:
        self._record("set_model_property", model_id)
        with self._lock:
            props = self.metadata.setdefault(model_id, {})
            for existing in [k for k in props if normalize_property_name(k) == normalize_property_name(name)]:
                del props[existing]
            props[name] = value
            self.mutations.append(("set", model_id, name, value))

    def delete_model_property(self, model_id: str, name: str) -> None:
        self._record("delete_model_property", model_id)
        with self._lock:
            props = self.metadata.setdefault(model_id, {})
            for existing in [k for k in props if normalize_property_name(k) == normalize_property_name(name)]:
                del props[existing]
            self.mutations.append(("delete", model_id, name, None))


@pytest.fixture
def store() -> FakeModelStore:
    return FakeModelStore()
