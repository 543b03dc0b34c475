"""HTTP adapter for the remote model store.

``ApiClient`` is a thin, typed wrapper around the endpoints the match report
and the label propagation need.  It shapes requests and responses and maps
transport failures onto :mod:`modelmatch.errors`; it holds no business logic.

One ``httpx.Client`` is shared by all calls.  It is safe to use the same
``ApiClient`` from several worker threads.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from modelmatch.api.models import (
    Folder,
    MatchCandidate,
    MetadataItem,
    ModelMetadata,
    ModelRef,
    normalize_property_name,
    percentage_from_score,
    score_from_percentage,
)
from modelmatch.api.schemas import (
    AssemblyTreeResponse,
    FolderListResponse,
    MatchPageResponse,
    MetadataKeyListResponse,
    MetadataKeyResponse,
    ModelListResponse,
    ModelMetadataResponse,
    SingleModelResponse,
    WireModel,
)
from modelmatch.config import settings
from modelmatch.errors import (
    ClientError,
    FolderNotFoundError,
    ForbiddenError,
    NotFoundError,
    RemoteUnavailableError,
    ResponseParsingError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

__version__ = "0.1.0"

_USER_AGENT = f"modelmatch/{__version__}"

S = TypeVar("S", bound=BaseModel)


def _model_ref(wire: WireModel) -> ModelRef:
    return ModelRef(
        id=wire.id,
        name=wire.name,
        folder_id=wire.folder_id,
        is_assembly=wire.is_assembly,
    )


def _parse(schema: type[S], data: Any) -> S:
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ResponseParsingError(f"Unexpected {schema.__name__} payload: {exc}") from exc


def _model_path(model_id: str, suffix: str = "") -> str:
    return f"/v2/models/{quote(str(model_id), safe='')}{suffix}"


class ApiClient:
    """Typed access to the tenant's models, matches, folders and metadata."""

    def __init__(
        self,
        base_url: str,
        tenant: str,
        access_token: str,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.tenant = tenant
        self.page_size = page_size or settings.page_size
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {access_token}",
                "X-PHYSNA-TENANTID": tenant,
                "User-Agent": _USER_AGENT,
                "Accept": "application/json",
            },
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
        )
        self._key_lock = threading.Lock()
        self._metadata_keys: Optional[dict[str, int]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: Any = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body (``None`` if empty).

        Raises:
            NotFoundError, UnauthorizedError, ForbiddenError: on 404/401/403.
            RemoteUnavailableError: on timeouts, connection errors and any
                other non-success status.
            ResponseParsingError: if the body is not valid JSON.
        """
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            raise RemoteUnavailableError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{method} {path} failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, response.request.url, response.status_code)

        status = response.status_code
        if status == 404:
            raise NotFoundError(f"{method} {path}: not found")
        if status == 401:
            raise UnauthorizedError("Access token is missing, expired or invalid")
        if status == 403:
            raise ForbiddenError(f"{method} {path}: forbidden for tenant {self.tenant!r}")
        if not response.is_success:
            raise RemoteUnavailableError(f"{method} {path}: HTTP {status}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseParsingError(f"{method} {path}: invalid JSON body") from exc

    # ------------------------------------------------------------------
    # Models and assemblies
    # ------------------------------------------------------------------
    def get_model(self, model_id: str) -> ModelRef:
        """Look up a single model.  Raises :class:`NotFoundError` if it is gone."""
        data = self._request("GET", _model_path(model_id))
        return _model_ref(_parse(SingleModelResponse, data).model)

    def get_assembly_tree(self, model_id: str) -> dict[str, list[ModelRef]]:
        """Fetch the nested assembly tree of *model_id* in one request.

        Returns ``{model id: identifier-only child refs}`` for the requested
        model and for every nested node whose ``children`` the backend
        included.  Nodes sent without a ``children`` key are absent from the
        mapping; their structure is unknown, not empty.  The children are not
        looked up; a child may well be a dangling reference that only fails
        when the caller resolves it.
        """
        data = self._request("GET", _model_path(model_id, "/assembly-tree"))
        tree = _parse(AssemblyTreeResponse, data)

        children = tree.children or []
        structure = {model_id: [ModelRef.stub(c.model_id) for c in children]}
        stack = list(reversed(children))
        while stack:
            node = stack.pop()
            # First occurrence wins for a component used in several places.
            if node.children is None or node.model_id in structure:
                continue
            structure[node.model_id] = [ModelRef.stub(c.model_id) for c in node.children]
            stack.extend(reversed(node.children))
        return structure

    def list_models(
        self,
        folder_ids: Optional[Iterable[int]] = None,
        search: Optional[str] = None,
    ) -> list[ModelRef]:
        """List models, optionally restricted to folders and a search term.

        ``folder_ids=None`` means every folder in the tenant.
        """
        params: list[tuple[str, Any]] = [
            ("folderIds", folder_id) for folder_id in sorted(folder_ids or [])
        ]
        if search:
            params.append(("search", search))

        models: list[ModelRef] = []
        page = 1
        while True:
            data = self._request(
                "GET",
                "/v2/models",
                params=params + [("perPage", self.page_size), ("page", page)],
            )
            result = _parse(ModelListResponse, data)
            models.extend(_model_ref(m) for m in result.models)
            if not result.page_data.has_more:
                break
            page = result.page_data.current_page + 1
        return models

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def match_model(self, model_id: str, threshold: float) -> list[MatchCandidate]:
        """Run a part-to-part match query for *model_id* across the tenant.

        Args:
            model_id: The query model.
            threshold: Minimum score in ``[0, 1]``.  The backend filters too,
                but callers must not rely on it.

        Returns:
            Every candidate on every result page, in backend order.
        """
        candidates: list[MatchCandidate] = []
        page = 1
        while True:
            data = self._request(
                "GET",
                _model_path(model_id, "/part-to-part-matches"),
                params={
                    "threshold": percentage_from_score(threshold),
                    "perPage": self.page_size,
                    "page": page,
                },
            )
            result = _parse(MatchPageResponse, data)
            for m in result.matches:
                reverse = m.reverse_match_percentage
                candidates.append(
                    MatchCandidate(
                        model=_model_ref(m.matched_model),
                        score=score_from_percentage(m.match_percentage),
                        reverse_score=(
                            score_from_percentage(reverse) if reverse is not None else None
                        ),
                    )
                )
            if not result.page_data.has_more:
                break
            page = result.page_data.current_page + 1
        return candidates

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------
    def list_folders(self) -> list[Folder]:
        data = self._request("GET", "/v2/folders")
        return [Folder(id=f.id, name=f.name) for f in _parse(FolderListResponse, data).folders]

    def resolve_folder_ids(self, names: Iterable[str]) -> set[int]:
        """Map folder names to ids, failing if any name does not exist."""
        wanted = set(names)
        by_name = {f.name: f.id for f in self.list_folders()}
        missing = [n for n in wanted if n not in by_name]
        if missing:
            raise FolderNotFoundError(missing)
        return {by_name[n] for n in wanted}

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    def get_model_metadata(self, model_id: str) -> ModelMetadata:
        data = self._request(
            "GET",
            _model_path(model_id, "/metadata"),
            params={"perPage": 10000, "page": 1},
        )
        if data is None:
            return ModelMetadata()
        items = [
            MetadataItem(key_id=i.key_id, name=i.name or "", value=i.value)
            for i in _parse(ModelMetadataResponse, data).metadata
            if i.name
        ]
        return ModelMetadata.from_items(items)

    def _metadata_key_id(self, name: str, create: bool) -> Optional[int]:
        """Resolve a property name to its metadata key id (case-insensitive).

        The key list is fetched once per client.  With ``create=True`` a
        missing key is registered; the lock keeps concurrent writers from
        registering the same name twice.
        """
        key = normalize_property_name(name)
        with self._key_lock:
            if self._metadata_keys is None:
                data = self._request("GET", "/v2/metadata-keys")
                self._metadata_keys = {
                    normalize_property_name(k.name): k.id
                    for k in _parse(MetadataKeyListResponse, data).metadata_keys
                    if k.name
                }
            key_id = self._metadata_keys.get(key)
            if key_id is None and create:
                data = self._request(
                    "POST", "/v2/metadata-keys", json={"metadataKeyName": name.strip()}
                )
                key_id = _parse(MetadataKeyResponse, data).metadata_key.id
                self._metadata_keys[key] = key_id
                logger.debug("Registered metadata key %r as %s", name, key_id)
            return key_id

    def set_model_property(self, model_id: str, name: str, value: str) -> None:
        """Create or overwrite property *name* on a model."""
        key_id = self._metadata_key_id(name, create=True)
        self._request(
            "PUT",
            _model_path(model_id, f"/metadata/{key_id}"),
            json={"value": value},
        )

    def delete_model_property(self, model_id: str, name: str) -> None:
        """Remove property *name* from a model.  Absent properties are a no-op.

        The backend answers 404 both for a property the model does not carry
        and for a model that no longer exists.  The model is looked up to
        tell the two apart.

        Raises:
            NotFoundError: If the model itself is gone.
        """
        key_id = self._metadata_key_id(name, create=False)
        if key_id is None:
            return
        try:
            self._request("DELETE", _model_path(model_id, f"/metadata/{key_id}"))
        except NotFoundError:
            self.get_model(model_id)
            logger.debug("Model %s does not carry %r; nothing to delete", model_id, name)


def create_client(access_token: str, tenant: Optional[str] = None) -> ApiClient:
    """Build an :class:`ApiClient` from ``settings``."""
    tenant = tenant or settings.tenant
    if not tenant:
        raise ClientError("No tenant configured (set MODELMATCH_TENANT or pass --tenant)")
    return ApiClient(
        base_url=settings.base_url,
        tenant=tenant,
        access_token=access_token,
    )
