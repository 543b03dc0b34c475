"""Pydantic schemas for the remote API's JSON payloads.

These mirror the wire format (camelCase keys) and are converted to the
domain types in :mod:`modelmatch.api.models` by the client.  Unknown keys are
ignored so additive API changes do not break parsing.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------

class PageData(_WireModel):
    total: int = 0
    per_page: int = Field(default=0, alias="perPage")
    current_page: int = Field(default=1, alias="currentPage")
    last_page: int = Field(default=1, alias="lastPage")

    @property
    def has_more(self) -> bool:
        return self.current_page < self.last_page


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class WireModel(_WireModel):
    id: str
    name: str = ""
    folder_id: Optional[int] = Field(default=None, alias="folderId")
    is_assembly: bool = Field(default=False, alias="isAssembly")


class SingleModelResponse(_WireModel):
    model: WireModel


class ModelListResponse(_WireModel):
    models: list[WireModel] = Field(default_factory=list)
    page_data: PageData = Field(default_factory=PageData, alias="pageData")


class AssemblyTreeResponse(_WireModel):
    model_id: str = Field(alias="modelId")
    type: Optional[str] = None
    children: Optional[list[AssemblyTreeResponse]] = None


AssemblyTreeResponse.model_rebuild()


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

class PartToPartMatch(_WireModel):
    matched_model: WireModel = Field(alias="matchedModel")
    match_percentage: float = Field(alias="matchPercentage")
    reverse_match_percentage: Optional[float] = Field(
        default=None, alias="reverseMatchPercentage"
    )


class MatchPageResponse(_WireModel):
    matches: list[PartToPartMatch] = Field(default_factory=list)
    page_data: PageData = Field(default_factory=PageData, alias="pageData")


# ---------------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------------

class WireFolder(_WireModel):
    id: int
    name: str


class FolderListResponse(_WireModel):
    folders: list[WireFolder] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class WireMetadataItem(_WireModel):
    key_id: int = Field(alias="metadataKeyId")
    name: Optional[str] = None
    value: str = ""


class ModelMetadataResponse(_WireModel):
    metadata: list[WireMetadataItem] = Field(default_factory=list)


class WireMetadataKey(_WireModel):
    id: int
    name: Optional[str] = None


class MetadataKeyListResponse(_WireModel):
    metadata_keys: list[WireMetadataKey] = Field(default_factory=list, alias="metadataKeys")


class MetadataKeyResponse(_WireModel):
    metadata_key: WireMetadataKey = Field(alias="metadataKey")


class TokenResponse(_WireModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    scope: str = ""
