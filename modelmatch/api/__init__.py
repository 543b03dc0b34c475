"""Remote API adapter: typed access to models, matches, folders and metadata."""

from modelmatch.api.client import ApiClient, create_client
from modelmatch.api.models import (
    Folder,
    MatchCandidate,
    MetadataItem,
    ModelMetadata,
    ModelRef,
    normalize_property_name,
)

__all__ = [
    "ApiClient",
    "create_client",
    "Folder",
    "MatchCandidate",
    "MetadataItem",
    "ModelMetadata",
    "ModelRef",
    "normalize_property_name",
]
