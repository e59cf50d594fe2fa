"""Metadata provider adapters - abstracts over the upstream title catalogue."""

from mediashelf.adapters.metadata.base import AbstractMetadataClient
from mediashelf.adapters.metadata.factory import create_metadata_client, get_metadata_client
from mediashelf.adapters.metadata.tmdb_client import TmdbClient

__all__ = [
    "AbstractMetadataClient",
    "TmdbClient",
    "create_metadata_client",
    "get_metadata_client",
]
