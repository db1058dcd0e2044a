"""Persistence layer: database, ORM models, repository and metadata store."""

from .database import Database
from .metadata_store import MetadataStore
from .repositories import SongRepository

__all__ = ["Database", "MetadataStore", "SongRepository"]
