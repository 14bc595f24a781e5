"""Persistence layer: database, ORM models and repositories."""

from musicindex.infrastructure.persistence.database import Database
from musicindex.infrastructure.persistence.repositories import (
    AlbumRepository,
    AudioRepository,
    SqlMetadataStore,
)

__all__ = ["AlbumRepository", "AudioRepository", "Database", "SqlMetadataStore"]
