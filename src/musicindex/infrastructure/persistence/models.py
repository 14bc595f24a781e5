"""SQLAlchemy ORM models for the metadata store."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Hey future me, utc_now() is the ONLY way we stamp "now" - naive datetimes compare badly
# against file mtimes (which we also convert to aware UTC).
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive even
# with DateTime(timezone=True). ALWAYS run DB values through this before comparing with an
# aware mtime, or you get "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, path_id IS the content id (base64 of the relative path) - no surrogate keys.
# The store is a keyed document store: one row per file, metadata as a JSON document with
# camelCase keys exactly as AudioMetadata.to_document() writes them. Rows are never deleted
# by the scanner, a vanished file just stops being referenced by the in-memory index.
class AudioModel(Base):
    """Per-track metadata document."""

    __tablename__ = "library_audio"

    path_id: Mapped[str] = mapped_column(String(2048), primary_key=True)
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    filename: Mapped[str] = mapped_column(String(1024), nullable=False)
    metadata_doc: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )


class AlbumModel(Base):
    """Album aggregate document, projected from one member track."""

    __tablename__ = "library_albums"

    path_id: Mapped[str] = mapped_column(String(2048), primary_key=True)
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    filename: Mapped[str] = mapped_column(String(1024), nullable=False)
    metadata_doc: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
