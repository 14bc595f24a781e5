"""Persisted records: per-track metadata and album aggregates."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # Stored documents use camelCase keys (trackNo, albumArtist, ...). Python code uses
    # snake_case attributes - populate_by_name lets us build models either way.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class NumberOf(_CamelModel):
    """Track/disk position, e.g. track 3 of 12."""

    no: int | None = None
    of: int | None = None


class AudioMetadata(_CamelModel):
    """Tag set of one audio file. Every field is optional - partial is normal."""

    track: NumberOf = Field(default_factory=NumberOf)
    disk: NumberOf = Field(default_factory=NumberOf)
    title: str | None = None
    album: str | None = None
    year: int | None = None
    date: str | None = None
    artist: str | None = None
    artists: list[str] = Field(default_factory=list)
    album_artist: str | None = None
    genre: list[str] = Field(default_factory=list)
    composer: list[str] = Field(default_factory=list)
    comment: list[str] = Field(default_factory=list)
    duration: float | None = None
    bitrate: int | None = None
    sample_rate: int | None = None
    encoder_settings: str | None = None
    replay_gain_track_gain: float | None = None
    replay_gain_track_peak: float | None = None
    replay_gain_album_gain: float | None = None
    replay_gain_album_peak: float | None = None
    dynamic_range: str | None = None
    dynamic_range_album: str | None = None

    def to_album_metadata(self) -> "AlbumMetadata":
        """Album aggregate projection of this track's tags."""
        return AlbumMetadata(
            year=self.year,
            album=self.album,
            artists=list(self.artists),
            artist=self.artist,
            album_artist=self.album_artist,
            genre=list(self.genre),
            dynamic_range_album=self.dynamic_range_album,
        )


class AlbumMetadata(_CamelModel):
    year: int | None = None
    album: str | None = None
    artists: list[str] = Field(default_factory=list)
    artist: str | None = None
    album_artist: str | None = None
    genre: list[str] = Field(default_factory=list)
    dynamic_range_album: str | None = None


@dataclass
class AudioRecord:
    """Persisted per-track document. modified_at is the file mtime when last extracted."""

    path_id: str
    modified_at: datetime
    filename: str
    metadata: AudioMetadata


@dataclass
class AlbumRecord:
    """Persisted album aggregate. modified_at is the newest member's modified_at."""

    path_id: str
    modified_at: datetime
    filename: str
    metadata: AlbumMetadata
