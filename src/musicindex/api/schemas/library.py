"""Response models for the library endpoints.

Hey future me - every model here reads straight off the view dataclasses
(``from_attributes=True``) and serializes with camelCase keys, the same key style the
stored metadata documents use. Routes return the view objects and FastAPI validates
them through ``response_model``; no hand-written dict building.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from musicindex.domain.entities import AlbumMetadata, AudioMetadata


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FileRefResponse(_ApiModel):
    id: str
    name: str
    url: str
    file_url: str


class TrackResponse(_ApiModel):
    id: str
    name: str = Field(description="Title tag, or the file name when untagged")
    filename: str
    track: str | None = Field(
        default=None, description='Ordering key such as "07" or "2.07"'
    )
    url: str
    file_url: str
    metadata: AudioMetadata | None = None


class AlbumResponse(_ApiModel):
    id: str
    name: str
    url: str
    artist_name: str
    artist_url: str
    cover_url: str | None = None
    year: int | None = None
    files: list[TrackResponse] = Field(default_factory=list)
    images: list[FileRefResponse] = Field(default_factory=list)
    metadata: AlbumMetadata | None = None


class ArtistListItem(_ApiModel):
    id: str
    name: str
    url: str


class ArtistResponse(_ApiModel):
    id: str
    name: str
    url: str
    albums: list[AlbumResponse] = Field(default_factory=list)
    files: list[TrackResponse] = Field(default_factory=list)
    images: list[FileRefResponse] = Field(default_factory=list)


class AudioResponse(_ApiModel):
    id: str
    name: str
    filename: str
    track: str | None = None
    url: str
    file_url: str
    artist_name: str
    artist_url: str
    album_id: str | None = None
    album_name: str | None = None
    album_url: str | None = None
    cover_url: str | None = None
    metadata: AudioMetadata | None = None


class ImageResponse(_ApiModel):
    id: str
    name: str
    url: str
    file_url: str
    artist_id: str
    artist_name: str
    album_id: str | None = None
    album_name: str | None = None


class FindResponse(_ApiModel):
    artists: list[ArtistResponse] = Field(default_factory=list)
    albums: list[AlbumResponse] = Field(default_factory=list)
    audios: list[AudioResponse] = Field(default_factory=list)


class ScanResponse(_ApiModel):
    status: str = Field(description="accepted, rejected or disabled")
    last_report: dict[str, Any] | None = None


class HealthResponse(_ApiModel):
    status: str
    version: str
    scanning: bool
    artists: int
    albums: int
    audio: int
    last_report: dict[str, Any] | None = None
    checks: dict[str, Any] = Field(default_factory=dict)
