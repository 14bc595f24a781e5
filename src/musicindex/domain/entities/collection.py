"""In-memory library graph: artists, albums, audio and images keyed by content ID."""

from dataclasses import dataclass, field
from enum import Enum


class UrlMode(str, Enum):
    """How the builder renders URLs."""

    CONTENT = "content"  # {base}/{kind}/{id}, served by the HTTP API
    FILE = "file"  # file:// URIs, for players reading the disk directly


@dataclass(frozen=True)
class FileRef:
    """A file as listed inside an artist or album."""

    id: str
    name: str
    url: str
    file_url: str


@dataclass(frozen=True)
class FirstAlbumAudio:
    id: str
    name: str


@dataclass
class AlbumSummary:
    """Album entry in an artist's album list (first-seen order)."""

    id: str
    name: str
    url: str
    cover_url: str | None = None
    first_album_audio: FirstAlbumAudio | None = None


@dataclass
class Artist:
    id: str
    name: str
    url: str
    albums: list[AlbumSummary] = field(default_factory=list)
    files: list[FileRef] = field(default_factory=list)
    images: list[FileRef] = field(default_factory=list)


@dataclass
class Album:
    id: str
    name: str
    url: str
    artist_id: str
    artist_name: str
    artist_url: str
    files: list[FileRef] = field(default_factory=list)
    images: list[FileRef] = field(default_factory=list)
    cover_url: str | None = None


# Hey future me - MediaFile is used for BOTH the audio map and the image map. album_* is
# None for loose files sitting directly in the artist folder. `path` is the library-relative
# path (same thing the id encodes) so the synchronizer doesn't have to decode ids.
@dataclass(frozen=True)
class MediaFile:
    id: str
    name: str
    path: str
    artist_id: str
    artist_name: str
    artist_url: str
    url: str
    file_url: str
    album_id: str | None = None
    album_name: str | None = None
    album_url: str | None = None

    @property
    def is_loose(self) -> bool:
        return self.album_id is None


@dataclass
class MediaCollection:
    """The four ID-keyed maps produced by build_collection()."""

    artists: dict[str, Artist] = field(default_factory=dict)
    albums: dict[str, Album] = field(default_factory=dict)
    audio: dict[str, MediaFile] = field(default_factory=dict)
    images: dict[str, MediaFile] = field(default_factory=dict)

    def without_artists(self, artist_ids: set[str]) -> "MediaCollection":
        """Copy of the maps with everything owned by these artists dropped."""
        return MediaCollection(
            artists={k: v for k, v in self.artists.items() if k not in artist_ids},
            albums={k: v for k, v in self.albums.items() if v.artist_id not in artist_ids},
            audio={k: v for k, v in self.audio.items() if v.artist_id not in artist_ids},
            images={k: v for k, v in self.images.items() if v.artist_id not in artist_ids},
        )

    def merged_with(self, other: "MediaCollection") -> "MediaCollection":
        """Copy of the maps with other's entries added (other wins on key clashes)."""
        return MediaCollection(
            artists={**self.artists, **other.artists},
            albums={**self.albums, **other.albums},
            audio={**self.audio, **other.audio},
            images={**self.images, **other.images},
        )
