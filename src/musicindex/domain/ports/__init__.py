"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from typing import Any

from musicindex.domain.entities import (
    AlbumRecord,
    AudioMetadata,
    AudioRecord,
    WatchEvent,
)


class IMetadataExtractor(ABC):
    """Reads tags from an audio file."""

    # Hey future me - implementations MUST NOT raise for corrupt/unreadable files. Return
    # partial or empty AudioMetadata instead, the synchronizer still creates the record so
    # the track shows up by filename.
    @abstractmethod
    async def extract(self, absolute_path: str) -> AudioMetadata:
        """Extract tags from the file at absolute_path."""
        pass


class IAudioRepository(ABC):
    """Keyed store of per-track records."""

    @abstractmethod
    async def find_one(self, path_id: str) -> AudioRecord | None:
        pass

    @abstractmethod
    async def find_many(self, path_ids: Iterable[str]) -> list[AudioRecord]:
        pass

    @abstractmethod
    async def find_all(self) -> list[AudioRecord]:
        pass

    @abstractmethod
    async def find_all_ids(self) -> set[str]:
        pass

    @abstractmethod
    async def insert(self, record: AudioRecord) -> None:
        pass

    @abstractmethod
    async def update(self, path_id: str, changes: dict[str, Any]) -> None:
        """Partial update; keys are AudioRecord field names."""
        pass


class IAlbumRepository(ABC):
    """Keyed store of album aggregates."""

    @abstractmethod
    async def find_one(self, path_id: str) -> AlbumRecord | None:
        pass

    @abstractmethod
    async def find_many(self, path_ids: Iterable[str]) -> list[AlbumRecord]:
        pass

    @abstractmethod
    async def find_all(self) -> list[AlbumRecord]:
        pass

    @abstractmethod
    async def insert(self, record: AlbumRecord) -> None:
        pass

    @abstractmethod
    async def update(self, path_id: str, changes: dict[str, Any]) -> None:
        pass


class IMetadataStore(ABC):
    """Both repositories behind one handle."""

    audio: IAudioRepository
    albums: IAlbumRepository

    @abstractmethod
    async def close(self) -> None:
        pass


class IWatchSource(ABC):
    """Produces raw filesystem events for a set of roots.

    Contract: after start(), every pre-existing supported file is reported as an ADD
    event, followed by exactly one READY event; live changes follow.
    """

    @abstractmethod
    async def start(self) -> list[str]:
        """Begin watching. Returns the roots that could actually be watched."""
        pass

    @abstractmethod
    def events(self) -> AsyncIterator[WatchEvent]:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass


__all__ = [
    "IAlbumRepository",
    "IAudioRepository",
    "IMetadataExtractor",
    "IMetadataStore",
    "IWatchSource",
]
