"""Shared fixtures: on-disk library trees and an in-memory metadata store."""

import os
from collections.abc import Callable, Iterable
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest

from musicindex.domain.entities import AudioMetadata
from musicindex.domain.exceptions import ExtractionError, StoreError
from musicindex.domain.ports import (
    IAlbumRepository,
    IAudioRepository,
    IMetadataExtractor,
    IMetadataStore,
)


class InMemoryRepository:
    """Dict-backed repository mirroring the SQL repositories' contract."""

    def __init__(self) -> None:
        self.records: dict[str, Any] = {}
        self.inserts: list[str] = []
        self.updates: list[str] = []
        self.fail_on: set[str] = set()

    def _check(self, path_id: str) -> None:
        if path_id in self.fail_on:
            raise StoreError("write", path_id, "simulated failure")

    async def find_one(self, path_id: str) -> Any:
        return self.records.get(path_id)

    async def find_many(self, path_ids: Iterable[str]) -> list[Any]:
        ids = list(dict.fromkeys(path_ids))
        return [self.records[i] for i in ids if i in self.records]

    async def find_all(self) -> list[Any]:
        return [self.records[k] for k in sorted(self.records)]

    async def insert(self, record: Any) -> None:
        self._check(record.path_id)
        self.records[record.path_id] = record
        self.inserts.append(record.path_id)

    async def update(self, path_id: str, changes: dict[str, Any]) -> None:
        self._check(path_id)
        if path_id not in self.records:
            raise StoreError("update", path_id, "record does not exist")
        self.records[path_id] = replace(self.records[path_id], **changes)
        self.updates.append(path_id)

    @property
    def writes(self) -> int:
        return len(self.inserts) + len(self.updates)


class InMemoryAudioRepository(InMemoryRepository, IAudioRepository):
    async def find_all_ids(self) -> set[str]:
        return set(self.records)


class InMemoryAlbumRepository(InMemoryRepository, IAlbumRepository):
    pass


class InMemoryMetadataStore(IMetadataStore):
    def __init__(self) -> None:
        self.audio = InMemoryAudioRepository()
        self.albums = InMemoryAlbumRepository()

    async def close(self) -> None:
        return None

    @property
    def writes(self) -> int:
        return self.audio.writes + self.albums.writes


class FakeExtractor(IMetadataExtractor):
    """Returns canned metadata keyed by file name; records every call."""

    def __init__(self, by_name: dict[str, AudioMetadata] | None = None) -> None:
        self.by_name = by_name or {}
        self.calls: list[str] = []
        self.raise_for: set[str] = set()

    async def extract(self, absolute_path: str) -> AudioMetadata:
        self.calls.append(absolute_path)
        name = os.path.basename(absolute_path)
        if name in self.raise_for:
            raise ExtractionError(absolute_path, "simulated crash")
        return self.by_name.get(name, AudioMetadata(title=os.path.splitext(name)[0]))


@pytest.fixture
def store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def make_library(tmp_path: Path) -> Callable[[Iterable[str]], Path]:
    """Create files (relative paths, "/" separated) under tmp_path/library."""
    root = tmp_path / "library"
    root.mkdir()

    def _make(paths: Iterable[str]) -> Path:
        for relative in paths:
            target = root.joinpath(*relative.split("/"))
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"\x00" * 16)
        return root

    return _make
