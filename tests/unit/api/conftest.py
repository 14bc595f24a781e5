"""API fixtures: a small on-disk library wired into a bare FastAPI app."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from musicindex.api.exception_handlers import register_exception_handlers
from musicindex.api.routers import health, library, media
from musicindex.application.services.collection_builder import build_collection
from musicindex.application.services.library_index_service import LibraryIndex
from musicindex.application.services.library_synchronizer import LibrarySynchronizer
from musicindex.application.services.library_view_service import LibraryViewService
from musicindex.domain.ports import IMetadataExtractor, IMetadataStore
from musicindex.infrastructure.filesystem.traversal import list_files

AUDIO_BYTES = bytes(range(256)) * 4
IMAGE_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 56

LIBRARY = {
    "Valta/Valta/01 - Intro.mp3": AUDIO_BYTES,
    "Valta/Valta/02 - Second.mp3": AUDIO_BYTES,
    "Valta/Valta/cover.png": IMAGE_BYTES,
    "Valta/bonus.ogg": AUDIO_BYTES,
    "Other/First/track.flac": AUDIO_BYTES,
    "Other/First/readme.txt": b"not served",
}


def build_app(index: LibraryIndex | None = None, view: LibraryViewService | None = None) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(library.router)
    app.include_router(media.router)
    if index is not None:
        app.state.index = index
    if view is not None:
        app.state.view = view
    return app


@pytest.fixture
def library_root(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    for relative, content in LIBRARY.items():
        target = root.joinpath(*relative.split("/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    # Lives next to the library, must never be reachable through /file
    (tmp_path / "secret.mp3").write_bytes(b"secret")
    return root


@pytest.fixture
def index(
    library_root: Path, store: IMetadataStore, extractor: IMetadataExtractor
) -> LibraryIndex:
    root = str(library_root)
    index = LibraryIndex(root, LibrarySynchronizer(store, extractor, root))
    index.collection = build_collection(list_files(root), root)
    return index


@pytest.fixture
def client(index: LibraryIndex, store: IMetadataStore) -> Iterator[TestClient]:
    app = build_app(index, LibraryViewService(index, store))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_app() -> Callable[..., FastAPI]:
    return build_app
