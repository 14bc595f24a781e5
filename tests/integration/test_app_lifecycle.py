"""End-to-end tests: real lifespan, SQLite store, mutagen extractor and watchdog."""

import logging
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from musicindex.config import Settings
from musicindex.domain.exceptions import ConfigurationError
from musicindex.main import create_app


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _settings(tmp_path: Path, watch: bool) -> Settings:
    return Settings(
        library={"path": tmp_path / "library"},
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'index.db'}"},
        scanner={"max_workers": 1},
        watcher={"enabled": watch, "debounce_ms": 100},
    )


def _write(root: Path, relative: str) -> None:
    target = root.joinpath(*relative.split("/"))
    target.parent.mkdir(parents=True, exist_ok=True)
    # Not real audio: extraction fails and empty metadata is stored
    target.write_bytes(b"\x00" * 32)


def _wait_for(client: TestClient, check: Callable[[dict[str, Any]], bool]) -> dict[str, Any]:
    deadline = time.monotonic() + 10
    while True:
        body = client.get("/health").json()
        if check(body) or time.monotonic() > deadline:
            return body
        time.sleep(0.05)


# Hey future me - with watching off the lifespan kicks off one background refresh. The
# API is up before it finishes, so poll /health until the index has filled in.
def test_startup_indexes_library_without_watcher(tmp_path: Path) -> None:
    library = tmp_path / "library"
    _write(library, "Valta/Valta/01 - Intro.mp3")
    _write(library, "Valta/Valta/cover.jpg")

    with TestClient(create_app(_settings(tmp_path, watch=False))) as client:
        body = _wait_for(client, lambda b: b["lastReport"] is not None)

        assert body["status"] == "healthy"
        assert body["artists"] == 1
        assert body["audio"] == 1
        assert body["lastReport"]["inserted"] == 1
        assert body["checks"]["watcher"] == "disabled"
        assert set(body["checks"]["database"]) == {"attempts", "retries", "failures"}

        artists = client.get("/artists").json()
        assert [a["name"] for a in artists] == ["Valta"]


# Hey future me - the watcher starts with an empty baseline, so its READY update asks
# for a full rescan. A folder created afterwards shows up through a debounced rescan.
def test_watcher_picks_up_new_artist(tmp_path: Path) -> None:
    library = tmp_path / "library"
    _write(library, "Valta/Valta/01 - Intro.mp3")

    with TestClient(create_app(_settings(tmp_path, watch=True))) as client:
        body = _wait_for(client, lambda b: b["artists"] == 1)
        assert body["checks"]["watcher"] == "steady"

        _write(library, "Other/First/01.flac")
        body = _wait_for(client, lambda b: b["artists"] == 2)

        assert body["artists"] == 2
        assert body["audio"] == 2


def test_missing_library_root_fails_startup(tmp_path: Path) -> None:
    app = create_app(_settings(tmp_path, watch=False))

    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass
