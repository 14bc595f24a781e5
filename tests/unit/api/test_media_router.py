"""Tests for GET /file/{id} byte-range streaming."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from musicindex.api.routers.media import resolve_library_file
from musicindex.domain.value_objects import encode_path_id

INTRO = encode_path_id("Valta/Valta/01 - Intro.mp3")
COVER = encode_path_id("Valta/Valta/cover.png")


@pytest.fixture
def audio_bytes(library_root: Path) -> bytes:
    return (library_root / "Valta" / "Valta" / "01 - Intro.mp3").read_bytes()


class TestRanges:
    def test_explicit_range(self, client: TestClient, audio_bytes: bytes) -> None:
        response = client.get(f"/file/{INTRO}", headers={"Range": "bytes=100-199"})

        assert response.status_code == 206
        assert response.content == audio_bytes[100:200]
        assert response.headers["content-range"] == "bytes 100-199/1024"
        assert response.headers["content-length"] == "100"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.headers["content-type"] == "audio/mpeg"

    def test_open_ended_range(self, client: TestClient, audio_bytes: bytes) -> None:
        response = client.get(f"/file/{INTRO}", headers={"Range": "bytes=1000-"})

        assert response.status_code == 206
        assert response.content == audio_bytes[1000:]
        assert response.headers["content-range"] == "bytes 1000-1023/1024"

    def test_suffix_range(self, client: TestClient, audio_bytes: bytes) -> None:
        response = client.get(f"/file/{INTRO}", headers={"Range": "bytes=-24"})

        assert response.status_code == 206
        assert response.content == audio_bytes[-24:]

    def test_only_first_of_multiple_ranges(self, client: TestClient, audio_bytes: bytes) -> None:
        response = client.get(f"/file/{INTRO}", headers={"Range": "bytes=0-9,500-599"})

        assert response.status_code == 206
        assert response.content == audio_bytes[:10]

    def test_end_clamped_to_size(self, client: TestClient) -> None:
        response = client.get(f"/file/{INTRO}", headers={"Range": "bytes=1020-5000"})

        assert response.status_code == 206
        assert response.headers["content-range"] == "bytes 1020-1023/1024"

    def test_unsatisfiable_range(self, client: TestClient) -> None:
        response = client.get(f"/file/{INTRO}", headers={"Range": "bytes=2000-"})

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */1024"


class TestWithoutRange:
    def test_audio_is_no_content(self, client: TestClient) -> None:
        response = client.get(f"/file/{INTRO}")

        assert response.status_code == 204
        assert response.content == b""

    def test_image_served_whole(self, client: TestClient, library_root: Path) -> None:
        response = client.get(f"/file/{COVER}")

        assert response.status_code == 200
        assert response.content == (library_root / "Valta" / "Valta" / "cover.png").read_bytes()
        assert response.headers["content-type"] == "image/png"


class TestRejections:
    def test_malformed_id(self, client: TestClient) -> None:
        # Same bytes as "Valta" but with non-zero trailing bits
        response = client.get("/file/VmFsdGF")

        assert response.status_code == 400

    def test_unknown_file(self, client: TestClient) -> None:
        response = client.get(f"/file/{encode_path_id('Valta/Valta/99 - Missing.mp3')}")

        assert response.status_code == 404

    def test_unsupported_file(self, client: TestClient) -> None:
        response = client.get(f"/file/{encode_path_id('Other/First/readme.txt')}")

        assert response.status_code == 404

    def test_path_outside_library(self, client: TestClient) -> None:
        response = client.get(
            f"/file/{encode_path_id('../secret.mp3')}", headers={"Range": "bytes=0-"}
        )

        assert response.status_code == 404

    def test_directory(self, client: TestClient) -> None:
        response = client.get(f"/file/{encode_path_id('Valta')}")

        assert response.status_code == 404


class TestResolveLibraryFile:
    @pytest.mark.parametrize("relative", ["../etc/passwd.mp3", "A/../../x.mp3", "", "."])
    def test_escapes_rejected(self, relative: str) -> None:
        assert resolve_library_file("/music", relative) is None

    def test_nested_path(self) -> None:
        assert resolve_library_file("/music", "A/B/01.mp3") == "/music/A/B/01.mp3"
