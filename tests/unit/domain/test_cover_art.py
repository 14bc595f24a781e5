"""Tests for album cover detection."""

import pytest

from musicindex.domain.value_objects import (
    is_album_cover,
    is_default_cover_name,
    normalize_cover_name,
)


class TestNormalizeCoverName:
    def test_strips_illegal_characters_and_case(self) -> None:
        assert normalize_cover_name(' AC/DC: "Live"? ') == "acdc live"

    def test_plain_name_lowercased(self) -> None:
        assert normalize_cover_name("Valta") == "valta"


class TestIsAlbumCover:
    """Image named after its album folder."""

    @pytest.mark.parametrize(
        ("album", "image"),
        [
            ("Valta", "Valta.jpg"),
            ("Valta", "valta.PNG"),
            ("AC/DC: Live", "ACDC Live.jpeg"),
            ("Who? Me", "Who Me.jpg"),
        ],
    )
    def test_matches(self, album: str, image: str) -> None:
        assert is_album_cover(album, image) is True

    @pytest.mark.parametrize(
        ("album", "image"),
        [
            ("Valta", "Valta Booklet.jpg"),
            ("Valta", "front.jpg"),
            ("???", "???.jpg"),  # normalizes to nothing
        ],
    )
    def test_non_matches(self, album: str, image: str) -> None:
        assert is_album_cover(album, image) is False


class TestIsDefaultCoverName:
    @pytest.mark.parametrize(
        "name", ["front.jpg", "Cover.png", "AlbumArt_Large.jpg", "folder.jpg", "cd-front.jpeg"]
    )
    def test_default_names(self, name: str) -> None:
        assert is_default_cover_name(name) is True

    @pytest.mark.parametrize("name", ["booklet-01.jpg", "back.jpg", "artist.png"])
    def test_other_names(self, name: str) -> None:
        assert is_default_cover_name(name) is False
