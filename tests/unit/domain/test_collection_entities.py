"""Tests for collection maps, metadata documents and scan reports."""

from datetime import UTC, datetime

from musicindex.application.services.collection_builder import build_collection
from musicindex.domain.entities import (
    AudioMetadata,
    MediaCollection,
    NumberOf,
    ScanReport,
    ScanStatus,
    UrlMode,
)


def _collection() -> MediaCollection:
    return build_collection(
        ["A/X/1.mp3", "A/loose.mp3", "A/X/cover.jpg", "B/Y/1.mp3"],
        "/music",
        UrlMode.CONTENT,
    )


class TestMediaCollection:
    def test_without_artists_drops_everything_owned(self) -> None:
        collection = _collection()
        artist_a = next(a for a in collection.artists.values() if a.name == "A")

        trimmed = collection.without_artists({artist_a.id})

        assert [a.name for a in trimmed.artists.values()] == ["B"]
        assert all(album.artist_id != artist_a.id for album in trimmed.albums.values())
        assert all(f.artist_id != artist_a.id for f in trimmed.audio.values())
        assert trimmed.images == {}
        # source untouched
        assert artist_a.id in collection.artists

    def test_merged_with_other_wins(self) -> None:
        collection = _collection()
        rebuilt = build_collection(["A/Z/9.mp3"], "/music")
        artist_ids = {a.id for a in rebuilt.artists.values()}

        merged = collection.without_artists(artist_ids).merged_with(rebuilt)

        artist = next(a for a in merged.artists.values() if a.name == "A")
        assert [s.name for s in artist.albums] == ["Z"]
        assert len(merged.audio) == 2


class TestAudioMetadata:
    def test_document_uses_camel_case(self) -> None:
        metadata = AudioMetadata(
            track=NumberOf(no=3, of=12),
            album_artist="Valta",
            replay_gain_track_gain=-6.5,
        )
        doc = metadata.to_document()
        assert doc["track"] == {"no": 3, "of": 12}
        assert doc["albumArtist"] == "Valta"
        assert doc["replayGainTrackGain"] == -6.5
        assert "album_artist" not in doc

    def test_round_trip_from_document(self) -> None:
        metadata = AudioMetadata(title="Intro", year=2019, artists=["Valta"])
        assert AudioMetadata.model_validate(metadata.to_document()) == metadata

    def test_album_projection(self) -> None:
        metadata = AudioMetadata(
            title="Intro",
            album="Valta",
            year=2019,
            artists=["Valta"],
            artist="Valta",
            genre=["Rock"],
            dynamic_range_album="DR9",
        )
        album = metadata.to_album_metadata()
        assert album.album == "Valta"
        assert album.year == 2019
        assert album.genre == ["Rock"]
        assert album.dynamic_range_album == "DR9"
        assert "title" not in album.to_document()


class TestScanReport:
    def test_writes_counts_audio_and_albums(self) -> None:
        report = ScanReport(
            status=ScanStatus.COMPLETED, inserted=2, updated=1, skipped=5, albums_updated=1
        )
        assert report.writes == 4

    def test_to_dict(self) -> None:
        started = datetime(2024, 1, 1, tzinfo=UTC)
        report = ScanReport(status=ScanStatus.REJECTED, started_at=started)
        data = report.to_dict()
        assert data["status"] == "rejected"
        assert data["started_at"] == started.isoformat()
        assert data["completed_at"] is None
