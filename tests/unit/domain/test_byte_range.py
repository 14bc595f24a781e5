"""Tests for HTTP Range header parsing."""

import pytest

from musicindex.domain.value_objects import first_range, parse_range_header


class TestParseRangeHeader:
    """Range forms against a 1000 byte resource."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("bytes=0-499", [(0, 499)]),
            ("bytes=100-199", [(100, 199)]),
            ("bytes=500-", [(500, 999)]),
            ("bytes=-100", [(900, 999)]),
            ("bytes=0-0", [(0, 0)]),
            ("bytes=999-999", [(999, 999)]),
        ],
    )
    def test_single_range_forms(self, header: str, expected: list[tuple[int, int]]) -> None:
        assert parse_range_header(header, 1000) == expected

    def test_end_clamped_to_size(self) -> None:
        assert parse_range_header("bytes=900-5000", 1000) == [(900, 999)]

    def test_suffix_longer_than_resource_starts_at_zero(self) -> None:
        assert parse_range_header("bytes=-5000", 1000) == [(0, 999)]

    def test_multiple_ranges_kept_in_order(self) -> None:
        assert parse_range_header("bytes=0-1, 10-19,-5", 1000) == [
            (0, 1),
            (10, 19),
            (995, 999),
        ]

    @pytest.mark.parametrize(
        "header",
        [
            "bytes=500-100",  # inverted
            "bytes=1000-",  # starts past the end
            "bytes=abc-def",
            "bytes=12",
            "bytes=-0",
            "bytes=",
        ],
    )
    def test_unsatisfiable_or_malformed_dropped(self, header: str) -> None:
        assert parse_range_header(header, 1000) == []

    def test_malformed_part_does_not_drop_valid_ones(self) -> None:
        assert parse_range_header("bytes=x-y,0-9", 1000) == [(0, 9)]

    def test_other_units_ignored(self) -> None:
        assert parse_range_header("items=0-10", 1000) == []

    def test_missing_header_or_empty_resource(self) -> None:
        assert parse_range_header(None, 1000) == []
        assert parse_range_header("", 1000) == []
        assert parse_range_header("bytes=0-10", 0) == []


class TestFirstRange:
    def test_only_first_range_is_served(self) -> None:
        assert first_range("bytes=10-19,30-39", 100) == (10, 19)

    def test_none_when_unsatisfiable(self) -> None:
        assert first_range("bytes=200-300", 100) is None
