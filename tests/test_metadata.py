"""Tests for metadata extraction helpers and quality measures."""

from audiodedupe.metadata import (
    extract_metadata,
    format_duration,
    format_file_size,
    is_under,
    keeper_score,
    metadata_count,
    parse_number,
)
from audiodedupe.writer import apply_to_record


def test_unreadable_files_are_extraction_failures(tmp_path):
    garbage = tmp_path / "broken.mp3"
    garbage.write_bytes(b"definitely not an mpeg stream")
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hello", encoding="utf-8")

    assert extract_metadata(garbage) is None
    assert extract_metadata(text_file) is None
    assert extract_metadata(tmp_path / "missing.flac") is None


def test_parse_number():
    assert parse_number("3/12") == 3
    assert parse_number("2004-05-01") == 2004
    assert parse_number("side A") is None
    assert parse_number(None) is None


def test_quality_measures(make_record):
    tagged = make_record("/m/a.mp3", artist="A", title="T", year=2001, track_number=4)
    lossless = make_record("/m/a.flac", bitrate=900, sample_rate=96000, bit_depth=24)

    assert metadata_count(tagged) == 3
    assert keeper_score(tagged) == 4 * 1000 + 320
    assert keeper_score(lossless) == 1000 + 900 + 960 + 240


def test_display_helpers():
    assert format_file_size(512) == "512 B"
    assert format_file_size(2048) == "2.0 KB"
    assert format_file_size(5 * 1024 * 1024) == "5.0 MB"
    assert format_duration(185.7) == "3:05"
    assert format_duration(None) == "unknown"


def test_is_under():
    assert is_under("/lib/music/a.mp3", "/lib/music/")
    assert is_under("/lib/music", "/lib/music")
    assert not is_under("/lib/musical/a.mp3", "/lib/music")
    assert not is_under("/lib/music/a.mp3", "")


def test_apply_to_record(make_record):
    record = make_record("/m/a.mp3")

    updated = apply_to_record(record, {"artist": "A", "year": "1999-01-01", "genre": ""})

    assert (updated.artist, updated.year, updated.genre) == ("A", 1999, None)
    assert record.artist is None
