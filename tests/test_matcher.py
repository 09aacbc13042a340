"""Tests for pairwise matching."""

from audiodedupe.matcher import (
    MatcherSettings,
    compare_files,
    normalize_filename,
    normalize_string,
    root_folder,
    split_artist_title,
)

SETTINGS = MatcherSettings(duration_tolerance=5, score_threshold=40)


def test_normalize_string_strips_punctuation_and_case():
    assert normalize_string("  The  Beatles!! ") == "the beatles"
    assert normalize_string("Café del Mar") == "cafe del mar"
    assert normalize_string(None) == ""


def test_normalize_filename_drops_track_numbers_and_annotations():
    assert normalize_filename("01 - Song Name (320kbps).mp3") == "song name"
    assert normalize_filename("Song Name [Remastered].flac") == "song name"
    assert normalize_filename("Song Name (1).mp3") == "song name"


def test_split_artist_title():
    assert split_artist_title("Queen - Bohemian Rhapsody.mp3") == ("Queen", "Bohemian Rhapsody")
    assert split_artist_title("Queen_-_Bohemian Rhapsody.mp3") == ("Queen", "Bohemian Rhapsody")
    assert split_artist_title("Bohemian Rhapsody.mp3") == (None, None)


def test_root_folder():
    assert root_folder("/Volumes/Backup/Music/a.mp3") == "/Volumes/Backup"
    assert root_folder("/Users/bob/Music/a.mp3") == "/Users/bob/Music"
    assert root_folder("/data/music/a.mp3") == "/data"


def test_compare_is_symmetric(make_record):
    a = make_record("/a/Queen - Bohemian Rhapsody.mp3", duration=354, artist="Queen")
    b = make_record("/b/Bohemian Rapsody.flac", duration=356, title="Bohemian Rhapsody")

    ab = compare_files(a, b, SETTINGS)
    ba = compare_files(b, a, SETTINGS)

    assert ab.score == ba.score
    assert sorted(ab.reasons) == sorted(ba.reasons)


def test_identical_tags_score_at_least_80(make_record):
    tags = {"duration": 200, "artist": "Queen", "title": "Innuendo", "album": "Innuendo"}
    a = make_record("/music/one/x.mp3", **tags)
    b = make_record("/music/two/y.mp3", **tags)

    result = compare_files(a, b, SETTINGS)

    assert result.score >= 80
    assert {"duration", "artist+title", "album"} <= set(result.reasons)


def test_song_and_numbered_copy(make_record):
    a = make_record("/a/Song.mp3", duration=180, artist="X", title="Y", bitrate=128)
    b = make_record("/b/Song (1).mp3", duration=181, artist="X", title="Y", bitrate=320)

    result = compare_files(a, b, SETTINGS)

    assert result.score >= 85
    assert result.reasons == ["duration", "artist+title", "filename", "different-location"]


def test_missing_fields_are_skipped(make_record):
    a = make_record("/a/one.mp3", duration=None, artist=None, title=None)
    b = make_record("/a/two.mp3", duration=180, artist="X", title="Y")

    result = compare_files(a, b, SETTINGS)

    assert "duration" not in result.reasons
    assert "artist+title" not in result.reasons


def test_duration_tolerance(make_record):
    a = make_record("/a/one.mp3", duration=180)
    b = make_record("/a/two.mp3", duration=186)

    assert "duration" not in compare_files(a, b, SETTINGS).reasons
    assert "duration" in compare_files(a, b, MatcherSettings(duration_tolerance=6)).reasons


def test_similar_filenames_match(make_record):
    a = make_record("/a/Bohemian Rhapsody.mp3", duration=None)
    b = make_record("/a/Bohemian Rapsody.mp3", duration=None)

    assert compare_files(a, b, SETTINGS).reasons == ["filename"]


def test_settings_from_config():
    settings = MatcherSettings.from_config({"durationToleranceSeconds": 2, "duplicateScoreThreshold": 60})
    assert settings.duration_tolerance == 2
    assert settings.score_threshold == 60
