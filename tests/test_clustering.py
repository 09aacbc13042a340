"""Tests for duplicate group construction."""

from audiodedupe.clustering import (
    connected_components,
    find_duplicates,
    round_half_up,
    select_best_file,
)
from audiodedupe.matcher import MatcherSettings

SETTINGS = MatcherSettings(duration_tolerance=5, score_threshold=40)


def test_transitive_closure(make_record, make_store):
    store = make_store(
        make_record("/m/aaa.mp3", duration=100),
        make_record("/m/qqq.mp3", duration=104),
        make_record("/m/zzz.mp3", duration=108),
    )

    groups = find_duplicates(store, SETTINGS)

    assert len(groups) == 1
    assert sorted(groups[0].files) == ["/m/aaa.mp3", "/m/qqq.mp3", "/m/zzz.mp3"]
    # (40 + 40 + 0) / 3 over every pair, not only the linking edges
    assert groups[0].confidence == 27
    assert groups[0].match_reasons == ["duration"]


def test_singletons_are_not_grouped(make_record, make_store):
    store = make_store(
        make_record("/m/aaa.mp3", duration=100),
        make_record("/m/qqq.mp3", duration=101),
        make_record("/m/zzz.mp3", duration=500),
    )

    groups = find_duplicates(store, SETTINGS)

    assert len(groups) == 1
    assert "/m/zzz.mp3" not in groups[0].files


def test_numbered_copy_scenario(make_record, make_store):
    store = make_store(
        make_record("/a/Song.mp3", duration=180, artist="X", title="Y", bitrate=128),
        make_record("/b/Song (1).mp3", duration=181, artist="X", title="Y", bitrate=320),
    )

    groups = find_duplicates(store, SETTINGS)

    assert len(groups) == 1
    assert groups[0].confidence >= 85
    assert groups[0].suggested_keep == "/b/Song (1).mp3"


def test_groups_sorted_by_confidence(make_record, make_store):
    store = make_store(
        make_record("/m/aaa.mp3", duration=100),
        make_record("/m/qqq.mp3", duration=101),
        make_record("/x/Hello.mp3", duration=300, artist="A", title="Hello"),
        make_record("/y/Hello.mp3", duration=300, artist="A", title="Hello"),
    )

    groups = find_duplicates(store, SETTINGS)

    assert [g.confidence for g in groups] == sorted((g.confidence for g in groups), reverse=True)
    assert groups[0].files == ["/x/Hello.mp3", "/y/Hello.mp3"]


def test_connected_components_drop_singletons():
    graph = {"a": ["b"], "b": ["a"], "c": []}
    assert connected_components(graph) == [["a", "b"]]


def test_select_best_file_prefers_tags_then_quality(make_record, make_store):
    store = make_store(
        make_record("/m/lossless.flac", bitrate=900),
        make_record("/m/tagged.mp3", bitrate=128, artist="A", title="T"),
    )
    assert select_best_file(list(store), store) == "/m/tagged.mp3"


def test_select_best_file_tie_keeps_first(make_record, make_store):
    store = make_store(
        make_record("/m/one.mp3"),
        make_record("/m/two.mp3"),
    )
    assert select_best_file(["/m/one.mp3", "/m/two.mp3"], store) == "/m/one.mp3"


def test_round_half_up():
    assert round_half_up(26.5) == 27
    assert round_half_up(26.49) == 26
