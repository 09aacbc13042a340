"""Tests for decision execution."""

from audiodedupe.deleter import (
    calculate_deletion_summary,
    delete_file,
    execute_decisions,
    merge_values,
    unique_destination,
)


def audio(path, content=b"audio"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return str(path)


def test_unique_destination(tmp_path):
    (tmp_path / "song.mp3").write_bytes(b"")
    (tmp_path / "song (1).mp3").write_bytes(b"")

    assert unique_destination(tmp_path, "other.mp3") == tmp_path / "other.mp3"
    assert unique_destination(tmp_path, "song.mp3") == tmp_path / "song (2).mp3"


def test_delete_moves_to_trash(tmp_path):
    trash = tmp_path / "trash"
    first = audio(tmp_path / "a" / "song.mp3")
    second = audio(tmp_path / "b" / "song.mp3")

    assert delete_file(first, trash).method == "trash"
    entry = delete_file(second, trash)

    assert entry.success
    assert sorted(p.name for p in trash.iterdir()) == ["song (1).mp3", "song.mp3"]


def test_missing_file_is_logged(tmp_path):
    entry = delete_file(str(tmp_path / "gone.mp3"), tmp_path / "trash")

    assert entry.success is False
    assert "gone.mp3" in entry.error


def test_execute_keeps_and_deletes(tmp_path, make_decision, make_record):
    keep = audio(tmp_path / "keep.flac")
    loser = audio(tmp_path / "loser.mp3")
    store = {p: make_record(p) for p in (keep, loser)}
    decisions = [
        make_decision("group-1", keep=[keep], delete=[loser, str(tmp_path / "gone.mp3")]),
    ]

    log = execute_decisions(decisions, store, tmp_path / "trash")

    assert [(e.path, e.success) for e in log.entries] == [
        (loser, True),
        (str(tmp_path / "gone.mp3"), False),
    ]
    assert (tmp_path / "keep.flac").exists()
    assert not (tmp_path / "loser.mp3").exists()
    assert log.to_dict()["entries"][1]["error"]


def test_dry_run_touches_nothing(tmp_path, make_decision):
    loser = audio(tmp_path / "loser.mp3")
    decisions = [make_decision("group-1", keep=["/x.mp3"], delete=[loser])]

    log = execute_decisions(decisions, {}, tmp_path / "trash", dry_run=True)

    assert log.entries == []
    assert (tmp_path / "loser.mp3").exists()


def test_copy_to_destination(tmp_path, make_decision):
    keep = audio(tmp_path / "src" / "song.flac", b"lossless")
    loser = audio(tmp_path / "library" / "song.mp3")
    decisions = [make_decision(
        "group-1", keep=[keep], delete=[loser], copy_to_destination=True,
    )]

    execute_decisions(decisions, {}, tmp_path / "trash", destination_dir=str(tmp_path / "library"))

    assert (tmp_path / "library" / "song.flac").read_bytes() == b"lossless"
    assert not (tmp_path / "library" / "song.mp3").exists()


def test_failed_copy_keeps_losers(tmp_path, make_decision):
    loser = audio(tmp_path / "library" / "song.mp3")
    decisions = [make_decision(
        "group-1", keep=[str(tmp_path / "missing.flac")], delete=[loser], copy_to_destination=True,
    )]

    log = execute_decisions(decisions, {}, tmp_path / "trash", destination_dir=str(tmp_path / "library"))

    assert log.entries == []
    assert (tmp_path / "library" / "song.mp3").exists()


def test_copy_without_destination_keeps_losers(tmp_path, make_decision):
    keep = audio(tmp_path / "song.flac")
    loser = audio(tmp_path / "song.mp3")
    decisions = [make_decision("group-1", keep=[keep], delete=[loser], copy_to_destination=True)]

    log = execute_decisions(decisions, {}, tmp_path / "trash")

    assert log.entries == []
    assert (tmp_path / "song.mp3").exists()


def test_merge_values(make_decision, make_record):
    store = {
        "/k.flac": make_record("/k.flac", artist="Queen"),
        "/a.mp3": make_record("/a.mp3", artist="Queen", title="Innuendo", year=1991),
        "/b.mp3": make_record("/b.mp3", album="Innuendo"),
    }

    whole = make_decision("g", keep=["/k.flac"], delete=["/a.mp3"], metadata_source="/a.mp3")
    assert merge_values(whole, store) == {"title": "Innuendo", "year": 1991}

    fields = make_decision(
        "g", keep=["/k.flac"], delete=["/a.mp3", "/b.mp3"],
        metadata_source={"title": "/a.mp3", "album": "/b.mp3", "artist": "/k.flac"},
    )
    assert merge_values(fields, store) == {"title": "Innuendo", "album": "Innuendo"}

    own = make_decision("g", keep=["/k.flac"], metadata_source="/k.flac")
    assert merge_values(own, store) == {}


def test_deletion_summary(make_decision, make_record):
    store = {"/a.mp3": make_record("/a.mp3", size=100), "/b.mp3": make_record("/b.mp3", size=50)}
    decisions = [
        make_decision("g1", keep=["/k"], delete=["/a.mp3"], decision_type="auto"),
        make_decision("g2", keep=["/k2"], delete=["/b.mp3", "/unknown.mp3"]),
    ]

    summary = calculate_deletion_summary(decisions, store)

    assert summary.total_files == 3
    assert summary.total_size == 150
    assert (summary.auto_count, summary.manual_count) == (1, 2)
