"""Tests for the metadata store and JSON documents."""

import json

from audiodedupe.models import Decision, DuplicateGroup, FixState, ScanState
from audiodedupe.storage import (
    append_record,
    clear_fix_state,
    clear_store,
    load_decisions,
    load_duplicates,
    load_fix_state,
    load_scan_state,
    load_store,
    read_json,
    save_decisions,
    save_duplicates,
    save_fix_state,
    save_scan_state,
    save_store,
    write_json,
)


def test_store_round_trip(tmp_path, make_record):
    path = tmp_path / "metadata.jsonl"
    record = make_record("/m/a.flac", title="Innuendo", year=1991, sample_rate=44100)

    append_record(path, record)

    assert load_store(path) == {"/m/a.flac": record}


def test_corrupt_line_is_skipped(tmp_path, make_record, caplog):
    path = tmp_path / "metadata.jsonl"
    append_record(path, make_record("/m/a.mp3"))
    with open(path, "a", encoding="utf-8") as f:
        f.write('{"path": "/m/broken.mp3", "filen\n')
    append_record(path, make_record("/m/b.mp3"))

    store = load_store(path)

    assert list(store) == ["/m/a.mp3", "/m/b.mp3"]
    assert "line 2" in caplog.text


def test_last_write_wins(tmp_path, make_record):
    path = tmp_path / "metadata.jsonl"
    append_record(path, make_record("/m/a.mp3", title=None))
    append_record(path, make_record("/m/a.mp3", title="Fixed"))

    store = load_store(path)

    assert len(store) == 1
    assert store["/m/a.mp3"].title == "Fixed"


def test_save_and_clear_store(tmp_path, make_record):
    path = tmp_path / "metadata.jsonl"
    store = {r.path: r for r in (make_record("/m/a.mp3"), make_record("/m/b.mp3"))}

    save_store(path, store)
    assert load_store(path) == store

    clear_store(path)
    assert load_store(path) == {}


def test_missing_store_is_empty(tmp_path):
    assert load_store(tmp_path / "nope.jsonl") == {}


def test_write_json_leaves_no_temp_files(tmp_path):
    path = tmp_path / "sub" / "doc.json"

    write_json(path, {"a": 1})
    write_json(path, {"a": 2})

    assert read_json(path) == {"a": 2}
    assert [p.name for p in path.parent.iterdir()] == ["doc.json"]


def test_read_json_corrupt_returns_default(tmp_path):
    path = tmp_path / "doc.json"
    path.write_text("{not json", encoding="utf-8")

    assert read_json(path, default=[]) == []


def test_duplicates_document(tmp_path):
    path = tmp_path / "duplicates.json"
    group = DuplicateGroup(
        id="group-1",
        confidence=90,
        files=["/a.mp3", "/b.mp3"],
        match_reasons=["duration"],
        suggested_keep="/a.mp3",
    )

    save_duplicates(path, [group])

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["totalGroups"] == 1
    assert data["groups"][0]["suggestedKeep"] == "/a.mp3"
    assert load_duplicates(path).groups == [group]


def test_decisions_round_trip_keeps_field_mapping(tmp_path):
    path = tmp_path / "decisions.json"
    decision = Decision(
        group_id="group-1",
        keep=["/a.mp3"],
        delete=["/b.mp3"],
        decision_type="auto",
        rule_applied="tie",
        metadata_source={"title": "/b.mp3", "artist": "/a.mp3"},
    )

    save_decisions(path, [decision])
    loaded = load_decisions(path)

    assert loaded.reviewed_at
    assert loaded.decisions == [decision]


def test_decision_without_metadata_source_omits_key():
    data = Decision(group_id="group-1", keep=["/a"]).to_dict()
    assert "metadataSource" not in data


def test_corrupt_decision_entry_is_skipped(tmp_path):
    path = tmp_path / "decisions.json"
    write_json(path, {"decisions": [{"keep": ["/a"]}, {"groupId": "group-2", "keep": ["/b"]}]})

    decisions = load_decisions(path).decisions

    assert [d.group_id for d in decisions] == ["group-2"]


def test_checkpoints(tmp_path):
    scan_path = tmp_path / "scan-state.json"
    fix_path = tmp_path / "fix-state.json"

    save_scan_state(scan_path, ScanState(started_at="t0", last_processed_file="/a", processed_count=3))
    save_fix_state(fix_path, FixState(started_at="t0", last_processed_index=4, fixed_count=2))

    assert load_scan_state(scan_path).processed_count == 3
    assert load_fix_state(fix_path).last_processed_index == 4

    clear_fix_state(fix_path)
    assert load_fix_state(fix_path) is None
