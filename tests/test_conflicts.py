"""Tests for conflict detection and resolution."""

from audiodedupe.conflicts import (
    extract_owner,
    find_conflicts,
    find_multiple_deletes,
    rank_files,
    report_conflicts,
    resolve_conflicts,
    score_file,
)

HOME = "/home/u"

LOCAL = "/home/u/Music/Queen/Innuendo/a.flac"
BACKUP = "/Volumes/Backup/Music/Queen/Innuendo/a.mp3"
DOWNLOAD = "/home/u/Downloads/a.mp3"


def test_keep_and_delete_is_one_conflict(make_decision):
    decisions = [
        make_decision("group-1", keep=[LOCAL], delete=[BACKUP]),
        make_decision("group-2", keep=[DOWNLOAD], delete=[LOCAL]),
    ]

    conflicts = find_conflicts(decisions)

    assert len(conflicts) == 1
    assert conflicts[0].to_dict() == {
        "file": LOCAL,
        "keptInGroups": ["group-1"],
        "deletedInGroups": ["group-2"],
    }


def test_multiple_deletes(make_decision):
    decisions = [
        make_decision("group-1", keep=["/a"], delete=["/x"]),
        make_decision("group-2", keep=["/b"], delete=["/x"]),
    ]
    assert find_multiple_deletes(decisions) == {"/x": ["group-1", "group-2"]}
    assert find_conflicts(decisions) == []


def test_resolve_single_owner(make_decision):
    untouched = make_decision("group-0", keep=["/other/k.mp3"], delete=["/other/d.mp3"])
    decisions = [
        untouched,
        make_decision("group-1", keep=[LOCAL], delete=[BACKUP]),
        make_decision("group-2", keep=[DOWNLOAD], delete=[LOCAL]),
    ]

    resolved, resolutions = resolve_conflicts(decisions, home=HOME)

    assert find_conflicts(resolved) == []
    assert resolved[0] is untouched
    assert len(resolutions) == 1
    assert resolutions[0].involved_groups == ["group-1", "group-2"]

    new = resolved[1]
    assert new.group_id == "resolved-1"
    assert new.keep == [LOCAL]
    assert new.delete == [DOWNLOAD, BACKUP]
    assert new.rule_applied == "conflict-resolution"
    assert new.decision_type == "auto"


def test_resolve_keeps_unrelated_decision_sharing_an_id(make_decision):
    unrelated = make_decision("group-1", keep=["/other/c.mp3"], delete=["/other/d.mp3"])
    decisions = [
        make_decision("group-1", keep=[LOCAL], delete=[BACKUP]),
        make_decision("group-2", keep=[BACKUP], delete=[LOCAL]),
        unrelated,
    ]

    resolved, _ = resolve_conflicts(decisions, home=HOME)

    assert resolved[0] is unrelated
    assert [d.group_id for d in resolved] == ["group-1", "resolved-1"]
    assert resolved[1].keep == [LOCAL]


def test_resolve_different_owners(make_decision):
    alice = "/home/u/Music/Alice/song.mp3"
    bob = "/home/u/Music/Bob/song.mp3"
    decisions = [
        make_decision("group-1", keep=[alice], delete=[bob]),
        make_decision("group-2", keep=[bob], delete=[alice]),
    ]

    resolved, resolutions = resolve_conflicts(decisions, home=HOME)

    assert [d.group_id for d in resolved] == ["resolved-1-keep-1", "resolved-1-keep-2"]
    assert [d.keep for d in resolved] == [[alice], [bob]]
    assert all(d.not_duplicates for d in resolved)
    assert all(d.rule_applied == "different-artists" for d in resolved)
    assert resolutions[0].not_duplicates is True
    assert find_conflicts(resolved) == []


def test_resolve_is_idempotent(make_decision):
    decisions = [
        make_decision("group-1", keep=[LOCAL], delete=[BACKUP]),
        make_decision("group-2", keep=[DOWNLOAD], delete=[LOCAL]),
    ]

    once, _ = resolve_conflicts(decisions, home=HOME)
    twice, resolutions = resolve_conflicts(once, home=HOME)

    assert resolutions == []
    assert [d.to_dict() for d in twice] == [d.to_dict() for d in once]


def test_resolved_numbers_continue(make_decision):
    decisions = [
        make_decision("resolved-3", keep=["/k.mp3"], delete=["/d.mp3"]),
        make_decision("group-1", keep=[LOCAL], delete=[BACKUP]),
        make_decision("group-2", keep=[BACKUP], delete=[LOCAL]),
    ]

    resolved, _ = resolve_conflicts(decisions, home=HOME)

    assert [d.group_id for d in resolved] == ["resolved-3", "resolved-4"]


def test_extract_owner():
    assert extract_owner("/x/Music/Queen/a.mp3") == "Queen"
    assert extract_owner("/x/Music/Unknown Artist/a.mp3") is None
    assert extract_owner("/x/a.mp3") is None
    assert extract_owner("/x/Musica/Queen/a.mp3", markers=("Musica",)) == "Queen"


def test_score_file_prefers_local_library():
    assert score_file(LOCAL, home=HOME) > score_file(DOWNLOAD, home=HOME)
    assert score_file(DOWNLOAD, home=HOME) > score_file(BACKUP, home=HOME)


def test_rank_files_is_stable():
    paths = ["/m/a.mp3", "/m/b.mp3"]
    assert [p for p, _ in rank_files(paths, home=HOME)] == paths


def test_report_conflicts_returns_conflicts(make_decision, capsys):
    decisions = [
        make_decision("group-1", keep=[LOCAL], delete=[BACKUP]),
        make_decision("group-2", keep=[DOWNLOAD], delete=[LOCAL]),
    ]

    conflicts = report_conflicts(decisions)

    assert [c.file for c in conflicts] == [LOCAL]
    assert LOCAL in capsys.readouterr().out
