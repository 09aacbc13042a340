"""
conflicts.py

Audit and repair of an accumulated decision set.

A conflict is a file that one decision keeps while another deletes it.
Conflicts appear when decisions from several runs (or overlapping groups
decided by hand) are merged. Executing such a set would delete a file the
user asked to keep, so execution refuses to run until they are resolved.

Resolution works on connected components of the decision graph: two files
are connected when some decision mentions both. Every decision touching a
component is replaced by fresh "resolved-*" decisions:

- one owner (or none): keep the best scoring file, delete the rest
  (ruleApplied "conflict-resolution")
- several owners: keep the best file of each owner as a stand-alone
  not-duplicates decision ("different-artists"), delete everything else
  ("lower-quality-duplicate")

The owner of a file is the first folder below a library marker such as
`Music` (`.../Music/<owner>/...`). Resolving a set without conflicts
returns it unchanged.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from audiodedupe.i18n import emit, msg
from audiodedupe.models import Decision

# ================= I18N MESSAGE KEYS =================

MSG_REASON_SCORE = "RESOLVE_REASON_SCORE"
MSG_REASON_DIFFERENT_OWNERS = "RESOLVE_REASON_DIFFERENT_OWNERS"

MSG_ANALYSIS_HEADER = "CONFLICT_ANALYSIS_HEADER"
MSG_ANALYSIS_TOTALS = "CONFLICT_ANALYSIS_TOTALS"
MSG_ANALYSIS_COUNT = "CONFLICT_ANALYSIS_COUNT"
MSG_CONFLICT_FILE = "CONFLICT_FILE"
MSG_CONFLICT_KEPT_IN = "CONFLICT_KEPT_IN"
MSG_CONFLICT_DELETED_IN = "CONFLICT_DELETED_IN"
MSG_CONFLICT_DECISION = "CONFLICT_DECISION"
MSG_MULTI_DELETE_HEADER = "CONFLICT_MULTI_DELETE_HEADER"
MSG_MULTI_DELETE_FILE = "CONFLICT_MULTI_DELETE_FILE"

MSG_RESOLVE_GROUP = "RESOLVE_GROUP"
MSG_RESOLVE_KEEP = "RESOLVE_KEEP"
MSG_RESOLVE_DELETE = "RESOLVE_DELETE"
MSG_RESOLVE_AFFECTS = "RESOLVE_AFFECTS"
MSG_RESOLVE_SUMMARY = "RESOLVE_SUMMARY"

# ====================================================

GENERIC_OWNER_FOLDERS = {"Music", "Unknown Artist", "Media.localized"}

FORMAT_BONUS = (
    (".flac", 200),
    (".opus", 150),
    (".m4a", 50),
)

LOW_TRUST_FOLDERS = (
    ("mega-unique", 30),
    ("Media.localized", 20),
)


@dataclass
class Conflict:
    file: str
    kept_in_groups: List[str]
    deleted_in_groups: List[str]

    def to_dict(self):
        return {
            "file": self.file,
            "keptInGroups": list(self.kept_in_groups),
            "deletedInGroups": list(self.deleted_in_groups),
        }


@dataclass
class Resolution:
    keep: List[str]
    delete: List[str]
    reason: dict
    involved_groups: List[str] = field(default_factory=list)
    not_duplicates: bool = False

    def to_dict(self):
        return {
            "keep": list(self.keep),
            "delete": list(self.delete),
            "reason": self.reason,
            "involvedGroups": list(self.involved_groups),
            "notDuplicates": self.not_duplicates,
        }


# -------------------- detection --------------------

def index_decisions(decisions):
    """
    Return (kept, deleted): path -> group ids keeping / deleting it, in
    decision order.
    """
    kept = {}
    deleted = {}
    for d in decisions:
        for path in d.keep:
            kept.setdefault(path, []).append(d.group_id)
        for path in d.delete:
            deleted.setdefault(path, []).append(d.group_id)
    return kept, deleted


def find_conflicts(decisions):
    kept, deleted = index_decisions(decisions)
    return [
        Conflict(file=path, kept_in_groups=groups, deleted_in_groups=deleted[path])
        for path, groups in kept.items()
        if path in deleted
    ]


def find_multiple_deletes(decisions):
    """Files deleted by more than one decision: path -> group ids."""
    _, deleted = index_decisions(decisions)
    return {path: groups for path, groups in deleted.items() if len(groups) > 1}


# -------------------- scoring --------------------

def extract_owner(path, markers=("Music",)):
    """
    Folder right below the first library marker, or None when the file
    does not sit in such a folder or the folder is a generic one.
    """
    for marker in markers:
        m = re.search(rf"/{re.escape(marker)}/([^/]+)/", path)
        if not m:
            continue
        owner = m.group(1)
        if owner in GENERIC_OWNER_FOLDERS or owner == marker:
            return None
        return owner
    return None


def score_file(path, home=None, markers=("Music",)):
    """
    Heuristic keeper score from the path alone: prefer the local library,
    organized folders and better formats; penalize backup folders and
    long paths.
    """
    home = str(home if home is not None else Path.home()).rstrip("/")
    score = 0

    if path.startswith(f"{home}/Music/"):
        score += 100
    elif path.startswith(f"{home}/Downloads/"):
        score += 50
    elif path.startswith("/Volumes/"):
        score += 10

    if "Unknown Artist" in path or "Unknown Album" in path:
        score -= 50

    # Owner/Album/Track below the library folder.
    parts = path.split("/")
    for marker in markers:
        if marker in parts:
            if len(parts) > parts.index(marker) + 3:
                score += 20
            break

    lower = path.lower()
    for suffix, bonus in FORMAT_BONUS:
        if lower.endswith(suffix):
            score += bonus
            break

    for folder, penalty in LOW_TRUST_FOLDERS:
        if folder in path:
            score -= penalty

    score -= len(path) // 20
    return score


def rank_files(paths, home=None, markers=("Music",)):
    """(path, score) pairs, best first; equal scores keep input order."""
    scored = [(p, score_file(p, home, markers)) for p in paths]
    scored.sort(key=lambda item: -item[1])
    return scored


# -------------------- resolution --------------------

def find_connected_files(start, decisions):
    """
    Files reachable from `start` through decisions that mention both.
    Order follows first appearance in the decision list.
    """
    connected = {start}
    frontier = [start]

    while frontier:
        current = frontier.pop()
        for d in decisions:
            members = d.files
            if current not in members:
                continue
            for path in members:
                if path not in connected:
                    connected.add(path)
                    frontier.append(path)

    ordered = []
    for d in decisions:
        for path in d.files:
            if path in connected and path not in ordered:
                ordered.append(path)
    return ordered


def involved_groups(files, decisions):
    members = set(files)
    groups = []
    for d in decisions:
        if d.group_id in groups:
            continue
        if any(path in members for path in d.files):
            groups.append(d.group_id)
    return groups


def resolve_component(files, decisions, home=None, markers=("Music",)):
    owners = []
    by_owner = {}
    unowned = []

    for path in files:
        owner = extract_owner(path, markers)
        if owner is None:
            unowned.append(path)
            continue
        if owner not in by_owner:
            owners.append(owner)
            by_owner[owner] = []
        by_owner[owner].append(path)

    groups = involved_groups(files, decisions)

    if len(owners) > 1:
        keep = []
        delete = []
        for owner in owners:
            ranked = rank_files(by_owner[owner], home, markers)
            keep.append(ranked[0][0])
            delete.extend(p for p, _ in ranked[1:])
        delete.extend(unowned)
        return Resolution(
            keep=keep,
            delete=delete,
            reason=msg(MSG_REASON_DIFFERENT_OWNERS, owners=", ".join(owners)),
            involved_groups=groups,
            not_duplicates=True,
        )

    ranked = rank_files(files, home, markers)
    return Resolution(
        keep=[ranked[0][0]],
        delete=[p for p, _ in ranked[1:]],
        reason=msg(
            MSG_REASON_SCORE,
            score=ranked[0][1],
            scores=" > ".join(str(s) for _, s in ranked),
        ),
        involved_groups=groups,
        not_duplicates=False,
    )


def next_resolved_number(decisions):
    highest = 0
    for d in decisions:
        m = re.match(r"resolved-(\d+)", d.group_id)
        if m:
            highest = max(highest, int(m.group(1)))
    return highest + 1


def resolution_decisions(resolution: Resolution, number):
    if not resolution.not_duplicates:
        return [Decision(
            group_id=f"resolved-{number}",
            keep=list(resolution.keep),
            delete=list(resolution.delete),
            decision_type="auto",
            rule_applied="conflict-resolution",
        )]

    out = [
        Decision(
            group_id=f"resolved-{number}-keep-{j}",
            keep=[path],
            not_duplicates=True,
            decision_type="auto",
            rule_applied="different-artists",
        )
        for j, path in enumerate(resolution.keep, start=1)
    ]
    if resolution.delete:
        out.append(Decision(
            group_id=f"resolved-{number}-delete",
            delete=list(resolution.delete),
            decision_type="auto",
            rule_applied="lower-quality-duplicate",
        ))
    return out


def resolve_conflicts(decisions, markers=("Music",), home=None):
    """
    Return (decisions, resolutions). The returned decision set has no
    conflicts; decisions outside the conflicted components keep their
    position and content.
    """
    decisions = list(decisions)
    conflicts = find_conflicts(decisions)
    if not conflicts:
        return decisions, []

    processed = set()
    resolutions = []

    for conflict in conflicts:
        if conflict.file in processed:
            continue
        files = find_connected_files(conflict.file, decisions)
        processed.update(files)
        resolutions.append(resolve_component(files, decisions, home, markers))

    # ids repeat across runs; a decision belongs to a component by its files
    cleaned = [d for d in decisions if not any(path in processed for path in d.files)]

    first = next_resolved_number(decisions)
    for offset, resolution in enumerate(resolutions):
        cleaned.extend(resolution_decisions(resolution, first + offset))

    return cleaned, resolutions


# -------------------- reporting --------------------

def report_conflicts(decisions, conflicts=None):
    if conflicts is None:
        conflicts = find_conflicts(decisions)
    kept, deleted = index_decisions(decisions)

    emit(MSG_ANALYSIS_HEADER)
    emit(MSG_ANALYSIS_TOTALS, decisions=len(decisions), keep=len(kept), delete=len(deleted))
    emit(MSG_ANALYSIS_COUNT, count=len(conflicts))

    for conflict in conflicts:
        emit(MSG_CONFLICT_FILE, path=conflict.file)
        emit(MSG_CONFLICT_KEPT_IN, groups=", ".join(conflict.kept_in_groups))
        emit(MSG_CONFLICT_DELETED_IN, groups=", ".join(conflict.deleted_in_groups))
        for d in decisions:
            if conflict.file not in d.files:
                continue
            emit(
                MSG_CONFLICT_DECISION,
                group=d.group_id,
                type=d.decision_type,
                rule=d.rule_applied,
                keep=", ".join(d.keep),
                delete=", ".join(d.delete),
            )

    multiple = find_multiple_deletes(decisions)
    if multiple:
        emit(MSG_MULTI_DELETE_HEADER, count=len(multiple))
        for path, groups in multiple.items():
            emit(MSG_MULTI_DELETE_FILE, path=path, groups=", ".join(groups))

    return conflicts


def report_resolutions(before, after, resolutions):
    for resolution in resolutions:
        emit(MSG_RESOLVE_GROUP, count=len(resolution.keep) + len(resolution.delete))
        for path in resolution.keep:
            emit(MSG_RESOLVE_KEEP, path=path)
        for path in resolution.delete:
            emit(MSG_RESOLVE_DELETE, path=path)
        emit(MSG_RESOLVE_AFFECTS, groups=", ".join(resolution.involved_groups))

    removed = sum(len(r.involved_groups) for r in resolutions)
    emit(
        MSG_RESOLVE_SUMMARY,
        before=len(before),
        removed=removed,
        added=len(after) - len(before) + removed,
        after=len(after),
        different=sum(1 for r in resolutions if r.not_duplicates),
    )
