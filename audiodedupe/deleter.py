"""
deleter.py

Execution of a decision set (the only stage that touches user files).

Per decision, in order:
- copy the keeper into the destination directory when flagged
- apply the chosen metadata to the keeper (or its copy)
- remove every file in `delete`

Removal is soft first: the file is moved into the trash directory under a
collision-safe name. When that fails the file is unlinked and the entry is
logged with method "permanent". Per-file failures are logged and the
batch continues; the deletion log records method, success and error for
every attempted path.
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from tqdm import tqdm

from audiodedupe.i18n import emit, msg, render, warn
from audiodedupe.models import TAG_FIELDS, DeletionLog, DeletionLogEntry
from audiodedupe.storage import ensure_parent, utcnow
from audiodedupe.writer import TagWriteError, apply_to_record, write_tags


# ================= I18N MESSAGE KEYS =================

MSG_EXEC_START = "EXEC_START"
MSG_EXEC_FILE = "EXEC_FILE"
MSG_EXEC_TRASHED = "EXEC_TRASHED"
MSG_EXEC_PERMANENT = "EXEC_PERMANENT"
MSG_EXEC_FAILED = "EXEC_FAILED"
MSG_EXEC_DRY_RUN = "EXEC_DRY_RUN"
MSG_EXEC_SOURCE_MISSING = "EXEC_SOURCE_MISSING"
MSG_TRASH_FAILED = "EXEC_TRASH_FAILED"
MSG_COPY_DONE = "EXEC_COPY_DONE"
MSG_COPY_FAILED = "EXEC_COPY_FAILED"
MSG_COPY_NO_DESTINATION = "EXEC_COPY_NO_DESTINATION"
MSG_MERGE_DONE = "EXEC_MERGE_DONE"
MSG_MERGE_FAILED = "EXEC_MERGE_FAILED"
MSG_KEEP_LOSERS = "EXEC_KEEP_LOSERS"

MSG_DELETE_SUMMARY_HEADER = "DELETE_SUMMARY_HEADER"
MSG_DELETE_SUMMARY_TOTAL = "DELETE_SUMMARY_TOTAL"
MSG_DELETE_SUMMARY_TRASHED = "DELETE_SUMMARY_TRASHED"
MSG_DELETE_SUMMARY_PERMANENT = "DELETE_SUMMARY_PERMANENT"
MSG_DELETE_SUMMARY_FAILED = "DELETE_SUMMARY_FAILED"
MSG_DELETE_SUMMARY_FAILED_ITEM = "DELETE_SUMMARY_FAILED_ITEM"

# ====================================================


def maybe_progress(it, desc=None, enable=False):
    if enable:
        return tqdm(it, desc=desc)
    return it


# ================= FILE PRIMITIVES =================

def unique_destination(directory: Path, name: str) -> Path:
    """`directory/name`, or `stem (n).ext` for the first free n."""
    candidate = directory / name
    if not candidate.exists():
        return candidate
    stem, suffix = os.path.splitext(name)
    n = 1
    while True:
        candidate = directory / f"{stem} ({n}){suffix}"
        if not candidate.exists():
            return candidate
        n += 1


def move_to_trash(path, trash_root) -> Path:
    src = Path(path)
    trash_root = Path(trash_root)
    trash_root.mkdir(parents=True, exist_ok=True)
    dst = unique_destination(trash_root, src.name)
    shutil.move(str(src), str(dst))
    return dst


def delete_file(path, trash_root) -> DeletionLogEntry:
    if not os.path.lexists(path):
        return DeletionLogEntry(
            path=path,
            deleted_at=utcnow(),
            method="trash",
            success=False,
            error=render(msg(MSG_EXEC_SOURCE_MISSING, path=path)),
        )

    try:
        move_to_trash(path, trash_root)
        return DeletionLogEntry(path=path, deleted_at=utcnow(), method="trash", success=True)
    except OSError as e:
        warn(MSG_TRASH_FAILED, path=path, error=str(e))

    try:
        os.unlink(path)
        return DeletionLogEntry(path=path, deleted_at=utcnow(), method="permanent", success=True)
    except OSError as e:
        return DeletionLogEntry(
            path=path,
            deleted_at=utcnow(),
            method="permanent",
            success=False,
            error=str(e),
        )


def copy_to_destination(path, destination_dir) -> Path:
    src = Path(path)
    dst = unique_destination(Path(destination_dir), src.name)
    ensure_parent(dst)
    shutil.copy2(str(src), str(dst))
    return dst


# ================= METADATA MERGE =================

def merge_values(decision, store):
    """
    Tag values the keeper should receive: field -> value taken from the
    chosen source file. Fields the keeper already carries are left out.
    """
    if not decision.keep or decision.metadata_source is None:
        return {}

    keeper_path = decision.keep[0]
    keeper = store.get(keeper_path)

    source = decision.metadata_source
    if isinstance(source, str):
        if source == keeper_path:
            return {}
        source = {name: source for name in TAG_FIELDS}

    values = {}
    for name, source_path in source.items():
        if name not in TAG_FIELDS or source_path == keeper_path:
            continue
        record = store.get(source_path)
        if record is None:
            continue
        value = getattr(record, name)
        if value in (None, ""):
            continue
        if keeper is not None and getattr(keeper, name) == value:
            continue
        values[name] = value
    return values


# ================= SUMMARY =================

@dataclass
class DeletionSummary:
    total_files: int = 0
    total_size: int = 0
    auto_count: int = 0
    manual_count: int = 0
    files_to_delete: List[str] = field(default_factory=list)


def calculate_deletion_summary(decisions, store) -> DeletionSummary:
    summary = DeletionSummary()
    for d in decisions:
        for path in d.delete:
            summary.files_to_delete.append(path)
            record = store.get(path)
            if record is not None:
                summary.total_size += record.size
            if d.decision_type == "auto":
                summary.auto_count += 1
            else:
                summary.manual_count += 1
    summary.total_files = len(summary.files_to_delete)
    return summary


def summarize_deletions(log: DeletionLog):
    successful = [e for e in log.entries if e.success]
    failed = [e for e in log.entries if not e.success]

    emit(MSG_DELETE_SUMMARY_HEADER)
    emit(MSG_DELETE_SUMMARY_TOTAL, count=len(log.entries))
    emit(MSG_DELETE_SUMMARY_TRASHED, count=sum(1 for e in successful if e.method == "trash"))

    permanent = sum(1 for e in successful if e.method == "permanent")
    if permanent:
        emit(MSG_DELETE_SUMMARY_PERMANENT, count=permanent)

    if failed:
        emit(MSG_DELETE_SUMMARY_FAILED, count=len(failed))
        for entry in failed:
            emit(MSG_DELETE_SUMMARY_FAILED_ITEM, path=entry.path, error=entry.error)


# ================= EXECUTION =================

def prepare_keeper(decision, store, destination_dir, dry_run=False):
    """
    Copy and retag the keeper of `decision`. Returns False when the copy
    failed; the decision's deletions must then not run.
    """
    if not decision.keep:
        return True

    keeper = decision.keep[0]
    target = keeper

    if decision.copy_to_destination:
        if not destination_dir:
            warn(MSG_COPY_NO_DESTINATION, group=decision.group_id)
            return False
        if dry_run:
            emit(MSG_EXEC_DRY_RUN, action="copy", path=keeper)
        else:
            try:
                target = str(copy_to_destination(keeper, destination_dir))
                emit(MSG_COPY_DONE, src=keeper, dst=target)
            except OSError as e:
                warn(MSG_COPY_FAILED, path=keeper, error=str(e))
                return False

    values = merge_values(decision, store)
    if not values:
        return True

    if dry_run:
        emit(MSG_EXEC_DRY_RUN, action="retag", path=target)
        return True

    try:
        write_tags(target, values)
    except TagWriteError as e:
        # Keeper stays usable with its old tags.
        warn(MSG_MERGE_FAILED, path=target, error=render(e.args[0]))
        return True

    if target == keeper and keeper in store:
        store[keeper] = apply_to_record(store[keeper], values)
    emit(MSG_MERGE_DONE, path=target, fields=", ".join(sorted(values)))
    return True


def execute_decisions(decisions, store, trash_root, destination_dir="",
                      dry_run=False, progress=False) -> DeletionLog:
    """
    Apply `decisions`. `store` (path -> AudioRecord) supplies the tag
    values for metadata merges and is updated for retagged keepers.
    """
    log = DeletionLog(executed_at=utcnow())
    total = sum(len(d.delete) for d in decisions)
    emit(MSG_EXEC_START, count=total)

    done = set()
    position = 0

    for decision in maybe_progress(decisions, "Executing", progress):
        if not prepare_keeper(decision, store, destination_dir, dry_run):
            warn(MSG_KEEP_LOSERS, group=decision.group_id)
            continue

        for path in decision.delete:
            position += 1
            if path in done:
                continue
            done.add(path)

            emit(MSG_EXEC_FILE, index=position, total=total, path=path)

            if dry_run:
                emit(MSG_EXEC_DRY_RUN, action="delete", path=path)
                continue

            entry = delete_file(path, trash_root)
            log.entries.append(entry)

            if not entry.success:
                emit(MSG_EXEC_FAILED, path=path, error=entry.error)
            elif entry.method == "trash":
                emit(MSG_EXEC_TRASHED, path=path)
            else:
                emit(MSG_EXEC_PERMANENT, path=path)

    return log
