"""
metadata_fixer.py

Interactive repair of files missing artist or title.

Suggestions come from the inference command, which is slow, so up to
PARALLEL_FETCHES upcoming files are analysed in background threads while
the user answers for the current one. The cursor (index of the next file)
is checkpointed after every file together with the cache; quitting or
Ctrl+C keeps the cursor on the file being shown.
"""

import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List

from audiodedupe.i18n import emit, render, warn
from audiodedupe.inference import (
    InferenceErr,
    fallback_from_filename,
    from_cache,
    infer_metadata,
)
from audiodedupe.models import AudioRecord, FixState
from audiodedupe.parser import parse_filename
from audiodedupe.prompts import REPAIR_FIELDS, prompt_for_metadata
from audiodedupe.search import search_recordings
from audiodedupe.storage import utcnow
from audiodedupe.writer import TagWriteError, apply_to_record, write_tags

logger = logging.getLogger(__name__)

# ================= I18N MESSAGE KEYS =================

MSG_FIX_FOUND = "FIX_FOUND"
MSG_FIX_RESUMING = "FIX_RESUMING"
MSG_FIX_QUIT_HINT = "FIX_QUIT_HINT"
MSG_FIX_FILE = "FIX_FILE"
MSG_FIX_MISSING = "FIX_MISSING"
MSG_FIX_INFER_FAILED = "FIX_INFER_FAILED"
MSG_FIX_WRITTEN = "FIX_WRITTEN"
MSG_FIX_WRITE_FAILED = "FIX_WRITE_FAILED"
MSG_FIX_SAVED = "FIX_SAVED"
MSG_FIX_DONE_FIXED = "FIX_DONE_FIXED"
MSG_FIX_DONE_SKIPPED = "FIX_DONE_SKIPPED"
MSG_FIX_DONE_REMAINING = "FIX_DONE_REMAINING"

# ====================================================

PARALLEL_FETCHES = 5


@dataclass
class Fetched:
    inferred: object
    missing_fields: List[str]


@dataclass
class FixResult:
    state: FixState
    updated: Dict[str, AudioRecord] = field(default_factory=dict)
    quit: bool = False


def is_blank(value):
    return value is None or str(value).strip() == ""


def find_files_with_missing_metadata(store):
    return [r for r in store.values() if is_blank(r.artist) or is_blank(r.title)]


def missing_fields(record: AudioRecord):
    return [name for name in REPAIR_FIELDS if is_blank(getattr(record, name))]


def make_fetcher(command, cache=None, search=search_recordings, runner=subprocess.run):
    """
    Build the per-file analysis: filename parsing, search context and
    inference, falling back to the filename when inference fails. A
    filename already answered in `cache` skips search and inference.
    """
    def fetch(record: AudioRecord):
        missing = missing_fields(record)
        entry = cache.get(record.filename) if cache is not None else None
        if entry:
            outcome = from_cache(entry)
        else:
            parsed = parse_filename(record.path)
            results = search(parsed.search_query)
            outcome = infer_metadata(parsed, results, missing, command, runner=runner)
        if isinstance(outcome, InferenceErr):
            warn(MSG_FIX_INFER_FAILED, path=record.path, reason=outcome.reason)
            return Fetched(fallback_from_filename(parsed), missing)
        return Fetched(outcome.metadata, missing)

    return fetch


def existing_values(record: AudioRecord):
    return {name: getattr(record, name) for name in REPAIR_FIELDS}


def fix_metadata_interactive(files, state: FixState, cache, fetch, ask=input,
                             write=write_tags, checkpoint=None):
    """
    Walk `files` from `state.last_processed_index`. `checkpoint(result)`
    runs after every handled file and once at the end.

    The persisted cursor counts the files already passed that still lack
    tags (skipped or failed); fixed files leave the list on the next load,
    so they do not move it.
    """
    result = FixResult(state=state)
    start = state.last_processed_index = min(state.last_processed_index, len(files))
    total = len(files)
    fixed_now = 0

    emit(MSG_FIX_FOUND, count=total)
    if start > 0:
        emit(MSG_FIX_RESUMING, index=start + 1)
    emit(MSG_FIX_QUIT_HINT)

    def save():
        if checkpoint:
            checkpoint(result)

    pool = ThreadPoolExecutor(max_workers=PARALLEL_FETCHES)
    futures = {}

    def prefetch(first):
        for index in range(first, min(first + PARALLEL_FETCHES, total)):
            if index not in futures:
                futures[index] = pool.submit(fetch, files[index])

    try:
        for i in range(start, total):
            prefetch(i)
            record = files[i]

            emit(MSG_FIX_FILE, index=i + 1, total=total, remaining=total - i)

            try:
                fetched = futures.pop(i).result()
            except Exception:
                # Inference already degrades to the filename; anything
                # else (parser, search) must not end the session.
                logger.exception("analysis failed for %s", record.path)
                fetched = Fetched(fallback_from_filename(parse_filename(record.path)),
                                  missing_fields(record))

            emit(MSG_FIX_MISSING, fields=", ".join(fetched.missing_fields))

            action, values = prompt_for_metadata(
                ask,
                record.filename,
                fetched.inferred,
                fetched.missing_fields,
                existing_values(record),
                cache,
            )

            if action == "quit":
                result.quit = True
                emit(MSG_FIX_SAVED)
                break

            if action == "skip":
                state.skipped_count += 1
                state.last_processed_index += 1
                save()
                continue

            values = {k: v for k, v in values.items() if not is_blank(v)}
            try:
                write(record.path, values)
            except TagWriteError as e:
                warn(MSG_FIX_WRITE_FAILED, path=record.path, error=render(e.args[0]))
                state.last_processed_index += 1
            else:
                result.updated[record.path] = apply_to_record(record, values)
                cache.set(
                    record.filename,
                    artist=values.get("artist"),
                    title=values.get("title"),
                    genre=values.get("genre"),
                    album=values.get("album"),
                )
                state.fixed_count += 1
                fixed_now += 1
                emit(MSG_FIX_WRITTEN, path=record.path)

            save()

    except KeyboardInterrupt:
        result.quit = True
        emit(MSG_FIX_SAVED)
    finally:
        for future in futures.values():
            future.cancel()
        pool.shutdown(wait=False)

    save()

    emit(MSG_FIX_DONE_FIXED, count=state.fixed_count)
    emit(MSG_FIX_DONE_SKIPPED, count=state.skipped_count)
    emit(MSG_FIX_DONE_REMAINING, count=total - fixed_now - state.last_processed_index)
    return result


def new_fix_state(existing=None):
    if existing is not None:
        existing.resumed_at = utcnow()
        return existing
    return FixState(started_at=utcnow())
