"""
scanner.py

File discovery and metadata extraction.

Discovery walks every configured root with os.walk, prunes excluded
directories early and yields audio files whose extension is supported.

Exclusion patterns are globs matched against path components:
- a pattern without "/" matches any single component ("node_modules",
  "*.app")
- a pattern with "/" matches that run of consecutive components
  ("Library/Caches", "*.app/Contents")

Extraction appends each record to the store as soon as it is read, so an
interrupted scan loses at most the file in flight. A checkpoint is
written every CHECKPOINT_EVERY files.
"""

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase

from tqdm import tqdm

from audiodedupe.i18n import msg, warn
from audiodedupe.metadata import extract_metadata
from audiodedupe.models import ScanState
from audiodedupe.storage import append_record, save_scan_state

# ================= I18N MESSAGE KEYS =================

MSG_ROOT_MISSING = "SCAN_ROOT_MISSING"
MSG_NO_ROOTS = "SCAN_NO_ROOTS"
MSG_EXTRACT_FAILED = "SCAN_EXTRACT_FAILED"
MSG_WALK_ERROR = "SCAN_WALK_ERROR"

# ====================================================

CHECKPOINT_EVERY = 100


def maybe_progress(it, desc=None, enable=False, total=None):
    if enable:
        return tqdm(it, desc=desc, total=total)
    return it


# ================= EXCLUSIONS =================

def split_pattern(pattern):
    return [p for p in pattern.strip("/").split("/") if p]


def matches_exclusion(parts, pattern_parts):
    """True when `pattern_parts` matches a consecutive run of `parts`."""
    width = len(pattern_parts)
    if width == 0:
        return False
    for start in range(len(parts) - width + 1):
        window = parts[start:start + width]
        if all(fnmatchcase(part, pat) for part, pat in zip(window, pattern_parts)):
            return True
    return False


def is_excluded(path, patterns):
    parts = [p for p in str(path).split(os.sep) if p]
    return any(matches_exclusion(parts, split_pattern(p)) for p in patterns)


# ================= DISCOVERY =================

def normalize_extensions(extensions):
    return {"." + e.lower().lstrip(".") for e in extensions}


def existing_roots(roots):
    """Roots that exist; missing ones are warned. No root at all is fatal."""
    found = []
    for root in roots:
        if os.path.isdir(root):
            found.append(root)
        else:
            warn(MSG_ROOT_MISSING, path=root)
    if not found:
        raise SystemExit(msg(MSG_NO_ROOTS, roots=", ".join(roots)))
    return found


def list_audio_files(roots, extensions, exclude_patterns=()):
    """
    Yield absolute paths of supported audio files under `roots`, in walk
    order. A path reachable from two roots is yielded once.
    """
    wanted = normalize_extensions(extensions)
    seen = set()

    def on_error(e):
        warn(MSG_WALK_ERROR, path=getattr(e, "filename", ""), error=str(e))

    for root in existing_roots(roots):
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(
                d for d in dirnames
                if not is_excluded(os.path.join(dirpath, d), exclude_patterns)
            )
            for name in sorted(filenames):
                if os.path.splitext(name)[1].lower() not in wanted:
                    continue
                path = os.path.abspath(os.path.join(dirpath, name))
                if path in seen or is_excluded(path, exclude_patterns):
                    continue
                seen.add(path)
                yield path


# ================= EXTRACTION =================

@dataclass
class ScanResult:
    processed: int = 0
    errors: int = 0


def scan_files(paths, store, store_path, state: ScanState, state_path,
               extract=extract_metadata, progress=False):
    """
    Extract every path not yet in `store`, appending records to
    `store_path` and updating `store` in place.
    """
    result = ScanResult()
    pending = [p for p in paths if p not in store]

    for path in maybe_progress(pending, "Extracting metadata", progress, total=len(pending)):
        record = extract(path)
        if record is not None:
            append_record(store_path, record)
            store[path] = record
        else:
            warn(MSG_EXTRACT_FAILED, path=path)
            result.errors += 1

        result.processed += 1
        state.processed_count = len(store)
        state.last_processed_file = path

        if result.processed % CHECKPOINT_EVERY == 0:
            save_scan_state(state_path, state)

    save_scan_state(state_path, state)
    return result