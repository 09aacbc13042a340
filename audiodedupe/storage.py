"""
storage.py

Persistence of pipeline state.

- scan results: JSON Lines, one AudioRecord per line, appended as soon as
  a file is extracted. Loading is lenient: an unreadable line is skipped
  with a warning and the last record written for a path wins.
- every other document (duplicates, decisions, checkpoints, logs) is a
  single JSON document replaced atomically (temp file + os.replace), so a
  crash never leaves a half-written decision set behind.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from audiodedupe.i18n import warn
from audiodedupe.models import (
    AudioRecord,
    Decision,
    DecisionsFile,
    DuplicateGroup,
    DuplicatesFile,
    FixState,
    ScanState,
)

# ================= I18N MESSAGE KEYS =================

MSG_CORRUPT_LINE = "STORE_CORRUPT_LINE"
MSG_CORRUPT_DOCUMENT = "STORE_CORRUPT_DOCUMENT"
MSG_CORRUPT_ENTRY = "STORE_CORRUPT_ENTRY"

# ====================================================


def utcnow():
    return datetime.now(timezone.utc).isoformat()


def ensure_parent(path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)


# ================= JSON DOCUMENTS =================

def write_json(path, data):
    """Replace `path` with `data` in one step."""
    path = Path(path)
    ensure_parent(path)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def read_json(path, default=None):
    path = Path(path)
    if not path.exists():
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        warn(MSG_CORRUPT_DOCUMENT, path=str(path), error=str(e))
        return default


# ================= METADATA STORE =================

def load_store(path):
    """
    Load scan results into a path -> AudioRecord mapping.
    """
    store = {}
    path = Path(path)
    if not path.exists():
        return store

    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = AudioRecord.from_dict(json.loads(line))
            except (ValueError, KeyError, TypeError, AttributeError):
                warn(MSG_CORRUPT_LINE, path=str(path), line=lineno)
                continue
            store[record.path] = record

    return store


def append_record(path, record: AudioRecord):
    path = Path(path)
    ensure_parent(path)
    line = json.dumps(record.to_dict(), ensure_ascii=False) + "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(line)
        f.flush()


def save_store(path, store):
    """Rewrite the whole store (used after metadata repair)."""
    path = Path(path)
    ensure_parent(path)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for record in store.values():
                f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def clear_store(path):
    path = Path(path)
    ensure_parent(path)
    path.write_text("", encoding="utf-8")


# ================= DUPLICATES / DECISIONS =================

def save_duplicates(path, groups):
    doc = DuplicatesFile(generated_at=utcnow(), groups=list(groups))
    write_json(path, doc.to_dict())
    return doc


def load_duplicates(path):
    data = read_json(path)
    if not data:
        return None
    groups = []
    for entry in data.get("groups", []):
        try:
            groups.append(DuplicateGroup.from_dict(entry))
        except (KeyError, TypeError):
            warn(MSG_CORRUPT_ENTRY, path=str(path), entry=str(entry)[:80])
    return DuplicatesFile(generated_at=data.get("generatedAt", ""), groups=groups)


def decisions_from_document(data, source="decisions"):
    decisions = []
    for entry in (data or {}).get("decisions", []):
        try:
            decisions.append(Decision.from_dict(entry))
        except (KeyError, TypeError, AttributeError):
            warn(MSG_CORRUPT_ENTRY, path=source, entry=str(entry)[:80])
    return decisions


def load_decisions(path):
    data = read_json(path)
    if not data:
        return DecisionsFile(reviewed_at="", decisions=[])
    return DecisionsFile(
        reviewed_at=data.get("reviewedAt", ""),
        decisions=decisions_from_document(data, str(path)),
    )


def save_decisions(path, decisions):
    doc = DecisionsFile(reviewed_at=utcnow(), decisions=list(decisions))
    write_json(path, doc.to_dict())
    return doc


# ================= CHECKPOINTS =================

def load_scan_state(path):
    data = read_json(path)
    if not data:
        return None
    try:
        return ScanState.from_dict(data)
    except KeyError:
        return None


def save_scan_state(path, state: ScanState):
    write_json(path, state.to_dict())


def load_fix_state(path):
    data = read_json(path)
    if not data:
        return None
    try:
        return FixState.from_dict(data)
    except KeyError:
        return None


def save_fix_state(path, state: FixState):
    write_json(path, state.to_dict())


def clear_fix_state(path):
    write_json(path, {})
