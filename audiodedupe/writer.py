"""
writer.py

Tag writing through Mutagen's easy interface.

Used by the metadata repair pass and by execution when a keeper takes
tags from another copy. Only non-empty values are written; `year` is
stored under the easy `date` key.
"""

from dataclasses import replace

from mutagen import File as MutagenFile
from mutagen import MutagenError

from audiodedupe.i18n import msg
from audiodedupe.metadata import parse_number
from audiodedupe.models import AudioRecord

# ================= I18N MESSAGE KEYS =================

MSG_WRITE_UNSUPPORTED = "WRITE_UNSUPPORTED"
MSG_WRITE_FAILED = "WRITE_FAILED"

# ====================================================

EASY_KEYS = {
    "artist": "artist",
    "title": "title",
    "album": "album",
    "genre": "genre",
    "year": "date",
}


class TagWriteError(RuntimeError):
    pass


def write_tags(path, values):
    """
    Write `values` (field -> value, fields from EASY_KEYS) to `path`.
    Raises TagWriteError carrying a message payload on failure.
    """
    values = {k: v for k, v in values.items() if k in EASY_KEYS and v not in (None, "")}
    if not values:
        return

    try:
        audio = MutagenFile(path, easy=True)
        if audio is None:
            raise TagWriteError(msg(MSG_WRITE_UNSUPPORTED, path=str(path)))
        if audio.tags is None:
            audio.add_tags()
        for name, value in values.items():
            audio[EASY_KEYS[name]] = [str(value)]
        audio.save()
    except (OSError, MutagenError, ValueError, KeyError) as e:
        raise TagWriteError(msg(MSG_WRITE_FAILED, path=str(path), error=str(e))) from e


def apply_to_record(record: AudioRecord, values):
    """Copy of `record` with the written tag values."""
    changes = {k: v for k, v in values.items() if k in EASY_KEYS and v not in (None, "")}
    if "year" in changes:
        changes["year"] = parse_number(changes["year"])
    return replace(record, **changes)
