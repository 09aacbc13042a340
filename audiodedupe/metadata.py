"""
metadata.py

Metadata extraction and per-file quality measures.

Extraction reads tags through Mutagen's easy interface and stream
properties from `.info`. A file Mutagen cannot parse is an extraction
failure: the caller records it and moves on.
"""

import os
import re
from pathlib import Path

from mutagen import File as MutagenFile
from mutagen import MutagenError

from audiodedupe.models import LOSSLESS_FORMATS, TAG_FIELDS, AudioRecord
from audiodedupe.storage import utcnow


def is_lossless(fmt):
    return (fmt or "").lower() in LOSSLESS_FORMATS


def first_tag(audio, key):
    values = audio.get(key) if audio is not None and audio.tags is not None else None
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


def parse_number(raw):
    """'3/12' -> 3, '2004-05-01' -> 2004; None when no leading digits."""
    if not raw:
        return None
    m = re.match(r"\s*(\d+)", str(raw))
    return int(m.group(1)) if m else None


def extract_metadata(path):
    """
    Return an AudioRecord for `path`, or None when the file cannot be read.
    """
    p = Path(path)
    try:
        size = p.stat().st_size
        audio = MutagenFile(p, easy=True)
    except (OSError, MutagenError, ValueError):
        return None

    if audio is None:
        return None

    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    bitrate = getattr(info, "bitrate", None)
    fmt = p.suffix[1:].lower()

    return AudioRecord(
        path=str(path),
        filename=p.name,
        size=size,
        duration=float(length) if length else None,
        bitrate=round(bitrate / 1000) if bitrate else None,
        sample_rate=getattr(info, "sample_rate", None) or None,
        bit_depth=getattr(info, "bits_per_sample", None) or None,
        title=first_tag(audio, "title"),
        artist=first_tag(audio, "artist"),
        album=first_tag(audio, "album"),
        year=parse_number(first_tag(audio, "date")),
        track_number=parse_number(first_tag(audio, "tracknumber")),
        genre=first_tag(audio, "genre"),
        format=fmt,
        lossless=is_lossless(fmt),
        scanned_at=utcnow(),
    )


# ================= QUALITY =================

def count_filled_tags(record: AudioRecord) -> int:
    fields = (
        record.title,
        record.artist,
        record.album,
        record.year,
        record.track_number,
        record.genre,
    )
    return sum(1 for f in fields if f)


def metadata_count(record: AudioRecord) -> int:
    """Filled fields among title, artist, album, genre and year."""
    return sum(1 for name in TAG_FIELDS if getattr(record, name) not in (None, ""))


def quality_score(record: AudioRecord) -> float:
    score = 0
    if record.lossless:
        score += 1000
    if record.bitrate:
        score += record.bitrate
    if record.sample_rate:
        score += record.sample_rate / 100
    if record.bit_depth:
        score += record.bit_depth * 10
    return score


def keeper_score(record: AudioRecord) -> float:
    return count_filled_tags(record) * 1000 + quality_score(record)


# ================= DISPLAY =================

def format_file_size(size):
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_duration(seconds):
    if seconds is None:
        return "unknown"
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def is_under(path, directory):
    """True when `path` lives inside `directory` (or is it)."""
    if not directory:
        return False
    directory = directory.rstrip(os.sep) or os.sep
    if path == directory:
        return True
    prefix = directory if directory.endswith(os.sep) else directory + os.sep
    return path.startswith(prefix)
