"""
parser.py

Filename analysis for metadata repair: a cleaned search query plus a
possible artist and title when the name looks like "Artist - Title" or
"Title by Artist".
"""

import os
import re
from dataclasses import dataclass
from typing import Optional

NOISE_PATTERNS = [
    re.compile(r"\[.*?\]"),
    re.compile(r"\(.*?\)"),
    re.compile(r"\{.*?\}"),
    re.compile(r"\d{3,4}p", re.IGNORECASE),
    re.compile(r"\b(mp3|mp4|m4a|flac|wav|aac|ogg|wma)\b", re.IGNORECASE),
    re.compile(r"\b(320|256|192|128)\s*k(bps)?\b", re.IGNORECASE),
    re.compile(r"\b(hq|hd|official|audio|video|lyrics?|lyric)\b", re.IGNORECASE),
    re.compile(r"\b(www|http|https|com)\b", re.IGNORECASE),
    re.compile(r"[_\-]+"),
]

TRACK_NUMBER = re.compile(r"^\d{1,3}(\s*[.\-]\s*|\s+)")

SEPARATORS = (" - ", " – ", " — ", " _ ", " by ")


def strip_brackets(value):
    for pattern in NOISE_PATTERNS[:3]:
        value = pattern.sub(" ", value)
    return re.sub(r"\s+", " ", value).strip()


@dataclass
class ParsedFilename:
    search_query: str
    possible_artist: Optional[str] = None
    possible_title: Optional[str] = None


def parse_filename(path) -> ParsedFilename:
    filename = os.path.splitext(os.path.basename(str(path)))[0]
    cleaned = TRACK_NUMBER.sub("", filename, count=1)

    artist = None
    title = None

    lowered = cleaned.lower()
    for sep in SEPARATORS:
        index = lowered.find(sep)
        if index == -1:
            continue
        left = cleaned[:index].strip()
        right = cleaned[index + len(sep):].strip()
        if sep == " by ":
            title, artist = left, right
        else:
            artist, title = left, right
        break

    if title:
        title = strip_brackets(title)

    for pattern in NOISE_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)

    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    return ParsedFilename(
        search_query=cleaned or filename,
        possible_artist=artist or None,
        possible_title=title or None,
    )
