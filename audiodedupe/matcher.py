"""
matcher.py

Pairwise similarity between two scanned files.

Each signal is evaluated independently and adds a fixed number of
points when satisfied:

    duration            40   durations within the tolerance
    artist+title        30   normalized tags equal
    filename            20   parsed "Artist - Title", normalized name,
                             or edit-distance similarity >= 0.8
    album               10   normalized album equal
    different-location  10   files live under different root folders

A missing field never raises; the signal is simply not satisfied.
The comparison is symmetric and has no side effects.
"""

import re
import unicodedata
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from audiodedupe.models import AudioRecord, MatchResult

DURATION_POINTS = 40
ARTIST_TITLE_POINTS = 30
FILENAME_POINTS = 20
ALBUM_POINTS = 10
LOCATION_POINTS = 10

FILENAME_SIMILARITY = 0.8

FILENAME_SEPARATORS = (" - ", " – ", " — ", "_-_", " _ ")


@dataclass(frozen=True)
class MatcherSettings:
    duration_tolerance: float = 5
    score_threshold: int = 40

    @classmethod
    def from_config(cls, cfg):
        return cls(
            duration_tolerance=cfg.get("durationToleranceSeconds", 5),
            score_threshold=cfg.get("duplicateScoreThreshold", 40),
        )


# ================= NORMALIZATION =================

def normalize_string(s):
    """
    Lowercase, drop accents and punctuation, collapse whitespace.
    """
    if not s:
        return ""
    s = unicodedata.normalize("NFKD", str(s))
    s = "".join(c for c in s if not unicodedata.combining(c))
    s = s.lower()
    s = re.sub(r"[^\w\s]", "", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def strip_extension(filename):
    return re.sub(r"\.[^.]+$", "", filename)


def normalize_filename(filename):
    name = strip_extension(filename)
    name = re.sub(r"^(\d{1,3}[.\-\s_])+", "", name)
    name = re.sub(r"\(\d+\)$", "", name)
    name = re.sub(r"\[\d+\]$", "", name)
    name = re.sub(r"\b\d{3,4}k(bps)?\b", "", name, flags=re.IGNORECASE)
    name = re.sub(r"\b(128|192|256|320)\b", "", name)
    name = re.sub(r"\[.*?\]", "", name)
    name = re.sub(r"\(.*?\)", "", name)
    return normalize_string(name)


def split_artist_title(filename):
    """Split "Artist - Title.ext" on the first known separator."""
    name = strip_extension(filename)
    for sep in FILENAME_SEPARATORS:
        index = name.find(sep)
        if index == -1:
            continue
        return name[:index].strip(), name[index + len(sep):].strip()
    return None, None


def root_folder(path):
    """
    Top-level location of a file: the volume under /Volumes, the user
    folder (plus one level) under /Users, otherwise the first segment.
    """
    parts = [p for p in path.split("/") if p]

    if len(parts) < 2:
        return path

    if parts[0] == "Volumes":
        return f"/{parts[0]}/{parts[1]}"

    if parts[0] == "Users" and len(parts) >= 3:
        return f"/{parts[0]}/{parts[1]}/{parts[2]}"

    return f"/{parts[0]}"


# ================= SIGNALS =================

def duration_match(a: AudioRecord, b: AudioRecord, tolerance) -> bool:
    if a.duration is None or b.duration is None:
        return False
    return abs(a.duration - b.duration) <= tolerance


def artist_title_match(a: AudioRecord, b: AudioRecord) -> bool:
    if not (a.artist and b.artist and a.title and b.title):
        return False
    return (
        normalize_string(a.artist) == normalize_string(b.artist)
        and normalize_string(a.title) == normalize_string(b.title)
    )


def filename_match(a: AudioRecord, b: AudioRecord) -> bool:
    artist_a, title_a = split_artist_title(a.filename)
    artist_b, title_b = split_artist_title(b.filename)

    if artist_a and artist_b and title_a and title_b:
        if (
            normalize_string(artist_a) == normalize_string(artist_b)
            and normalize_string(title_a) == normalize_string(title_b)
        ):
            return True

    name_a = normalize_filename(a.filename)
    name_b = normalize_filename(b.filename)

    if name_a == name_b:
        return True

    if max(len(name_a), len(name_b)) == 0:
        return False

    return Levenshtein.normalized_similarity(name_a, name_b) >= FILENAME_SIMILARITY


def album_match(a: AudioRecord, b: AudioRecord) -> bool:
    if not a.album or not b.album:
        return False
    return normalize_string(a.album) == normalize_string(b.album)


def different_location(a: AudioRecord, b: AudioRecord) -> bool:
    return root_folder(a.path) != root_folder(b.path)


def compare_files(a: AudioRecord, b: AudioRecord, settings: MatcherSettings) -> MatchResult:
    result = MatchResult()

    if duration_match(a, b, settings.duration_tolerance):
        result.score += DURATION_POINTS
        result.reasons.append("duration")

    if artist_title_match(a, b):
        result.score += ARTIST_TITLE_POINTS
        result.reasons.append("artist+title")

    if filename_match(a, b):
        result.score += FILENAME_POINTS
        result.reasons.append("filename")

    if album_match(a, b):
        result.score += ALBUM_POINTS
        result.reasons.append("album")

    if different_location(a, b):
        result.score += LOCATION_POINTS
        result.reasons.append("different-location")

    return result
