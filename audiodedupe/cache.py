"""
cache.py

Inference cache for metadata repair.

Answers are keyed by a normalized filename, so "01 - Song.mp3" and
"01_Song.flac" share one entry. The cache also remembers recently used
artists and genres (offered as quick picks) and recently used
directories. It is passed explicitly to whoever needs it and persisted
as one JSON document.
"""

import re
import time

from audiodedupe.storage import read_json, write_json

MAX_RECENT = 20
MAX_RECENT_DIRECTORIES = 10


def normalize_key(filename):
    key = filename.lower()
    key = re.sub(r"\.[^.]+$", "", key)
    key = re.sub(r"[^a-z0-9]", " ", key)
    key = re.sub(r"\s+", " ", key)
    return key.strip()


def push_recent(items, value, limit):
    if value in items:
        items.remove(value)
    items.insert(0, value)
    del items[limit:]


class InferenceCache:
    def __init__(self, entries=None, recent_artists=None, recent_genres=None,
                 recent_directories=None):
        self.entries = entries or {}
        self.recent_artists = recent_artists or []
        self.recent_genres = recent_genres or []
        self.recent_directories = recent_directories or []

    @classmethod
    def load(cls, path):
        data = read_json(path, default={}) or {}
        return cls(
            entries=dict(data.get("entries", {})),
            recent_artists=list(data.get("recentArtists", [])),
            recent_genres=list(data.get("recentGenres", [])),
            recent_directories=list(data.get("recentDirectories", [])),
        )

    def save(self, path):
        write_json(path, self.to_dict())

    def to_dict(self):
        return {
            "entries": self.entries,
            "recentArtists": self.recent_artists,
            "recentGenres": self.recent_genres,
            "recentDirectories": self.recent_directories,
        }

    def get(self, filename):
        return self.entries.get(normalize_key(filename))

    def set(self, filename, artist=None, title=None, genre=None, album=None):
        self.entries[normalize_key(filename)] = {
            "artist": artist,
            "title": title,
            "genre": genre,
            "album": album,
            "usedAt": int(time.time() * 1000),
        }
        # Existing entries keep their position; new ones go first.
        if genre and genre not in self.recent_genres:
            push_recent(self.recent_genres, genre, MAX_RECENT)
        if artist and artist not in self.recent_artists:
            push_recent(self.recent_artists, artist, MAX_RECENT)

    def add_recent_directory(self, directory):
        push_recent(self.recent_directories, directory, MAX_RECENT_DIRECTORIES)
