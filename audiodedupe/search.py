"""
search.py

MusicBrainz text search used as context for metadata inference.

Suggestions only, never authoritative: any failure (network, rate limit,
unexpected payload) yields an empty result list.
"""

import logging
from dataclasses import dataclass

import musicbrainzngs

from audiodedupe import __version__

log = logging.getLogger(__name__)

musicbrainzngs.set_useragent(
    "audiodedupe",
    __version__,
    "https://musicbrainz.org/doc/MusicBrainz_API",
)

MAX_RESULTS = 5


@dataclass
class SearchResult:
    title: str
    artist: str = ""
    album: str = ""
    score: int = 0

    def describe(self):
        parts = [self.title]
        if self.artist:
            parts.append(f"by {self.artist}")
        if self.album:
            parts.append(f"({self.album})")
        return " ".join(parts)


def _artist_name(rec):
    credits = rec.get("artist-credit") or []
    for credit in credits:
        if isinstance(credit, dict) and "artist" in credit:
            return credit["artist"].get("name", "")
    return ""


def search_recordings(query, limit=MAX_RESULTS):
    if not query:
        return []
    try:
        result = musicbrainzngs.search_recordings(query=query, limit=limit)
    except musicbrainzngs.WebServiceError:
        log.warning("MusicBrainz search failed for %r", query, exc_info=True)
        return []

    out = []
    for rec in result.get("recording-list", [])[:limit]:
        releases = rec.get("release-list") or []
        out.append(SearchResult(
            title=rec.get("title", ""),
            artist=_artist_name(rec),
            album=releases[0].get("title", "") if releases else "",
            score=int(rec.get("ext:score", 0) or 0),
        ))
    return out
