"""
inference.py

Metadata suggestions from an external language-model command.

The command (DEDUPE_INFERENCE_CMD, default `claude -p`) receives a prompt
with the filename analysis and search context as its last argument and is
expected to answer with a JSON object. The answer is best effort: a
missing command, a non-zero exit or unparsable output is an
InferenceErr, and the caller decides what to do instead (usually
`fallback_from_filename`).
"""

import json
import re
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Union

from audiodedupe.i18n import text

# ================= I18N MESSAGE KEYS =================

MSG_INFER_FALLBACK_SOURCE = "INFER_FALLBACK_SOURCE"
MSG_INFER_CACHED_SOURCE = "INFER_CACHED_SOURCE"

# ====================================================

TIMEOUT_SECONDS = 120
CONFIDENCE_LEVELS = ("high", "medium", "low")

GENRE_HINT = (
    "Rock, Pop, Hip-Hop, R&B, Electronic, Jazz, Classical, Country, Metal, "
    "Indie, Folk, Blues, Soul, Funk, Reggae, Latin, World, Soundtrack, Ambient"
)

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass
class InferredMetadata:
    artist: Optional[str] = None
    title: Optional[str] = None
    genre: Optional[str] = None
    album: Optional[str] = None
    confidence: str = "low"
    source: str = ""

    @classmethod
    def from_dict(cls, data):
        def clean(value):
            if value is None:
                return None
            value = str(value).strip()
            if not value or value.lower() in ("null", "unknown"):
                return None
            return value

        confidence = str(data.get("confidence", "low")).lower()
        return cls(
            artist=clean(data.get("artist")),
            title=clean(data.get("title")),
            genre=clean(data.get("genre")),
            album=clean(data.get("album")),
            confidence=confidence if confidence in CONFIDENCE_LEVELS else "low",
            source=str(data.get("source") or ""),
        )


@dataclass
class InferenceOk:
    metadata: InferredMetadata


@dataclass
class InferenceErr:
    reason: str


InferenceResult = Union[InferenceOk, InferenceErr]


def build_prompt(parsed, search_results, missing_fields):
    if search_results:
        lines = "\n".join(f"{i}. {r.describe()}" for i, r in enumerate(search_results, start=1))
        context = f'MusicBrainz results for "{parsed.search_query}":\n{lines}'
    else:
        context = "No search results available."

    return f"""Analyze this music file and infer the missing metadata.

Filename analysis:
- Search query: "{parsed.search_query}"
- Possible artist from filename: {parsed.possible_artist or 'unknown'}
- Possible title from filename: {parsed.possible_title or 'unknown'}

{context}

Missing fields that need values: {', '.join(missing_fields)}

Based on the filename and search results, provide your best inference for the missing metadata.
For genre, use standard genres like: {GENRE_HINT}, etc.

Respond in this exact JSON format only, no other text:
{{
  "artist": "artist name or null if cannot determine",
  "title": "song title or null if cannot determine",
  "genre": "genre or null if cannot determine",
  "album": "album name or null if cannot determine",
  "confidence": "high/medium/low",
  "source": "brief explanation of how you determined this"
}}"""


def parse_response(output) -> InferenceResult:
    match = JSON_OBJECT.search(output or "")
    if not match:
        return InferenceErr("no JSON object in response")
    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        return InferenceErr(f"invalid JSON in response: {e}")
    if not isinstance(data, dict):
        return InferenceErr("response is not a JSON object")
    return InferenceOk(InferredMetadata.from_dict(data))


def infer_metadata(parsed, search_results, missing_fields, command,
                   runner=subprocess.run) -> InferenceResult:
    prompt = build_prompt(parsed, search_results, missing_fields)
    argv = shlex.split(command) + [prompt]

    try:
        completed = runner(
            argv,
            capture_output=True,
            text=True,
            timeout=TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        return InferenceErr(f"command not found: {argv[0]}")
    except subprocess.TimeoutExpired:
        return InferenceErr(f"timed out after {TIMEOUT_SECONDS}s")
    except OSError as e:
        return InferenceErr(str(e))

    if completed.returncode != 0:
        detail = (completed.stderr or "").strip().splitlines()
        return InferenceErr(
            f"exit status {completed.returncode}" + (f": {detail[-1]}" if detail else "")
        )

    return parse_response(completed.stdout)


def fallback_from_filename(parsed) -> InferredMetadata:
    return InferredMetadata(
        artist=parsed.possible_artist,
        title=parsed.possible_title,
        confidence="low",
        source=text(MSG_INFER_FALLBACK_SOURCE),
    )


def from_cache(entry) -> InferenceOk:
    """An earlier answer for the same filename, as given by the user."""
    return InferenceOk(InferredMetadata(
        artist=entry.get("artist"),
        title=entry.get("title"),
        genre=entry.get("genre"),
        album=entry.get("album"),
        confidence="high",
        source=text(MSG_INFER_CACHED_SOURCE),
    ))
