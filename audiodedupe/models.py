"""
models.py

Records exchanged between the pipeline stages.

Persisted documents use camelCase keys; every record converts itself
with `to_dict` / `from_dict` so a value survives a JSON round trip
unchanged.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

LOSSLESS_FORMATS = frozenset({"flac", "wav", "aiff", "aif", "alac", "ape", "wv"})

TAG_FIELDS = ("title", "artist", "album", "genre", "year")


@dataclass
class AudioRecord:
    """Metadata extracted from one scanned file. `path` is the store key."""

    path: str
    filename: str
    size: int
    duration: Optional[float] = None
    bitrate: Optional[int] = None
    sample_rate: Optional[int] = None
    bit_depth: Optional[int] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    year: Optional[int] = None
    track_number: Optional[int] = None
    genre: Optional[str] = None
    format: str = ""
    lossless: bool = False
    scanned_at: str = ""

    def to_dict(self):
        return {
            "path": self.path,
            "filename": self.filename,
            "size": self.size,
            "duration": self.duration,
            "bitrate": self.bitrate,
            "sampleRate": self.sample_rate,
            "bitDepth": self.bit_depth,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "year": self.year,
            "trackNumber": self.track_number,
            "genre": self.genre,
            "format": self.format,
            "lossless": self.lossless,
            "scannedAt": self.scanned_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            path=data["path"],
            filename=data["filename"],
            size=data.get("size", 0),
            duration=data.get("duration"),
            bitrate=data.get("bitrate"),
            sample_rate=data.get("sampleRate"),
            bit_depth=data.get("bitDepth"),
            title=data.get("title"),
            artist=data.get("artist"),
            album=data.get("album"),
            year=data.get("year"),
            track_number=data.get("trackNumber"),
            genre=data.get("genre"),
            format=data.get("format", ""),
            lossless=bool(data.get("lossless", False)),
            scanned_at=data.get("scannedAt", ""),
        )


@dataclass
class MatchResult:
    score: int = 0
    reasons: List[str] = field(default_factory=list)


@dataclass
class DuplicateGroup:
    id: str
    confidence: int
    files: List[str]
    match_reasons: List[str] = field(default_factory=list)
    suggested_keep: Optional[str] = None

    def to_dict(self):
        return {
            "id": self.id,
            "confidence": self.confidence,
            "files": list(self.files),
            "matchReasons": list(self.match_reasons),
            "suggestedKeep": self.suggested_keep,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            confidence=data["confidence"],
            files=list(data["files"]),
            match_reasons=list(data.get("matchReasons", [])),
            suggested_keep=data.get("suggestedKeep"),
        )


MetadataSource = Union[str, Dict[str, str], None]


@dataclass
class Decision:
    """
    Resolution of one duplicate group.

    A decision with empty keep and delete lists records a skipped group.
    `metadata_source` is either the path whose tags the keeper should end
    up with, or a per-field mapping (field -> path) chosen during the
    metadata merge review.
    """

    group_id: str
    keep: List[str] = field(default_factory=list)
    delete: List[str] = field(default_factory=list)
    not_duplicates: bool = False
    decision_type: str = "manual"
    rule_applied: str = "manual"
    copy_to_destination: bool = False
    metadata_source: MetadataSource = None
    needs_metadata_review: bool = False

    @property
    def files(self):
        return list(self.keep) + list(self.delete)

    @property
    def skipped(self):
        return not self.keep and not self.delete

    def to_dict(self):
        data = {
            "groupId": self.group_id,
            "keep": list(self.keep),
            "delete": list(self.delete),
            "notDuplicates": self.not_duplicates,
            "decisionType": self.decision_type,
            "ruleApplied": self.rule_applied,
            "copyToDestination": self.copy_to_destination,
            "needsMetadataReview": self.needs_metadata_review,
        }
        if self.metadata_source is not None:
            source = self.metadata_source
            data["metadataSource"] = dict(source) if isinstance(source, dict) else source
        return data

    @classmethod
    def from_dict(cls, data):
        source = data.get("metadataSource")
        if isinstance(source, dict):
            source = dict(source)
        return cls(
            group_id=data["groupId"],
            keep=list(data.get("keep", [])),
            delete=list(data.get("delete", [])),
            not_duplicates=bool(data.get("notDuplicates", False)),
            decision_type=data.get("decisionType", "manual"),
            rule_applied=data.get("ruleApplied", "manual"),
            copy_to_destination=bool(data.get("copyToDestination", False)),
            metadata_source=source,
            needs_metadata_review=bool(data.get("needsMetadataReview", False)),
        )


@dataclass
class DuplicatesFile:
    generated_at: str
    groups: List[DuplicateGroup]

    @property
    def total_groups(self):
        return len(self.groups)

    def to_dict(self):
        return {
            "generatedAt": self.generated_at,
            "totalGroups": self.total_groups,
            "groups": [g.to_dict() for g in self.groups],
        }


@dataclass
class DecisionsFile:
    reviewed_at: str
    decisions: List[Decision]

    def to_dict(self):
        return {
            "reviewedAt": self.reviewed_at,
            "decisions": [d.to_dict() for d in self.decisions],
        }


@dataclass
class DeletionLogEntry:
    path: str
    deleted_at: str
    method: str
    success: bool
    error: Optional[str] = None

    def to_dict(self):
        data = {
            "path": self.path,
            "deletedAt": self.deleted_at,
            "method": self.method,
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class DeletionLog:
    executed_at: str
    entries: List[DeletionLogEntry] = field(default_factory=list)

    def to_dict(self):
        return {
            "executedAt": self.executed_at,
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass
class ScanState:
    """Checkpoint of a running scan."""

    started_at: str
    last_processed_file: Optional[str] = None
    processed_count: int = 0
    resumed_at: Optional[str] = None

    def to_dict(self):
        data = {
            "lastProcessedFile": self.last_processed_file,
            "processedCount": self.processed_count,
            "startedAt": self.started_at,
        }
        if self.resumed_at:
            data["resumedAt"] = self.resumed_at
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            started_at=data["startedAt"],
            last_processed_file=data.get("lastProcessedFile"),
            processed_count=data.get("processedCount", 0),
            resumed_at=data.get("resumedAt"),
        )


@dataclass
class FixState:
    """Cursor of the metadata repair pass: index of the next file to handle."""

    started_at: str
    last_processed_index: int = 0
    fixed_count: int = 0
    skipped_count: int = 0
    resumed_at: Optional[str] = None

    def to_dict(self):
        data = {
            "lastProcessedIndex": self.last_processed_index,
            "fixedCount": self.fixed_count,
            "skippedCount": self.skipped_count,
            "startedAt": self.started_at,
        }
        if self.resumed_at:
            data["resumedAt"] = self.resumed_at
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            started_at=data["startedAt"],
            last_processed_index=data.get("lastProcessedIndex", 0),
            fixed_count=data.get("fixedCount", 0),
            skipped_count=data.get("skippedCount", 0),
            resumed_at=data.get("resumedAt"),
        )
