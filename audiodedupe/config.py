"""
config.py

Settings resolution.

- `.env` / environment: where the settings document and the data
  directory live, language, inference command, trash directory.
- settings document (config.json): scan roots, matcher tuning and the
  `duplicateRules` policy. It is mandatory; a missing document stops the
  program before any work starts.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from audiodedupe.i18n import msg
from audiodedupe.policies import policy_from_dict, policy_to_dict
from audiodedupe.storage import write_json

# ================= I18N MESSAGE KEYS =================

MSG_CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
MSG_CONFIG_INVALID = "CONFIG_INVALID"

# ====================================================

DEFAULT_EXCLUDE_PATTERNS = [
    "node_modules",
    ".git",
    "Library/Caches",
    "__pycache__",
    ".Trash",
    "*.app/Contents",
]

DEFAULT_EXTENSIONS = [
    "mp3", "flac", "wav", "aac", "ogg", "m4a",
    "aiff", "aif", "alac", "wma", "opus", "ape", "wv",
]

DEFAULT_INFERENCE_CMD = "claude -p"


def default_config():
    return {
        "scanPaths": ["~", "/Volumes"],
        "excludePatterns": list(DEFAULT_EXCLUDE_PATTERNS),
        "durationToleranceSeconds": 5,
        "duplicateScoreThreshold": 40,
        "supportedExtensions": list(DEFAULT_EXTENSIONS),
        "libraryMarkers": ["Music"],
    }


def expand_path(path):
    if path == "~" or path.startswith("~/"):
        return str(Path.home()) + path[1:]
    return path


def config_path(cli_value=None):
    load_dotenv(override=False)
    return Path(cli_value or os.getenv("DEDUPE_CONFIG", "config.json")).resolve()


def load_config(path=None):
    path = Path(path) if path else config_path()
    if not path.exists():
        raise SystemExit(msg(MSG_CONFIG_NOT_FOUND, path=str(path)))
    try:
        user = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise SystemExit(msg(MSG_CONFIG_INVALID, path=str(path), error=str(e)))

    cfg = default_config()
    cfg.update(user)
    cfg["scanPaths"] = [expand_path(p) for p in cfg["scanPaths"]]
    return cfg


def save_config(cfg, path=None):
    write_json(Path(path) if path else config_path(), cfg)


def load_rules(cfg):
    """Return the configured policy, or None when rules were never set."""
    data = cfg.get("duplicateRules")
    if not data:
        return None
    return policy_from_dict(data)


def save_rules(policy, path=None):
    path = Path(path) if path else config_path()
    cfg = {}
    if path.exists():
        try:
            cfg = json.loads(path.read_text(encoding="utf-8"))
        except ValueError:
            cfg = {}
    cfg["duplicateRules"] = policy_to_dict(policy)
    write_json(path, cfg)


def inference_command():
    load_dotenv(override=False)
    return os.getenv("DEDUPE_INFERENCE_CMD", DEFAULT_INFERENCE_CMD)


# ================= DATA FILES =================

@dataclass(frozen=True)
class DataPaths:
    root: Path

    @property
    def scan_results(self):
        return self.root / "scan-results.ndjson"

    @property
    def scan_state(self):
        return self.root / ".scan-state.json"

    @property
    def duplicates(self):
        return self.root / "duplicates.json"

    @property
    def decisions(self):
        return self.root / "decisions.json"

    @property
    def decisions_resolved(self):
        return self.root / "decisions-resolved.json"

    @property
    def conflicts(self):
        return self.root / "conflicts.json"

    @property
    def resolutions(self):
        return self.root / "resolutions.json"

    @property
    def deletion_log(self):
        return self.root / "deletion-log.json"

    @property
    def fix_state(self):
        return self.root / ".fix-state.json"

    @property
    def cache(self):
        return self.root / "cache.json"

    @property
    def trash(self):
        override = os.getenv("DEDUPE_TRASH_DIR")
        return Path(override).resolve() if override else self.root / "to_trash"


def data_paths(cli_value=None):
    load_dotenv(override=False)
    root = Path(cli_value or os.getenv("DEDUPE_DATA_DIR", "data")).resolve()
    return DataPaths(root=root)
