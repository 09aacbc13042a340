"""
i18n.py

Message payloads for CLI / logs.

Every user-facing line is identified by a message key. Stage modules
declare their keys as MSG_* constants and hand payloads to `emit` (report
lines on stdout), `log` or `warn` (progress and problems through
`logging`). The JSON catalog of the active language turns a payload into
text; in raw mode the payload itself is printed so another tool can
translate it.
"""

import json
import logging
import os
from pathlib import Path

LOCALES_DIR = Path(__file__).parent / "locales"
LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"

logger = logging.getLogger("audiodedupe")

_catalog = None
_raw = False


def msg(key, **params):
    """
    Build an i18n message payload.
    """
    if params:
        return {"key": key, "params": params}
    return {"key": key}


def available_languages():
    return {p.stem for p in LOCALES_DIR.glob("*.json")}


def load_catalog(lang=None):
    lang = lang or os.getenv("DEDUPE_LANG", "en")
    path = LOCALES_DIR / f"{lang}.json"
    if not path.exists():
        path = LOCALES_DIR / "en.json"
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def configure(lang=None, raw=False):
    """Select the catalog language and output mode for this process."""
    global _catalog, _raw
    _catalog = load_catalog(lang)
    _raw = raw


def setup_logging(level=logging.INFO):
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def catalog():
    global _catalog
    if _catalog is None:
        _catalog = load_catalog()
    return _catalog


def render(payload, translations=None):
    if not isinstance(payload, dict):
        return str(payload)

    key = payload.get("key")
    params = payload.get("params", {})

    if not key:
        return json.dumps(payload, ensure_ascii=False)

    template = (translations if translations is not None else catalog()).get(key, key)

    try:
        return template.format(**params)
    except (KeyError, IndexError, ValueError):
        return template + f" {params}"


def text(key, **params):
    return render(msg(key, **params))


def emit(key, **params):
    """Print a report line for the user."""
    payload = msg(key, **params)
    if _raw:
        print(payload)
    else:
        print(render(payload))


def log(key, **params):
    logger.info(render(msg(key, **params)))


def warn(key, **params):
    logger.warning(render(msg(key, **params)))


def error(key, **params):
    logger.error(render(msg(key, **params)))
