# conftest.py - Pytest configuration and fixtures
import pytest

from audiodedupe import i18n
from audiodedupe.models import AudioRecord, Decision


@pytest.fixture(autouse=True)
def english_catalog():
    """Render messages with the English catalog, not raw payloads."""
    i18n.configure("en", raw=False)
    yield
    i18n.configure("en", raw=False)


@pytest.fixture
def make_record():
    """Factory for AudioRecord with sensible defaults."""

    def _make(path, **overrides):
        fmt = path.rsplit(".", 1)[-1].lower()
        values = {
            "path": path,
            "filename": path.rsplit("/", 1)[-1],
            "size": 4_000_000,
            "duration": 180.0,
            "bitrate": 320,
            "format": fmt,
            "lossless": fmt in ("flac", "wav", "aiff", "aif", "alac", "ape", "wv"),
        }
        values.update(overrides)
        return AudioRecord(**values)

    return _make


@pytest.fixture
def make_store(make_record):
    def _make(*records):
        return {r.path: r for r in records}

    return _make


@pytest.fixture
def scripted():
    """
    Build an `ask` callable answering from a list; running out of answers
    fails the test instead of blocking on stdin.
    """

    def _make(answers):
        remaining = list(answers)
        prompts = []

        def ask(prompt=""):
            prompts.append(prompt)
            if not remaining:
                raise AssertionError(f"unexpected prompt: {prompt!r}")
            return remaining.pop(0)

        ask.prompts = prompts
        ask.remaining = remaining
        return ask

    return _make


@pytest.fixture
def make_decision():
    def _make(group_id, keep=(), delete=(), **kwargs):
        return Decision(group_id=group_id, keep=list(keep), delete=list(delete), **kwargs)

    return _make
