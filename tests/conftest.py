"""Common test fixtures for the extt note store."""

import logging
import tempfile
from pathlib import Path

import pytest

from extt.config import load_config
from extt.observability import metrics
from extt.storage.note_store import NoteStore


@pytest.fixture
def temp_dirs():
    """Create temporary directories for notes and database."""
    with tempfile.TemporaryDirectory() as notes_dir:
        with tempfile.TemporaryDirectory() as db_dir:
            yield Path(notes_dir), Path(db_dir)


@pytest.fixture
def test_config(temp_dirs, monkeypatch):
    """Configuration pointing at the temporary directories (env auto-restored)."""
    notes_dir, db_dir = temp_dirs
    monkeypatch.setenv("EXTT_NOTES_DIR", str(notes_dir))
    monkeypatch.setenv("EXTT_DATABASE_PATH", str(db_dir / "test_extt.db"))
    monkeypatch.setenv("EXTT_LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("EXTT_LOG_DIR", raising=False)
    yield load_config(env_file=db_dir / "missing.env")


@pytest.fixture
def note_store(test_config):
    """Create a test note store backed by a file index."""
    store = NoteStore.from_config(test_config)
    yield store
    store.close()


@pytest.fixture
def notes_dir(test_config):
    """Root directory of the test store."""
    return test_config.get_notes_dir()


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Start every test with empty operation metrics."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture(autouse=True)
def _restore_extt_logger():
    """Drop handlers and level changes a test made to the ``extt`` logger."""
    extt_logger = logging.getLogger("extt")
    handlers = list(extt_logger.handlers)
    level = extt_logger.level
    yield
    for handler in list(extt_logger.handlers):
        if handler not in handlers:
            extt_logger.removeHandler(handler)
            handler.close()
    extt_logger.setLevel(level)
