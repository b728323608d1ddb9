"""Common test fixtures for tsundoku."""

import pytest

from tsundoku.config import config
from tsundoku.models.db_models import get_session_factory, init_db
from tsundoku.services.entry_service import EntryService
from tsundoku.storage.link_repository import LinkRepository
from tsundoku.storage.linktag_repository import LinkTagRepository
from tsundoku.storage.tag_repository import TagRepository


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "test_tsundoku.db")
    monkeypatch.setattr(config, "log_dir", None)
    monkeypatch.setattr(config, "log_level", "WARNING")
    yield config


@pytest.fixture
def engine(test_config):
    """Create an engine on a temporary database file with the schema in place."""
    engine = init_db(test_config.get_db_url())
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Create a session factory bound to the test engine."""
    return get_session_factory(engine)


@pytest.fixture
def link_repository(session_factory):
    """Create a test link repository."""
    return LinkRepository(session_factory)


@pytest.fixture
def tag_repository(session_factory):
    """Create a test tag repository."""
    return TagRepository(session_factory)


@pytest.fixture
def linktag_repository(session_factory):
    """Create a test association repository."""
    return LinkTagRepository(session_factory)


@pytest.fixture
def entry_service(engine):
    """Create a test EntryService sharing the test engine."""
    service = EntryService(engine=engine)
    yield service
