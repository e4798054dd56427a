"""Shared pytest fixtures for Inboxly tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from inboxly.config import Settings  # noqa: E402
from inboxly.domain.ingest import IngestionPipeline  # noqa: E402

from .fakes import ORG_ID, FakeDatabase  # noqa: E402


@pytest.fixture
def db() -> FakeDatabase:
    """Empty in-memory store with one active integration per provider."""
    database = FakeDatabase()
    database.integrations = {
        "greenapi": [ORG_ID],
        "wazzup": [ORG_ID],
        "evolution": [ORG_ID],
    }
    return database


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def pipeline(db, settings) -> IngestionPipeline:
    return IngestionPipeline(db.session, settings)
