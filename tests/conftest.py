"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import pytest

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.append(os.path.join(os.path.dirname(TESTS_DIR), "src"))
sys.path.append(TESTS_DIR)

from fedsearch.platform.config import Settings  # noqa: E402
from fedsearch.engine.context import SearchContext  # noqa: E402
from fedsearch.storage.database import Database, DatabaseConfig  # noqa: E402
from fedsearch.storage.documents import SqlDocumentStore  # noqa: E402
from fedsearch.storage.locks import SqlLockManager  # noqa: E402
from fakes import FakeSearchStore  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("LOG_LEVEL", "debug")


@pytest.fixture
def database():
    """SQLite in-memory primary store."""
    db = Database(DatabaseConfig(DATABASE_URL="sqlite:///:memory:"))
    db.connect()
    db.create_tables()
    yield db
    db.close()


@pytest.fixture
def document_store(database):
    return SqlDocumentStore(database)


@pytest.fixture
def lock_manager(database):
    return SqlLockManager(database)


@pytest.fixture
def search_store():
    return FakeSearchStore()


@pytest.fixture
def make_context(search_store):
    """Build a SearchContext around the fake search engine with settings overrides."""

    def _make(**overrides) -> SearchContext:
        overrides.setdefault("SEARCH_BASE_NAME", "test")
        return SearchContext(Settings(**overrides), search_store=search_store)

    return _make
