"""
Shared pytest fixtures.

Builds one SQLite database per test session from the packaged default
seed and hands out sessions on it.
"""

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sanctions_law.connection import DatabaseSessionProvider, DatabaseSettings
from sanctions_law.monitoring import reset_metrics
from sanctions_law.schema import create_schema
from sanctions_law.seed import default_seed_path, load_seed_file, seed_database


def build_seeded_database(db_path: Path, seed=None) -> DatabaseSessionProvider:
    """Create schema and load a seed into ``db_path``; returns a writable provider."""
    provider = DatabaseSessionProvider(DatabaseSettings(path=str(db_path), read_only=False))
    provider.init()
    create_schema(provider.engine)
    seed_database(provider, seed if seed is not None else load_seed_file(default_seed_path()))
    return provider


@pytest.fixture(scope="session")
def default_seed():
    """The packaged seed document."""
    return load_seed_file(default_seed_path())


@pytest.fixture(scope="session")
def seeded_db_path(tmp_path_factory):
    """Path of a database built from the default seed (shared, never written by tests)."""
    db_path = tmp_path_factory.mktemp("sanctions_law") / "database.db"
    provider = build_seeded_database(db_path)
    provider.close()
    return db_path


@pytest.fixture(scope="session")
def read_only_provider(seeded_db_path):
    """Read-only provider over the shared database."""
    provider = DatabaseSessionProvider(DatabaseSettings(path=str(seeded_db_path), read_only=True))
    provider.init()
    yield provider
    provider.close()


@pytest.fixture
def session(read_only_provider):
    """A session on the shared read-only database."""
    db_session = read_only_provider.session_factory()
    try:
        yield db_session
    finally:
        db_session.close()


@pytest.fixture
def writable_provider(tmp_path):
    """A fresh database of its own for tests that write."""
    provider = build_seeded_database(tmp_path / "writable.db")
    yield provider
    provider.close()


@pytest.fixture(autouse=True)
def clean_metrics():
    """Each test starts with empty query statistics."""
    reset_metrics()
    yield
