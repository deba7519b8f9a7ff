"""
Database Connection Management for the Sanctions Law Reference Service

This module provides:
- FastAPI Dependency Injection pattern for database sessions
- Scoped session acquisition with commit/rollback/close semantics
- SQLite file settings (read-only URI for serving, writable for builds)
- Foreign-key enforcement on every pooled connection

Uses SQLAlchemy 2.0 style with proper typing support.
"""

import os
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text, Engine
from sqlalchemy.orm import sessionmaker, Session

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/database.db"


# ============================================
# CONFIGURATION
# ============================================

@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    path: str = DEFAULT_DB_PATH
    read_only: bool = True
    echo: bool = False

    @classmethod
    def from_env(cls) -> 'DatabaseSettings':
        """Create settings from environment variables."""
        return cls(
            path=os.getenv("SANCTIONS_LAW_DB_PATH", DEFAULT_DB_PATH),
            read_only=os.getenv("SANCTIONS_LAW_DB_READ_ONLY", "true").lower() == "true",
            echo=os.getenv("SANCTIONS_LAW_DB_ECHO", "false").lower() == "true"
        )

    def get_url(self) -> str:
        """Build the SQLAlchemy URL for the database file."""
        resolved = Path(self.path).expanduser().resolve().as_posix()
        if self.read_only:
            return f"sqlite:///file:{resolved}?mode=ro&uri=true"
        return f"sqlite:///{resolved}"


@lru_cache()
def get_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings.from_env()


# ============================================
# DATABASE SESSION PROVIDER (FastAPI DI)
# ============================================

class DatabaseSessionProvider:
    """
    Owns the engine for one database file and hands out sessions.

    The provider is created by whoever composes the application (the HTTP
    server at startup, a CLI, a test fixture) and passed down; query code only
    ever sees the session it was given.

    Usage:
        provider = DatabaseSessionProvider(DatabaseSettings(path="data/database.db"))

        @app.post("/api/v1/tools/{name}")
        def call(name: str, db: Session = Depends(provider.get_session)):
            ...
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        """
        Initialize the database session provider.

        Args:
            settings: Database settings (uses env if not provided)
        """
        self._settings = settings or get_settings()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._initialized = False

    def init(self, echo: Optional[bool] = None) -> None:
        """
        Initialize the engine and session factory.

        Args:
            echo: Override echo setting for SQL logging

        Raises:
            OperationalError: If the database file cannot be opened
        """
        if self._initialized:
            return

        if echo is not None:
            self._settings.echo = echo

        if self._engine is None:
            self._engine = self._create_engine()

        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False
        )

        self._initialized = True
        logger.info(
            "Database session provider initialized: path=%s read_only=%s",
            self._settings.path,
            self._settings.read_only,
        )

    def _create_engine(self) -> Engine:
        """Create the engine and verify the file can be opened."""
        if not self._settings.read_only:
            Path(self._settings.path).expanduser().parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(self._settings.get_url(), echo=self._settings.echo)
        install_sqlite_pragmas(engine)

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        return engine

    @property
    def settings(self) -> DatabaseSettings:
        """Get the settings this provider was built from."""
        return self._settings

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get the session factory."""
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    def get_session(self) -> Generator[Session, None, None]:
        """
        FastAPI dependency for getting a database session.

        The session is closed when the request finishes, whether or not the
        operation raised.
        """
        if self._session_factory is None:
            self.init()

        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Context manager for session with auto-commit/rollback.

        Usage:
            with provider.session_scope() as session:
                session.execute(insert(Source), rows)
                # Commits on exit, rolls back everything on exception
        """
        if self._session_factory is None:
            self.init()

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Close database connections and clean up."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._initialized = False


def install_sqlite_pragmas(engine: Engine) -> None:
    """Turn on foreign-key enforcement for every new SQLite connection."""

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        logger.debug("New database connection established")


# ============================================
# GLOBAL PROVIDER INSTANCE
# ============================================

# Process-wide provider owned by the HTTP server
_db_provider: Optional[DatabaseSessionProvider] = None


def get_db_provider() -> DatabaseSessionProvider:
    """
    Get the global database provider instance.

    Returns:
        DatabaseSessionProvider instance
    """
    global _db_provider
    if _db_provider is None:
        _db_provider = DatabaseSessionProvider()
    return _db_provider


def init_db(
    settings: Optional[DatabaseSettings] = None,
    echo: Optional[bool] = None
) -> DatabaseSessionProvider:
    """
    Initialize the global database provider.

    Call this during application startup.

    Args:
        settings: Settings to build the provider from (env when omitted)
        echo: If True, log all SQL statements

    Returns:
        DatabaseSessionProvider instance
    """
    global _db_provider
    if settings is not None:
        close_db()
        _db_provider = DatabaseSessionProvider(settings=settings)
    provider = get_db_provider()
    provider.init(echo=echo)
    return provider


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for getting a database session.

    Usage in FastAPI:
        @app.get("/api/v1/tools")
        def list_tools(db: Session = Depends(get_db)):
            ...
    """
    provider = get_db_provider()
    yield from provider.get_session()


def close_db() -> None:
    """
    Close the global database provider.

    Call this during application shutdown.
    """
    global _db_provider
    if _db_provider:
        _db_provider.close()
        _db_provider = None
