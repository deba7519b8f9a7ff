"""
Schema management for the Sanctions Law Reference Service

Creates the ORM tables plus the SQLite FTS5 index over provisions and the
triggers that keep that index in step with the base table. The schema is
rebuilt from scratch on every build; there are no incremental migrations.
"""

import logging
from typing import List

from sqlalchemy import Engine, text
from sqlalchemy.exc import OperationalError

from sanctions_law.models import Base

logger = logging.getLogger(__name__)

FTS_TABLE = "provisions_fts"

# Column 3 ("text") is the one snippets are cut from.
FTS_COLUMNS = "source_id, item_id, title, text, parent, regime_id, kind, topics"

FTS_TRIGGERS = ("provisions_ai", "provisions_ad", "provisions_au")

FTS_DDL: List[str] = [
    f"""
    CREATE VIRTUAL TABLE {FTS_TABLE} USING fts5(
        source_id UNINDEXED,
        item_id UNINDEXED,
        title,
        text,
        parent,
        regime_id,
        kind,
        topics,
        content='provisions',
        content_rowid='id'
    )
    """,
    f"""
    CREATE TRIGGER provisions_ai AFTER INSERT ON provisions BEGIN
        INSERT INTO {FTS_TABLE}(rowid, {FTS_COLUMNS})
        VALUES (new.id, new.source_id, new.item_id, new.title, new.text,
                new.parent, new.regime_id, new.kind, new.topics);
    END
    """,
    f"""
    CREATE TRIGGER provisions_ad AFTER DELETE ON provisions BEGIN
        INSERT INTO {FTS_TABLE}({FTS_TABLE}, rowid, {FTS_COLUMNS})
        VALUES ('delete', old.id, old.source_id, old.item_id, old.title, old.text,
                old.parent, old.regime_id, old.kind, old.topics);
    END
    """,
    f"""
    CREATE TRIGGER provisions_au AFTER UPDATE ON provisions BEGIN
        INSERT INTO {FTS_TABLE}({FTS_TABLE}, rowid, {FTS_COLUMNS})
        VALUES ('delete', old.id, old.source_id, old.item_id, old.title, old.text,
                old.parent, old.regime_id, old.kind, old.topics);
        INSERT INTO {FTS_TABLE}(rowid, {FTS_COLUMNS})
        VALUES (new.id, new.source_id, new.item_id, new.title, new.text,
                new.parent, new.regime_id, new.kind, new.topics);
    END
    """,
]


class SchemaError(RuntimeError):
    """Raised when the SQLite build cannot hold the schema (no FTS5)."""
    pass


def ensure_fts5_available(engine: Engine) -> None:
    """
    Fail early when SQLite was compiled without FTS5.

    Raises:
        SchemaError: If an FTS5 table cannot be created
    """
    with engine.connect() as conn:
        options = {row[0] for row in conn.exec_driver_sql("PRAGMA compile_options")}
        if "ENABLE_FTS5" in options:
            return
        # Some builds load FTS5 without advertising it; probe directly.
        try:
            conn.exec_driver_sql("CREATE VIRTUAL TABLE temp.fts5_probe USING fts5(x)")
            conn.exec_driver_sql("DROP TABLE temp.fts5_probe")
        except OperationalError as e:
            raise SchemaError(f"SQLite FTS5 extension not available: {e}")


def drop_schema(engine: Engine) -> None:
    """Drop the FTS index, its triggers and every ORM table."""
    with engine.begin() as conn:
        for trigger in FTS_TRIGGERS:
            conn.exec_driver_sql(f"DROP TRIGGER IF EXISTS {trigger}")
        conn.exec_driver_sql(f"DROP TABLE IF EXISTS {FTS_TABLE}")
    Base.metadata.drop_all(engine)
    logger.warning("Schema dropped")


def create_schema(engine: Engine) -> None:
    """
    Create (or recreate) the full schema.

    Idempotent: anything already present is dropped first, so the result is
    always an empty, consistent store ready for seeding.

    Args:
        engine: Engine bound to a writable SQLite database
    """
    ensure_fts5_available(engine)
    drop_schema(engine)

    Base.metadata.create_all(engine)
    with engine.begin() as conn:
        for statement in FTS_DDL:
            conn.exec_driver_sql(statement)

    logger.info("Schema created: %d tables plus %s", len(Base.metadata.tables), FTS_TABLE)


def fts_row_count(engine: Engine, match: str) -> int:
    """Count index rows matching an FTS5 expression (used by coverage checks)."""
    with engine.connect() as conn:
        return conn.execute(
            text(f"SELECT COUNT(*) FROM {FTS_TABLE} WHERE {FTS_TABLE} MATCH :match"),
            {"match": match},
        ).scalar_one()
