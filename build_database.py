#!/usr/bin/env python3
"""
Database Build Script for the Sanctions Law Reference Service

Creates the SQLite schema (tables, indexes, FTS5 index and triggers) and
loads a seed document into it. Any existing schema in the file is dropped
first, so the build can be re-run.

Usage:
    python build_database.py [--db-path data/database.db] [--seed-path seed.json] [--verbose]
"""

import sys
import argparse
import logging
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent))

from config_manager import get_config, ConfigurationError
from sanctions_law.connection import DatabaseSessionProvider, DatabaseSettings
from sanctions_law.schema import SchemaError, create_schema
from sanctions_law.seed import SeedValidationError, resolve_seed, seed_database

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def build_database(db_path: str, seed_path: str = None) -> dict:
    """
    Build a fresh database file from a seed.

    Args:
        db_path: SQLite file to (re)create
        seed_path: Seed JSON file; the packaged default is used when missing

    Returns:
        Rows inserted per collection
    """
    seed = resolve_seed(seed_path)
    provider = DatabaseSessionProvider(DatabaseSettings(path=db_path, read_only=False))
    try:
        provider.init()
        logger.info("\n[1/2] Creating schema...")
        create_schema(provider.engine)

        logger.info("\n[2/2] Loading seed...")
        return seed_database(provider, seed)
    finally:
        provider.close()


def main():
    parser = argparse.ArgumentParser(description="Build the sanctions law reference database")
    parser.add_argument("--db-path", help="SQLite file to create (default: config database.path)")
    parser.add_argument("--seed-path", help="Seed JSON file (default: config database.seed_path)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("=" * 50)
    logger.info("Sanctions Law Database Build")
    logger.info("=" * 50)

    try:
        config = get_config()
        db_path = args.db_path or config.database.path
        seed_path = args.seed_path or config.database.seed_path

        summary = build_database(db_path, seed_path)

        logger.info("\n" + "=" * 50)
        for name, count in summary.items():
            logger.info(f"  {name}: {count}")
        logger.info(f"Database built at {db_path}")
        logger.info("=" * 50)
    except (ConfigurationError, SeedValidationError, SchemaError) as e:
        logger.error(f"Build failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
