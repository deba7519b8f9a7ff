#!/usr/bin/env python3
"""
Coverage Report Script for the Sanctions Law Reference Service

Writes a JSON coverage artifact comparing each source's estimated record
count with what the database holds, or verifies a previously written
artifact against the database.

Usage:
    python coverage_report.py update [--db-path data/database.db] [--output data/coverage.json]
    python coverage_report.py verify [--db-path data/database.db] [--output data/coverage.json]
"""

import sys
import json
import argparse
import logging
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent))

from config_manager import get_config
from sanctions_law.connection import DatabaseSessionProvider, DatabaseSettings
from sanctions_law.coverage import build_coverage_report, verify_coverage

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "data/coverage.json"


def update_coverage(provider: DatabaseSessionProvider, output: Path) -> dict:
    """Build the coverage report and write it to ``output``."""
    with provider.session_scope() as session:
        report = build_coverage_report(session)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(report, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.info(f"Coverage report written to {output}")
    return report


def check_coverage(provider: DatabaseSessionProvider, output: Path) -> list:
    """Compare the stored report at ``output`` with the database."""
    try:
        coverage = json.loads(output.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return [f"Coverage report not found: {output}"]
    except json.JSONDecodeError as e:
        return [f"Coverage report is not valid JSON: {e}"]

    with provider.session_scope() as session:
        return verify_coverage(provider.engine, session, coverage)


def main():
    parser = argparse.ArgumentParser(description="Maintain the sanctions law coverage report")
    parser.add_argument("command", choices=["update", "verify"], help="Write or check the report")
    parser.add_argument("--db-path", help="SQLite database (default: config database.path)")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help=f"Report file (default: {DEFAULT_OUTPUT})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    db_path = args.db_path or get_config().database.path
    provider = DatabaseSessionProvider(DatabaseSettings(path=db_path, read_only=True))
    output = Path(args.output)

    try:
        provider.init()
        if args.command == "update":
            report = update_coverage(provider, output)
            logger.info(f"Estimated coverage: {report['summary']['estimated_coverage_percent']}%")
            return

        errors = check_coverage(provider, output)
    finally:
        provider.close()

    if errors:
        for error in errors:
            logger.error(f"  ✗ {error}")
        sys.exit(1)
    logger.info("✓ Coverage report matches the database")


if __name__ == "__main__":
    main()
