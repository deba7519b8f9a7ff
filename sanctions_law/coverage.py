"""
Coverage report for the Sanctions Law Reference Service

Derives per-source expected vs. actual provision counts from a built
database, and checks a previously written report against the database.
"""

import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import Engine, func, select, text
from sqlalchemy.orm import Session

from sanctions_law.models import Provision, Source
from sanctions_law.schema import fts_row_count
from sanctions_law.seed import count_records

logger = logging.getLogger(__name__)

COVERAGE_SCHEMA_VERSION = "1.1"

# Any populated index matches this term; used to detect an empty index.
FTS_PROBE_TERM = "sanctions"

_FIRST_INT_RE = re.compile(r'\d[\d,]*')


def parse_records_estimate(estimate: Optional[str]) -> Optional[int]:
    """Pull the first integer out of a human-readable estimate ("~1,200 items")."""
    if not estimate:
        return None
    match = _FIRST_INT_RE.search(estimate)
    if not match:
        return None
    return int(match.group(0).replace(',', ''))


def build_coverage_report(session: Session, generated_on: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the coverage artifact from storage contents.

    Args:
        session: Open session on a built database
        generated_on: Report date (defaults to today)

    Returns:
        JSON-serializable report with ``summary`` and ``source_coverage``
    """
    provision_count = (
        select(func.count())
        .select_from(Provision)
        .where(Provision.source_id == Source.id)
        .correlate(Source)
        .scalar_subquery()
    )
    rows = session.execute(
        select(Source.id, Source.name, Source.records_estimate, provision_count.label("actual"))
        .order_by(Source.id)
    ).all()

    source_coverage = []
    for row in rows:
        expected = parse_records_estimate(row.records_estimate)
        if expected is None:
            expected = row.actual
        completion = min(row.actual / expected, 1.0) if expected else 1.0
        source_coverage.append({
            'id': row.id,
            'name': row.name,
            'expected_records': expected,
            'actual_records': row.actual,
            'completion': round(completion, 4),
            'completion_percent': round(completion * 100, 1),
        })

    summary: Dict[str, Any] = dict(count_records(session))
    if source_coverage:
        summary['estimated_coverage_percent'] = round(
            sum(s['completion_percent'] for s in source_coverage) / len(source_coverage), 1
        )
    else:
        summary['estimated_coverage_percent'] = 0.0

    return {
        'schema_version': COVERAGE_SCHEMA_VERSION,
        'generated_on': generated_on or date.today().isoformat(),
        'summary': summary,
        'source_coverage': source_coverage,
    }


def verify_coverage(engine: Engine, session: Session, coverage: Mapping[str, Any]) -> List[str]:
    """
    Compare a stored coverage report with the database.

    Returns:
        Human-readable mismatch descriptions; empty when everything agrees
    """
    errors = []
    counts = count_records(session)
    summary = coverage.get('summary') or {}

    for key in ('sources', 'provisions'):
        if counts[key] != summary.get(key):
            errors.append(
                f"{key} count mismatch: database has {counts[key]}, report says {summary.get(key)}"
            )

    for entry in coverage.get('source_coverage') or []:
        actual = session.execute(
            select(func.count()).select_from(Provision).where(Provision.source_id == entry.get('id'))
        ).scalar_one()
        if actual != entry.get('actual_records'):
            errors.append(
                f"Source {entry.get('id')}: database has {actual} provisions, "
                f"report says {entry.get('actual_records')}"
            )

    if counts['provisions'] and fts_row_count(engine, FTS_PROBE_TERM) == 0:
        errors.append(f"Full-text index appears empty: no results for MATCH '{FTS_PROBE_TERM}'")

    journal_mode = session.execute(text("PRAGMA journal_mode")).scalar_one()
    if str(journal_mode).lower() != 'delete':
        errors.append(f"Journal mode is '{journal_mode}', expected 'delete'")

    return errors
