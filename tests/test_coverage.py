"""
Tests for the coverage report and the build/coverage command-line helpers.
"""

import json

import pytest
from sqlalchemy import delete, update

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from build_database import build_database
from coverage_report import check_coverage, update_coverage
from sanctions_law.connection import DatabaseSessionProvider, DatabaseSettings
from sanctions_law.coverage import (
    COVERAGE_SCHEMA_VERSION,
    build_coverage_report,
    parse_records_estimate,
    verify_coverage,
)
from sanctions_law.models import Provision, Source


class TestParseRecordsEstimate:
    """Tests for reading the expected record count out of free text."""

    def test_first_integer_wins(self):
        assert parse_records_estimate("~250 articles across Regulations 833/2014") == 250

    def test_thousands_separator(self):
        assert parse_records_estimate("~1,200 items") == 1200

    def test_no_number(self):
        assert parse_records_estimate("unknown") is None
        assert parse_records_estimate("") is None
        assert parse_records_estimate(None) is None


class TestBuildCoverageReport:
    """Tests for the coverage artifact built from the seeded database."""

    def test_summary_and_sources(self, session):
        report = build_coverage_report(session, generated_on="2026-02-22")
        assert report["schema_version"] == COVERAGE_SCHEMA_VERSION
        assert report["generated_on"] == "2026-02-22"
        assert report["summary"]["provisions"] == 18
        assert report["summary"]["sources"] == 7

        entries = {entry["id"]: entry for entry in report["source_coverage"]}
        assert len(entries) == 7
        un = entries["UN_SC_SANCTIONS"]
        assert un["expected_records"] == 40
        assert un["actual_records"] == 2
        assert un["completion_percent"] == 5.0
        assert entries["CJEU_SANCTIONS_CASE_LAW"]["actual_records"] == 0

    def test_zero_estimate_is_kept(self, writable_provider):
        with writable_provider.session_scope() as session:
            session.execute(
                update(Source).where(Source.id == "UN_SC_SANCTIONS").values(records_estimate="0 planned")
            )
        with writable_provider.session_scope() as session:
            report = build_coverage_report(session)
        entry = next(e for e in report["source_coverage"] if e["id"] == "UN_SC_SANCTIONS")
        assert entry["expected_records"] == 0
        assert entry["actual_records"] == 2
        assert entry["completion"] == 1.0

    def test_completion_is_capped(self, session):
        report = build_coverage_report(session)
        assert all(0.0 <= entry["completion"] <= 1.0 for entry in report["source_coverage"])
        assert 0.0 < report["summary"]["estimated_coverage_percent"] < 100.0


class TestVerifyCoverage:
    """Tests for checking a stored report against the database."""

    def test_fresh_report_verifies(self, read_only_provider, session):
        report = build_coverage_report(session)
        assert verify_coverage(read_only_provider.engine, session, report) == []

    def test_summary_mismatch_is_reported(self, read_only_provider, session):
        report = build_coverage_report(session)
        report["summary"]["provisions"] = 99
        errors = verify_coverage(read_only_provider.engine, session, report)
        assert len(errors) == 1
        assert "provisions count mismatch" in errors[0]

    def test_per_source_mismatch_after_delete(self, writable_provider):
        with writable_provider.session_scope() as session:
            report = build_coverage_report(session)
        with writable_provider.session_scope() as session:
            session.execute(delete(Provision).where(Provision.item_id == "EAR_740_22"))
        with writable_provider.session_scope() as session:
            errors = verify_coverage(writable_provider.engine, session, report)
        assert any("US_BIS_EAR" in error for error in errors)
        assert any("provisions count mismatch" in error for error in errors)


class TestCommandHelpers:
    """Tests for build_database and the coverage_report helpers."""

    def test_build_then_update_and_verify(self, tmp_path):
        db_path = tmp_path / "built.db"
        summary = build_database(str(db_path))
        assert summary["provisions"] == 18
        assert summary["source_freshness"] == 7

        provider = DatabaseSessionProvider(DatabaseSettings(path=str(db_path), read_only=True))
        provider.init()
        try:
            output = tmp_path / "out" / "coverage.json"
            report = update_coverage(provider, output)
            assert json.loads(output.read_text(encoding="utf-8")) == report
            assert check_coverage(provider, output) == []
        finally:
            provider.close()

    def test_rebuild_replaces_contents(self, tmp_path):
        db_path = str(tmp_path / "rebuilt.db")
        build_database(db_path)
        assert build_database(db_path)["sources"] == 7

    def test_check_reports_missing_or_broken_file(self, read_only_provider, tmp_path):
        missing = check_coverage(read_only_provider, tmp_path / "missing.json")
        assert missing and "not found" in missing[0]

        broken = tmp_path / "broken.json"
        broken.write_text("{", encoding="utf-8")
        assert "not valid JSON" in check_coverage(read_only_provider, broken)[0]

    def test_build_falls_back_to_packaged_seed(self, tmp_path):
        summary = build_database(str(tmp_path / "fallback.db"), str(tmp_path / "no_seed.json"))
        assert summary["sanctions_case_law"] == 5

    def test_build_rejects_bad_seed(self, tmp_path):
        from sanctions_law.seed import SeedValidationError

        bad_seed = tmp_path / "bad.json"
        bad_seed.write_text(json.dumps({"schema_version": "1.0"}), encoding="utf-8")
        with pytest.raises(SeedValidationError):
            build_database(str(tmp_path / "bad.db"), str(bad_seed))
