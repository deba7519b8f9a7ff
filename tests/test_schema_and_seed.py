"""
Integration tests for schema creation and seed loading.

Each test that writes gets its own SQLite file (writable_provider); the rest
read the shared database built from the packaged seed.
"""

import copy
import json

import pytest
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sanctions_law.connection import DatabaseSessionProvider, DatabaseSettings
from sanctions_law.models import Provision, SanctionsRegime, Source
from sanctions_law.schema import create_schema, fts_row_count
from sanctions_law.seed import (
    REQUIRED_COLLECTIONS,
    SeedValidationError,
    count_records,
    load_seed_file,
    resolve_seed,
    seed_database,
    summarize_seed,
    validate_seed,
)


class TestSeedValidation:
    """Tests for seed document checks done before any write."""

    def test_default_seed_is_valid(self, default_seed):
        validate_seed(default_seed)

    def test_rejects_non_object(self):
        with pytest.raises(SeedValidationError):
            validate_seed([])

    @pytest.mark.parametrize("collection", REQUIRED_COLLECTIONS)
    def test_rejects_missing_collection(self, default_seed, collection):
        seed = copy.deepcopy(default_seed)
        del seed[collection]
        with pytest.raises(SeedValidationError, match=collection):
            validate_seed(seed)

    def test_rejects_blank_metadata(self, default_seed):
        seed = copy.deepcopy(default_seed)
        seed["schema_version"] = "  "
        with pytest.raises(SeedValidationError):
            validate_seed(seed)

    def test_rejects_unknown_delisting_procedure(self, default_seed):
        seed = copy.deepcopy(default_seed)
        seed["sanctions_regimes"][0]["delisting_procedure_id"] = "DP_DOES_NOT_EXIST"
        with pytest.raises(SeedValidationError, match="DP_DOES_NOT_EXIST"):
            validate_seed(seed)

    def test_invalid_json_file(self, tmp_path):
        seed_file = tmp_path / "broken.json"
        seed_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(SeedValidationError):
            load_seed_file(seed_file)

    def test_resolve_seed_falls_back_when_missing(self, tmp_path, default_seed):
        assert resolve_seed(tmp_path / "missing.json") == default_seed
        assert resolve_seed(None) == default_seed


class TestSeedRoundTrip:
    """Tests that seeded rows come back as they went in."""

    def test_counts_match_seed(self, session, default_seed):
        assert count_records(session) == summarize_seed(default_seed)

    def test_json_columns_are_stored_as_text(self, session):
        provision = session.execute(
            select(Provision).where(Provision.item_id == "EU833_ART2")
        ).scalar_one()
        assert json.loads(provision.topics) == ["export_controls", "dual_use"]
        assert json.loads(provision.extra_metadata)["celex"] == "32014R0833"

    def test_booleans_are_stored(self, session):
        regime = session.get(SanctionsRegime, "EU_CYBER_2019_796")
        assert regime.cyber_related is True

    def test_read_only_provider_rejects_writes(self, session):
        with pytest.raises(OperationalError):
            session.execute(delete(Source))
            session.flush()
        session.rollback()


class TestSchemaConstraints:
    """Tests for uniqueness and referential integrity."""

    def test_provision_natural_key_is_unique(self, writable_provider):
        with pytest.raises(IntegrityError):
            with writable_provider.session_scope() as session:
                session.add(Provision(
                    source_id="EU_RESTRICTIVE_MEASURES",
                    item_id="EU833_ART2",
                    title="Duplicate",
                    text="Duplicate text",
                    kind="article",
                    url="https://example.invalid",
                    topics="[]",
                ))

    def test_foreign_keys_are_enforced(self, writable_provider):
        with pytest.raises(IntegrityError):
            with writable_provider.session_scope() as session:
                session.add(Provision(
                    source_id="NO_SUCH_SOURCE",
                    item_id="X1",
                    title="Orphan",
                    text="Orphan text",
                    kind="article",
                    url="https://example.invalid",
                    topics="[]",
                ))

    def test_create_schema_is_idempotent(self, writable_provider):
        create_schema(writable_provider.engine)
        create_schema(writable_provider.engine)
        with writable_provider.session_scope() as session:
            assert all(count == 0 for count in count_records(session).values())
        assert fts_row_count(writable_provider.engine, "sanctions") == 0


class TestFtsTriggers:
    """Tests that the FTS index follows provision inserts, updates and deletes."""

    def test_insert_is_indexed(self, writable_provider):
        with writable_provider.session_scope() as session:
            session.add(Provision(
                source_id="UN_SC_SANCTIONS",
                item_id="TEST_P1",
                title="Quokkaterm paragraph",
                text="A paragraph about quokkaterm measures.",
                kind="paragraph",
                url="https://example.invalid",
                topics='["test"]',
            ))
        assert fts_row_count(writable_provider.engine, "quokkaterm") == 1

    def test_update_reindexes(self, writable_provider):
        with writable_provider.session_scope() as session:
            session.execute(
                update(Provision)
                .where(Provision.item_id == "UNSCR2368_P61")
                .values(title="Wombatterm paragraph")
            )
        assert fts_row_count(writable_provider.engine, "wombatterm") == 1
        assert fts_row_count(writable_provider.engine, "ombudsperson") == 0

    def test_delete_unindexes(self, writable_provider):
        assert fts_row_count(writable_provider.engine, "ombudsperson") == 1
        with writable_provider.session_scope() as session:
            session.execute(delete(Provision).where(Provision.item_id == "UNSCR2368_P61"))
        assert fts_row_count(writable_provider.engine, "ombudsperson") == 0


class TestSeedAtomicity:
    """Tests that a failing seed leaves nothing behind."""

    def test_failed_seed_rolls_back_every_table(self, tmp_path, default_seed):
        provider = DatabaseSessionProvider(
            DatabaseSettings(path=str(tmp_path / "atomic.db"), read_only=False)
        )
        provider.init()
        try:
            create_schema(provider.engine)
            seed = copy.deepcopy(default_seed)
            # Case law is inserted late; its bad source reference fails the whole load
            seed["sanctions_case_law"][0]["source_id"] = "NO_SUCH_SOURCE"

            with pytest.raises(IntegrityError):
                seed_database(provider, seed)

            with provider.session_scope() as session:
                assert session.execute(select(func.count()).select_from(Source)).scalar_one() == 0
                assert all(count == 0 for count in count_records(session).values())
            assert fts_row_count(provider.engine, "sanctions") == 0
        finally:
            provider.close()
