"""
Tests for the operation catalogue and the query monitoring around it.
"""

import pytest
from pydantic import ValidationError

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sanctions_law.catalogue import (
    OPERATION_NAMES,
    OPERATIONS,
    UnknownOperationError,
    call_operation,
    describe_operations,
    get_operation,
)
from sanctions_law.lookup_service import InputValidationError, SanctionsLookupService
from sanctions_law.monitoring import (
    configure_monitoring,
    get_db_metrics,
    get_slow_operations,
    query_timer,
)


@pytest.fixture
def service(session):
    return SanctionsLookupService(session)


class TestCatalogue:
    """Tests for operation lookup and description."""

    def test_names_in_order(self):
        assert OPERATION_NAMES == (
            "search-provisions",
            "get-provision",
            "get-regime",
            "get-executive-order",
            "check-cyber-sanctions",
            "get-delisting-procedure",
            "get-export-control",
            "search-case-law",
            "list-sources",
            "about",
            "check-freshness",
        )

    def test_every_operation_has_a_service_method(self):
        for operation in OPERATIONS:
            assert callable(getattr(SanctionsLookupService, operation.method_name))
            assert operation.description

    def test_unknown_operation(self):
        with pytest.raises(UnknownOperationError) as exc_info:
            get_operation("screen-entity")
        assert isinstance(exc_info.value, KeyError)
        assert str(exc_info.value) == "Unknown operation: screen-entity"

    def test_descriptions_carry_schemas(self):
        described = {entry["name"]: entry for entry in describe_operations()}
        assert set(described) == set(OPERATION_NAMES)
        schema = described["get-provision"]["input_schema"]
        assert sorted(schema["required"]) == ["item_id", "source_id"]
        assert schema["properties"]["include_related"]["default"] is False


class TestCallOperation:
    """Tests for dispatching raw arguments."""

    def test_dispatches_to_service(self, service):
        result = call_operation(service, "get-regime", {"regime_id": "UK_CYBER_2020"})
        assert [r.id for r in result] == ["UK_CYBER_2020"]

    def test_none_arguments(self, service):
        assert call_operation(service, "about", None).stats["total_sources"] == 7

    def test_missing_required_argument(self, service):
        with pytest.raises(ValidationError):
            call_operation(service, "get-provision", {"item_id": "EU833_ART2"})

    def test_missing_search_query_returns_empty(self, service):
        assert call_operation(service, "search-provisions", {}) == []
        assert call_operation(service, "search-provisions", {"query": None}) == []

    def test_oversized_limit_is_clamped(self, service):
        results = call_operation(service, "search-case-law", {"limit": 10**400})
        assert len(results) == 5

    def test_search_schema_still_requires_query(self):
        schema = describe_operations()[0]["input_schema"]
        assert schema["required"] == ["query"]

    def test_blank_required_argument(self, service):
        with pytest.raises(InputValidationError):
            call_operation(service, "get-provision", {"source_id": "", "item_id": "X"})

    def test_wrong_type(self, service):
        with pytest.raises(ValidationError):
            call_operation(service, "search-provisions", {"query": "cyber", "jurisdictions": "EU"})


class TestMonitoring:
    """Tests for per-operation statistics."""

    def test_calls_are_counted(self, service):
        call_operation(service, "list-sources", {})
        call_operation(service, "list-sources", {})
        stats = get_db_metrics("list-sources")
        assert stats["count"] == 2
        assert stats["errors"] == 0
        assert "list-sources" in get_db_metrics()["operations"]

    def test_errors_are_counted(self, service):
        with pytest.raises(InputValidationError):
            call_operation(service, "get-executive-order", {"order_number": " "})
        assert get_db_metrics("get-executive-order")["errors"] == 1

    def test_slow_queries_are_reported(self):
        configure_monitoring(slow_query_threshold_ms=0.0, warning_threshold_ms=0.0, enable_prometheus=False)
        try:
            with query_timer("test-operation"):
                sum(range(1000))
            assert get_slow_operations() == {"test-operation": 1}
        finally:
            configure_monitoring()

    def test_unknown_operation_is_empty(self):
        assert get_db_metrics("never-called") == {}

    def test_fast_operations_are_not_reported(self, service):
        call_operation(service, "about", {})
        assert get_slow_operations() == {}
