"""
API endpoint tests for the FastAPI Sanctions Law Reference API

Uses fastapi.testclient.TestClient against the seeded test database. The
global database provider is pointed at that database directly, so the
startup hook (which reads config.yaml) is not run.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import patch

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config_manager import ConfigManager
from sanctions_law.catalogue import OPERATION_NAMES
from sanctions_law.connection import DatabaseSettings, close_db, init_db
from sanctions_law.monitoring import configure_monitoring

CONFIG_FILE = Path(__file__).parent.parent / "config.yaml"


@pytest.fixture
def client(seeded_db_path):
    """Create test client bound to the seeded read-only database."""
    from sanctions_api import server
    from fastapi.testclient import TestClient

    init_db(DatabaseSettings(path=str(seeded_db_path), read_only=True))
    config = ConfigManager(str(CONFIG_FILE))
    try:
        with patch.object(server, '_config', config):
            with patch.object(server, '_startup_time', datetime.now(timezone.utc)):
                yield TestClient(server.app)
    finally:
        close_db()


def call(client, name, arguments=None):
    return client.post(f"/api/v1/tools/{name}", json=arguments if arguments is not None else {})


# ============================================
# CATALOGUE
# ============================================

class TestToolCatalogue:
    """Tests for GET /api/v1/tools."""

    def test_lists_every_operation(self, client):
        response = client.get("/api/v1/tools")
        assert response.status_code == 200
        names = [tool["name"] for tool in response.json()["tools"]]
        assert names == list(OPERATION_NAMES)
        assert len(names) == 11

    def test_input_schema_marks_required_arguments(self, client):
        tools = {tool["name"]: tool for tool in client.get("/api/v1/tools").json()["tools"]}
        schema = tools["search-provisions"]["input_schema"]
        assert schema["required"] == ["query"]
        assert "jurisdictions" in schema["properties"]
        assert tools["about"]["input_schema"]["properties"] == {}


# ============================================
# OPERATION CALLS
# ============================================

class TestToolCalls:
    """Tests for POST /api/v1/tools/{name}."""

    def test_search_provisions(self, client):
        response = call(client, "search-provisions", {"query": "ombudsperson"})
        assert response.status_code == 200
        data = response.json()
        assert data["tool"] == "search-provisions"
        assert [r["item_id"] for r in data["result"]] == ["UNSCR2368_P61"]

    def test_get_executive_order(self, client):
        response = call(client, "get-executive-order", {"order_number": "13694"})
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["id"] == "EO_13694"
        assert result["related_provisions"] is None

    def test_check_freshness_serializes_enums(self, client):
        response = call(client, "check-freshness", {"as_of": "2026-02-22", "status": "stale"})
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["status_filter"] == "stale"
        assert result["entries"][0]["evaluated_status"] == "stale"

    def test_about_without_body(self, client):
        response = client.post("/api/v1/tools/about")
        assert response.status_code == 200
        assert response.json()["result"]["stats"]["total_sources"] == 7

    def test_lookup_miss_returns_null_result(self, client):
        response = call(client, "get-provision", {"source_id": "UN_SC_SANCTIONS", "item_id": "NOPE"})
        assert response.status_code == 200
        assert response.json() == {"tool": "get-provision", "result": None}

    def test_non_numeric_limit_uses_default(self, client):
        response = call(client, "get-delisting-procedure", {"limit": "lots"})
        assert response.status_code == 200
        assert len(response.json()["result"]) == 5

    def test_missing_search_query_returns_empty_list(self, client):
        for arguments in ({}, {"query": None}):
            response = call(client, "search-provisions", arguments)
            assert response.status_code == 200
            assert response.json() == {"tool": "search-provisions", "result": []}

    def test_oversized_limit_is_clamped(self, client):
        response = call(client, "search-case-law", {"limit": 10**400})
        assert response.status_code == 200
        assert len(response.json()["result"]) == 5

    def test_unknown_keys_are_ignored(self, client):
        response = call(client, "list-sources", {"verbose": True})
        assert response.status_code == 200
        assert len(response.json()["result"]["sources"]) == 7


# ============================================
# ERROR HANDLING TESTS
# ============================================

class TestErrorHandling:
    """Tests for the error envelope."""

    def test_unknown_operation(self, client):
        response = call(client, "screen-entity", {"name": "Test"})
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "UNKNOWN_OPERATION"
        assert "screen-entity" in error["message"]
        assert "timestamp" in error

    def test_missing_required_argument(self, client):
        response = call(client, "get-provision", {"item_id": "EU833_ART2"})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INVALID_ARGUMENTS"
        assert error["field"] == "source_id"

    def test_blank_required_argument(self, client):
        response = call(client, "get-executive-order", {"order_number": "   "})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "REQUIRED_FIELD"
        assert error["field"] == "order_number"
        assert error["suggestion"]

    def test_body_must_be_an_object(self, client):
        response = client.post("/api/v1/tools/search-provisions", json=["cyber"])
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_ARGUMENTS"

    def test_not_found_endpoint(self, client):
        response = client.get("/api/v1/nonexistent")
        assert response.status_code == 404


# ============================================
# HEALTH AND MISC
# ============================================

class TestHealth:
    """Tests for the health endpoint."""

    def test_health_reports_counts(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["name"] == "Sanctions Law Reference Service"
        assert data["stats"]["provisions"] == 18
        assert data["stats"]["sources"] == 7
        assert data["database_latency_ms"] >= 0
        assert data["uptime_seconds"] >= 0
        assert data["slow_operations"] == {}

    def test_health_reports_slow_operations(self, client):
        configure_monitoring(slow_query_threshold_ms=0.0, warning_threshold_ms=0.0, enable_prometheus=False)
        try:
            assert call(client, "about").status_code == 200
            data = client.get("/api/v1/health").json()
        finally:
            configure_monitoring()
        assert data["slow_operations"] == {"about": 1}

    def test_request_headers(self, client):
        response = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
        assert "X-Processing-Time-MS" in response.headers


class TestDocumentation:
    """Tests for API documentation endpoints."""

    def test_root_redirects_to_docs(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code in (302, 307)
        assert response.headers["location"] == "/api/docs"

    def test_openapi_schema(self, client):
        response = client.get("/api/openapi.json")
        assert response.status_code == 200
        assert "/api/v1/tools/{name}" in response.json()["paths"]
