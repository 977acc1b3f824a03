"""
Tests for the HTTP front end.
"""

from dataclasses import replace
from datetime import datetime
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from envoice.config import settings as pipeline_settings
from envoice.exceptions import SyncAlreadyRunningError
from envoice.models.reconciliation import RecordState
from envoice.models.run import RunSummary
from envoice_api.config.settings import ApiSettings
from envoice_api.main import create_app

TOKEN = "test-token"
HEADERS = {"X-API-Token": TOKEN}


def summary():
    return RunSummary(run_id="run-1", started_at=datetime(2024, 3, 10, 8, 0))


@pytest.fixture
def orchestrator(store):
    orchestrator = Mock()
    orchestrator.is_running = False
    orchestrator.current_run_id = None
    orchestrator.last_summary = None
    orchestrator.store = store
    orchestrator.run_once = AsyncMock(return_value=summary())
    return orchestrator


@pytest.fixture
def client(database, orchestrator):
    config = replace(pipeline_settings, sync_enabled=False, redis_enabled=False)
    app = create_app(database=database, orchestrator=orchestrator, config=config)
    with patch("envoice_api.middleware.auth.settings.api_token", TOKEN):
        with TestClient(app) as test_client:
            yield test_client


class TestHealth:
    def test_health_needs_no_token(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_run_id_header_is_echoed(self, client):
        response = client.get("/health", headers={"X-Run-ID": "abc"})

        assert response.headers["X-Run-ID"] == "abc"

    def test_status(self, client, store):
        store.reconcile(
            RecordState(
                id="101",
                kind="invoice",
                account_id="12345",
                global_id="guid-101",
                request_state="Emitir Factura Electronica",
                process_state="Sin Factura Electronica",
            )
        )

        response = client.get("/status", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["scheduler_running"] is False
        assert body["sync_running"] is False
        assert body["records"] == {"invoice": {"Sin Factura Electronica": 1}}


class TestAuthentication:
    """Test the API token middleware."""

    def test_missing_token(self, client):
        assert client.get("/sync/last").status_code == 401

    def test_wrong_token(self, client):
        assert client.get("/sync/last", headers={"X-API-Token": "nope"}).status_code == 401

    def test_token_not_configured(self, client):
        with patch("envoice_api.middleware.auth.settings.api_token", ""):
            response = client.get("/sync/last", headers=HEADERS)

        assert response.status_code == 503


class TestSyncEndpoints:
    """Test triggering and inspecting sync runs."""

    def test_run(self, client, orchestrator):
        response = client.post("/sync/run", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["run_id"] == "run-1"
        orchestrator.run_once.assert_awaited_once_with(None)

    def test_run_single_kind(self, client, orchestrator):
        response = client.post("/sync/run?kind=credit_note", headers=HEADERS)

        assert response.status_code == 200
        kinds = orchestrator.run_once.await_args.args[0]
        assert [k.value for k in kinds] == ["credit_note"]

    def test_run_conflict(self, client, orchestrator):
        orchestrator.is_running = True
        orchestrator.current_run_id = "run-0"

        response = client.post("/sync/run", headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["details"] == {"run_id": "run-0"}
        orchestrator.run_once.assert_not_awaited()

    def test_run_conflict_on_race(self, client, orchestrator):
        orchestrator.run_once.side_effect = SyncAlreadyRunningError("run-0")

        response = client.post("/sync/run", headers=HEADERS)

        assert response.status_code == 409

    def test_last_without_runs(self, client):
        assert client.get("/sync/last", headers=HEADERS).status_code == 404

    def test_last(self, client, orchestrator):
        orchestrator.last_summary = summary()

        response = client.get("/sync/last", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["run_id"] == "run-1"

    def test_pending(self, client, store):
        store.reconcile(
            RecordState(
                id="102",
                kind="invoice",
                account_id="12345",
                global_id="guid-102",
                request_state="Pendiente",
                process_state="Error en Factura Electronica",
            )
        )

        response = client.get("/sync/pending?kind=invoice", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["records"][0]["id"] == "102"


class TestMetrics:
    def test_metrics_endpoint_is_public(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text


class TestApiSettings:
    """Test loading the API settings from the environment."""

    def test_token_from_variable_wins_over_file(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-file\n", encoding="utf-8")

        config = ApiSettings.load_from_env(
            {"API_AUTH_TOKEN": "from-env", "API_AUTH_TOKEN_FILE": str(token_file)}
        )

        assert config.api_token == "from-env"

    def test_token_from_file(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("  secret-token\n", encoding="utf-8")

        config = ApiSettings.load_from_env({"API_AUTH_TOKEN_FILE": str(token_file)})

        assert config.api_token == "secret-token"

    def test_missing_or_empty_token_file(self, tmp_path):
        empty = tmp_path / "empty"
        empty.write_text("\n", encoding="utf-8")

        missing = ApiSettings.load_from_env({"API_AUTH_TOKEN_FILE": str(tmp_path / "nope")})
        blank = ApiSettings.load_from_env({"API_AUTH_TOKEN_FILE": str(empty)})

        assert missing.api_token == ""
        assert blank.api_token == ""

    def test_allowed_hosts_are_split(self):
        config = ApiSettings.load_from_env(
            {"ALLOWED_HOSTS": " api.example.com, ,*.example.com ", "ENVIRONMENT": "production"}
        )

        assert config.allowed_hosts == ["api.example.com", "*.example.com"]
        assert config.is_production()

    def test_defaults(self):
        config = ApiSettings.load_from_env({})

        assert config.api_token == ""
        assert config.allowed_hosts == ["localhost", "127.0.0.1"]
        assert config.port == 8000
        assert not config.is_production()
