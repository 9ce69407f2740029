"""
Tests for the JSON routes and the error-to-status mapping.
"""

from unittest.mock import patch

import pytest

from app import SHUTDOWN_EXTENSION, create_app, shutdown_app
from core.device_gateway import CupsGateway
from core.exceptions import (
    DeviceUnavailableError,
    InvalidTransitionError,
    MissingDataError,
    PersistenceError,
)
from routes import status_code_for

from conftest import LPQ_EMPTY, PRINTER, FakeRunner, lp_accepted, lpq_listing


@pytest.fixture
def api_runner():
    return FakeRunner()


@pytest.fixture
def app_config(tmp_path):
    class TestConfig:
        SECRET_KEY = "test-secret"
        TESTING = True
        ENVIRONMENT = "testing"
        DEBUG = False
        DATABASE_URL = "sqlite://"
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        SCANNED_FOLDER = str(tmp_path / "scanned")
        PRINTER_NAME = PRINTER
        PRINTER_BACKEND = "cups"
        PRINTER_COMMAND_TIMEOUT = 5
        PRINTER_SUBMIT_TIMEOUT = 30
        RETENTION_HOURS = 24
        CLEANUP_TIME = "23:59"
        CLEANUP_SCHEDULE_ENABLED = False

    return TestConfig


@pytest.fixture
def app(app_config, api_runner):
    app = create_app(app_config, gateway=CupsGateway(printer_name=PRINTER, runner=api_runner))
    yield app
    shutdown_app(app)


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, user_id):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id


@pytest.fixture
def upload(app):
    path = f"{app.config['UPLOAD_FOLDER']}/report.pdf"
    with open(path, "wb") as f:
        f.write(b"%PDF-1.4")
    return path


class TestJobRoutes:
    """Tests for /api/jobs."""

    def test_requires_session_user(self, client):
        response = client.get("/api/jobs")

        assert response.status_code == 400
        assert response.get_json()["details"]["missing_fields"] == ["user_id"]

    def test_create_accepted(self, client, api_runner, upload):
        _login(client, 1)
        api_runner.script("lp", lp_accepted(42))

        response = client.post("/api/jobs", json={
            "document_name": "report.pdf",
            "document_path": upload,
            "settings": {"colorMode": "Color"},
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body["job"]["status"] == "in-progress"
        assert body["job"]["color_mode"] == "Color"
        assert body["submission"]["token"] == "42"

    def test_create_with_printer_down(self, client, api_runner, upload):
        _login(client, 1)
        api_runner.script("lp", FileNotFoundError("lp"))

        response = client.post("/api/jobs", json={
            "document_name": "report.pdf",
            "document_path": upload,
        })

        assert response.status_code == 202
        assert response.get_json()["job"]["status"] == "pending"

    def test_create_with_invalid_settings(self, client, upload):
        _login(client, 1)

        response = client.post("/api/jobs", json={
            "document_name": "report.pdf",
            "document_path": upload,
            "settings": {"paper_size": "A0"},
        })

        assert response.status_code == 400
        assert client.get("/api/jobs").get_json()["jobs"] == []

    @pytest.mark.parametrize("body", [
        ["report.pdf", "/uploads/report.pdf"],
        "report.pdf",
        42,
    ])
    def test_create_rejects_non_object_body(self, client, api_runner, body):
        _login(client, 1)

        response = client.post("/api/jobs", json=body)

        assert response.status_code == 400
        assert response.get_json()["error"] == "Request body must be a JSON object"
        assert api_runner.calls == []

    def test_history_and_ownership(self, client, api_runner, upload):
        _login(client, 1)
        api_runner.script("lp", lp_accepted(42))
        job_id = client.post("/api/jobs", json={
            "document_name": "report.pdf",
            "document_path": upload,
        }).get_json()["job"]["id"]

        assert [job["id"] for job in client.get("/api/jobs").get_json()["jobs"]] == [job_id]
        assert client.get(f"/api/jobs/{job_id}").status_code == 200

        _login(client, 2)
        assert client.get(f"/api/jobs/{job_id}").status_code == 403
        assert client.get("/api/jobs").get_json()["jobs"] == []
        assert client.get("/api/jobs/999").status_code == 404

    def test_reconcile_and_cancel(self, client, api_runner, upload):
        _login(client, 1)
        api_runner.script("lp", lp_accepted(42))
        job_id = client.post("/api/jobs", json={
            "document_name": "report.pdf",
            "document_path": upload,
        }).get_json()["job"]["id"]

        api_runner.script("lpq", lpq_listing(42))
        response = client.post(f"/api/jobs/{job_id}/reconcile")
        assert response.get_json()["status"] == "in-progress"

        api_runner.script("lpq", LPQ_EMPTY)
        response = client.post(f"/api/jobs/{job_id}/reconcile")
        assert response.get_json()["status"] == "completed"

        assert client.post(f"/api/jobs/{job_id}/cancel").status_code == 409
        assert client.post(f"/api/jobs/{job_id}/resubmit").status_code == 409


class TestPrinterRoutes:
    """Tests for printer, cleanup and health endpoints."""

    def test_options(self, client):
        body = client.get("/api/printer/options").get_json()

        assert body["defaults"]["paper_size"] == "A4"
        assert body["options"]["print_qualities"] == [600, 1200]
        assert "capabilities" in body

    def test_status(self, client, api_runner):
        api_runner.script("lpstat", FileNotFoundError("lpstat"))

        body = client.get("/api/printer/status").get_json()

        assert body["status"] == "subsystem_unavailable"
        assert body["available"] is False

    def test_queue(self, client, api_runner):
        api_runner.script("lpq", lpq_listing(7))

        body = client.get("/api/printer/queue").get_json()

        assert body["available"] is True
        assert body["jobs"][0]["token"] == "7"

    def test_cleanup(self, client):
        body = client.post("/api/cleanup").get_json()

        assert body["uploaded_docs"] == 0
        assert body["print_jobs"] == 0

    def test_health(self, client):
        body = client.get("/health").get_json()

        assert body == {"status": "ok", "database": True, "cleanup_scheduled": False}

    def test_unknown_route_is_json(self, client):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}


class TestStatusCodes:
    """Tests for the exception-to-HTTP mapping."""

    @pytest.mark.parametrize("error,status_code", [
        (MissingDataError(["user_id"]), 400),
        (InvalidTransitionError(1, "completed", "cancel"), 409),
        (DeviceUnavailableError("printer offline"), 503),
        (PersistenceError("insert", "disk full"), 500),
    ])
    def test_mapping(self, error, status_code):
        assert status_code_for(error) == status_code


class TestShutdown:
    """Tests for shutdown_app()."""

    def test_closes_database_and_drops_exit_hook(self, app_config, api_runner):
        gateway = CupsGateway(printer_name=PRINTER, runner=api_runner)

        with patch("app.atexit") as mock_atexit:
            app = create_app(app_config, gateway=gateway)
            hook = mock_atexit.register.call_args[0][0]

            shutdown_app(app)
            shutdown_app(app)

        mock_atexit.unregister.assert_called_once_with(hook)
        assert not app.config["DATABASE"].is_open
        assert SHUTDOWN_EXTENSION not in app.extensions
