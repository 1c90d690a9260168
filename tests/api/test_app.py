"""
Tests for the application factory, health endpoints and exception handlers.
"""
import logging
from unittest.mock import MagicMock

from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_app.api.v1.practice import get_registry
from practice_app.main import app, create_application


class TestApplication:
    def test_exception_handlers_registered(self):
        assert StarletteHTTPException in app.exception_handlers
        assert RequestValidationError in app.exception_handlers
        assert Exception in app.exception_handlers

    def test_root(self):
        client = TestClient(app)

        data = client.get("/").json()

        assert data["docs"] == "/v1/docs"

    def test_request_id_is_echoed(self):
        client = TestClient(app)

        response = client.get("/v1/ping", headers={"X-Request-ID": "req-42"})

        assert response.json() == {"message": "pong"}
        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_generated_when_missing(self):
        client = TestClient(app)

        response = client.get("/v1/ping")

        assert response.headers["X-Request-ID"]

    def test_lifespan_creates_registry(self):
        fresh = create_application()

        with TestClient(fresh) as client:
            data = client.get("/v1/health").json()

        assert data["status"] == "healthy"
        assert data["live_sessions"] == 0
        assert fresh.state.registry is not None

    def test_shutdown_discards_live_sessions(self):
        fresh = create_application()

        with TestClient(fresh) as client:
            response = client.post("/v1/practice/sessions", json={"question_numbers": [1, 2]})
            assert response.status_code == 201
            assert len(fresh.state.registry) == 1

        assert len(fresh.state.registry) == 0

    def test_unhandled_exception_returns_error_id(self):
        broken = MagicMock()
        broken.get.side_effect = RuntimeError("registry corrupted")
        app.dependency_overrides[get_registry] = lambda: broken
        try:
            client = TestClient(app, raise_server_exceptions=False)
            response = client.get("/v1/practice/sessions/abc")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        data = response.json()
        assert data["detail"] == "Internal server error"
        assert data["error_id"]
        assert "registry corrupted" not in response.text


class TestRequestLogging:
    def test_session_requests_carry_session_id(self, caplog):
        registry = MagicMock()
        registry.get.return_value = None
        app.dependency_overrides[get_registry] = lambda: registry
        caplog.set_level(logging.DEBUG, logger="practice_app.middleware.request_logging")
        try:
            response = TestClient(app).get("/v1/practice/sessions/missing-1")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 404
        records = [r for r in caplog.records if r.message == "Client error response"]
        assert len(records) == 1
        assert records[0].session_id == "missing-1"
        assert records[0].status_code == 404

    def test_health_probes_logged_at_debug(self, caplog):
        caplog.set_level(logging.DEBUG, logger="practice_app.middleware.request_logging")

        TestClient(app).get("/v1/ping")

        completed = [r for r in caplog.records if r.message == "Request completed"]
        assert completed
        assert all(r.levelno == logging.DEBUG for r in completed)
