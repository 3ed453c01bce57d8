"""Tests for the health and landing endpoints."""

from unittest.mock import AsyncMock, patch


class TestRootEndpoint:
    def test_root_reports_anonymous(self, client):
        data = client.get("/").json()
        assert data["message"] == "HabitFlow"
        assert data["authenticated"] is False

    def test_root_reports_signed_in(self, signed_in):
        assert signed_in.get("/").json()["authenticated"] is True


class TestHealthEndpoint:
    def test_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "habitflow"
        assert data["database"] == "connected"
        assert data["uptime_seconds"] >= 0

    def test_degraded_when_store_unreachable(self, client):
        with patch(
            "habitflow.api.health.check_database_health",
            new_callable=AsyncMock,
            return_value=False,
        ):
            data = client.get("/health").json()
        assert data["status"] == "degraded"
        assert data["database"] == "disconnected"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
