"""Integration tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client: TestClient) -> None:
        """Test that /health endpoint returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        """Test that /health endpoint returns healthy status, timestamp and version."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["timestamp"] is not None
        assert data["version"] == "0.1.0"


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_healthy(self, client: TestClient) -> None:
        """Test that /health/ready returns 200 when all dependencies are healthy."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness_includes_dependency_checks(self, client: TestClient) -> None:
        """Test that the commerce backend and payments are both checked."""
        data = client.get("/health/ready").json()

        check_names = [check["name"] for check in data["checks"]]
        assert check_names == ["commerce_backend", "payments"]

    def test_commerce_check_includes_latency(self, client: TestClient) -> None:
        """Test that the commerce backend check includes latency measurement."""
        data = client.get("/health/ready").json()

        backend_check = next(c for c in data["checks"] if c["name"] == "commerce_backend")
        assert backend_check["latency_ms"] is not None

    def test_readiness_returns_503_when_backend_unreachable(self) -> None:
        """Test that /health/ready returns 503 with the error when the store is down."""
        with patch(
            "src.api.routes.health.check_woocommerce_connection",
            new=AsyncMock(return_value={"healthy": False, "error": "Connection timeout"}),
        ):
            from src.main import app

            with TestClient(app) as test_client:
                response = test_client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        backend_check = next(c for c in data["checks"] if c["name"] == "commerce_backend")
        assert backend_check["healthy"] is False
        assert backend_check["error"] == "Connection timeout"


class TestErrorResponseSchema:
    """Tests for error response schema compliance."""

    def test_unknown_route_is_404(self, client: TestClient) -> None:
        """Test that unknown paths return 404."""
        response = client.get("/nonexistent-endpoint")

        assert response.status_code == 404

    def test_unexpected_error_is_formatted(self) -> None:
        """Test that an unexpected exception is returned as an ErrorResponse."""
        with patch(
            "src.api.routes.health.check_woocommerce_connection",
            new=AsyncMock(side_effect=Exception("Test error")),
        ):
            from src.main import app

            with TestClient(app, raise_server_exceptions=False) as test_client:
                response = test_client.get("/health/ready")

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "internal_error"
        assert "timestamp" in data
