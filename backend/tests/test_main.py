"""
Test suite for the FastAPI application: health endpoints, middleware and
exception handlers.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from httpx import AsyncClient

from src.main import app


# ============================================================================
# Health Endpoints
# ============================================================================


@pytest.mark.asyncio
class TestHealthEndpoints:
    """Test suite for health, readiness and liveness endpoints."""

    async def test_health_check_returns_200(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert "version" in data

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"

    async def test_readiness_check_when_database_is_up(self, client: AsyncClient):
        with patch("src.main.check_database_health", new=AsyncMock(return_value=True)):
            response = await client.get("/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ready"
        assert data["dependencies_ready"] is True
        assert data["database"] == "healthy"

    async def test_readiness_check_when_database_is_down(self, client: AsyncClient):
        """
        Test readiness endpoint reports 503 when the database is unreachable.

        Orchestrators take the instance out of rotation on a non-2xx answer.
        """
        with patch("src.main.check_database_health", new=AsyncMock(return_value=False)):
            response = await client.get("/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["dependencies_ready"] is False


# ============================================================================
# Middleware
# ============================================================================


@pytest.mark.asyncio
class TestMiddleware:
    """Test suite for request ID and security header middleware."""

    async def test_request_id_is_generated(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers.get("X-Request-ID")

    async def test_request_id_is_preserved(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-ID": "req-12345"})

        assert response.headers["X-Request-ID"] == "req-12345"

    async def test_request_ids_are_unique(self, client: AsyncClient):
        first = await client.get("/health")
        second = await client.get("/health")

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    async def test_security_headers_on_success(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in response.headers

    async def test_security_headers_on_errors(self, client: AsyncClient):
        response = await client.get("/api/v1/staff/orders")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["X-Content-Type-Options"] == "nosniff"


# ============================================================================
# Exception Handlers
# ============================================================================


@pytest.mark.asyncio
class TestExceptionHandlers:
    """Test suite for the error envelope."""

    async def test_unknown_route_uses_error_envelope(self, client: AsyncClient):
        response = await client.get("/api/v1/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert "message" in error

    async def test_method_not_allowed(self, client: AsyncClient):
        response = await client.delete("/health")

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert "error" in response.json()

    async def test_malformed_json_is_a_validation_error(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/quotes/calculate",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_invalid_path_parameter(self, client: AsyncClient):
        response = await client.get("/api/v1/devices/models/not-a-uuid")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        details = response.json()["error"]["details"]
        assert details[0]["field"] == "model_id"


# ============================================================================
# OpenAPI Documentation
# ============================================================================


class TestOpenAPIDocumentation:
    """Test suite for the generated schema."""

    def test_openapi_schema_lists_routes(self):
        paths = app.openapi()["paths"]

        assert "/api/v1/devices/catalog" in paths
        assert "/api/v1/quotes/calculate" in paths
        assert "/api/v1/trade-in/submit" in paths
        assert "/api/v1/staff/orders/{order_id}" in paths
        assert "/health" in paths
