"""
Test suite for per-group rate limiting.
"""

import asyncio
from typing import Any

import pytest
from httpx import AsyncClient

from src.core.config import get_settings
from src.core.rate_limit import limiter


@pytest.fixture
def tight_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = get_settings()
    monkeypatch.setattr(settings, "rate_limit_quotes", "2/second")
    monkeypatch.setattr(settings, "rate_limit_devices", "3/minute")


def quote_body(catalog: dict[str, Any]) -> dict[str, Any]:
    return {
        "device_model_id": str(catalog["models"]["iPhone 15 Pro"]),
        "storage": "128GB",
        "condition": "Good",
    }


@pytest.mark.asyncio
class TestRateLimiting:
    """Tests for fixed-window limits read from settings."""

    async def test_limit_exceeded_returns_429(
        self, client: AsyncClient, catalog: dict[str, Any], tight_limits: None
    ) -> None:
        for _ in range(2):
            response = await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))
            assert response.status_code == 200

        response = await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))

        assert response.status_code == 429
        assert response.json() == {
            "error": {"message": "Too many requests", "code": "RATE_LIMITED"}
        }
        assert int(response.headers["Retry-After"]) >= 1

    async def test_window_resets(
        self, client: AsyncClient, catalog: dict[str, Any], tight_limits: None
    ) -> None:
        for _ in range(3):
            await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))

        await asyncio.sleep(1.1)
        response = await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))

        assert response.status_code == 200

    async def test_group_shares_one_counter(
        self, client: AsyncClient, catalog: dict[str, Any], tight_limits: None
    ) -> None:
        model_id = catalog["models"]["iPhone 15 Pro"]

        assert (await client.get("/api/v1/devices/catalog")).status_code == 200
        assert (await client.get("/api/v1/devices/conditions")).status_code == 200
        assert (await client.get(f"/api/v1/devices/models/{model_id}")).status_code == 200

        response = await client.get("/api/v1/devices/conditions")
        assert response.status_code == 429

        quote = await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))
        assert quote.status_code == 200

    async def test_reset_clears_counters(
        self, client: AsyncClient, catalog: dict[str, Any], tight_limits: None
    ) -> None:
        for _ in range(3):
            await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))

        limiter.reset()

        response = await client.post("/api/v1/quotes/calculate", json=quote_body(catalog))
        assert response.status_code == 200
