"""
API tests for the public endpoints: catalog browsing, quotes and the
customer side of trade-in orders.
"""

from typing import Any, Callable
from uuid import uuid4

import pytest
from httpx import AsyncClient

API = "/api/v1"
CUSTOMER_EMAIL = "jane.doe@example.com"
STAFF_EMAIL = "staff@example.com"


# ============================================================================
# Helpers
# ============================================================================


async def submit_order(client: AsyncClient, body: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(f"{API}/trade-in/submit", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def send_revised_offer(
    client: AsyncClient,
    headers: dict[str, str],
    order_id: str,
    amount: str = "1200.00",
) -> None:
    response = await client.patch(
        f"{API}/staff/orders/{order_id}",
        json={"status": "AWAITING_APPROVAL", "final_amount": amount},
        headers=headers,
    )
    assert response.status_code == 200, response.text


# ============================================================================
# Catalog
# ============================================================================


@pytest.mark.asyncio
class TestCatalogEndpoints:
    """Tests for public catalog browsing."""

    async def test_catalog_lists_active_entries(
        self, client: AsyncClient, catalog: dict[str, Any]
    ) -> None:
        response = await client.get(f"{API}/devices/catalog")

        assert response.status_code == 200
        data = response.json()["data"]
        assert {c["name"] for c in data["conditions"]} == {"Excellent", "Good", "Fair", "Poor"}
        assert len(data["models"]) == len(catalog["models"])

        iphone = next(m for m in data["models"] if m["name"] == "iPhone 15 Pro")
        assert iphone["display_name"] == "Apple iPhone 15 Pro"
        prices = {o["storage"]: o["excellent_price"] for o in iphone["storage_options"]}
        assert prices["256GB"] == "1350.00"

    async def test_catalog_reads_are_stable(self, client: AsyncClient) -> None:
        first = await client.get(f"{API}/devices/catalog")
        second = await client.get(f"{API}/devices/catalog")

        assert first.content == second.content

    async def test_inactive_model_is_hidden(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        model_id = catalog["models"]["Samsung Galaxy S24"]
        response = await client.patch(
            f"{API}/staff/models/{model_id}",
            json={"is_active": False},
            headers=auth_headers(STAFF_EMAIL),
        )
        assert response.status_code == 200

        catalog_response = await client.get(f"{API}/devices/catalog")
        names = {m["name"] for m in catalog_response.json()["data"]["models"]}
        assert "Samsung Galaxy S24" not in names

        model_response = await client.get(f"{API}/devices/models/{model_id}")
        assert model_response.status_code == 404
        assert model_response.json()["error"]["code"] == "NOT_FOUND"

    async def test_conditions_are_ordered(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/devices/conditions")

        assert response.status_code == 200
        assert [c["tier"] for c in response.json()["data"]] == [
            "EXCELLENT",
            "GOOD",
            "FAIR",
            "POOR",
        ]


# ============================================================================
# Quotes
# ============================================================================


@pytest.mark.asyncio
class TestQuoteEndpoint:
    """Tests for quote calculation over HTTP."""

    async def test_calculate_quote(self, client: AsyncClient, catalog: dict[str, Any]) -> None:
        response = await client.post(
            f"{API}/quotes/calculate",
            json={
                "device_model_id": str(catalog["models"]["iPhone 15 Pro"]),
                "storage": "256gb",
                "condition": "good",
            },
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["amount"] == "1215.00"
        assert data["tier"] == "GOOD"
        assert data["storage"] == "256GB"

    async def test_unknown_model_is_not_found(self, client: AsyncClient) -> None:
        response = await client.post(
            f"{API}/quotes/calculate",
            json={"device_model_id": str(uuid4()), "storage": "128GB", "condition": "Good"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_missing_fields_fail_validation(self, client: AsyncClient) -> None:
        response = await client.post(f"{API}/quotes/calculate", json={"storage": "128GB"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert {d["field"] for d in error["details"]} >= {"device_model_id", "condition"}


# ============================================================================
# Trade-In Orders
# ============================================================================


@pytest.mark.asyncio
class TestTradeInEndpoints:
    """Tests for submission, tracking, offer answers and cancellation."""

    async def test_submit_order(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        response = await client.post(f"{API}/trade-in/submit", json=submission())

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "PENDING"
        assert data["quoted_amount"] == "1350.00"
        assert data["final_amount"] is None
        assert data["payment_method"] == "E_TRANSFER"
        assert data["device_model"] == "Apple iPhone 15 Pro"
        assert data["order_number"].startswith("TI-")
        assert data["submitted_at"].endswith("Z") or data["submitted_at"].endswith("+00:00")

    async def test_unknown_field_is_rejected(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        response = await client.post(
            f"{API}/trade-in/submit", json=submission(status="COMPLETED")
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "status"

    async def test_invalid_email_is_rejected(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        response = await client.post(
            f"{API}/trade-in/submit", json=submission(email="not-an-email")
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "email"

    async def test_negative_quote_is_rejected(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        response = await client.post(
            f"{API}/trade-in/submit", json=submission(quoted_amount="-5.00")
        )

        assert response.status_code == 400

    async def test_track_order(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.post(
            f"{API}/trade-in/track",
            json={"email": "JANE.DOE@example.com", "order_number": order["order_number"]},
        )

        assert response.status_code == 200
        assert response.json()["data"]["id"] == order["id"]

    async def test_track_with_other_email_is_not_found(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.post(
            f"{API}/trade-in/track",
            json={"email": "mallory@example.com", "order_number": order["order_number"]},
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": {"message": "Order not found", "code": "NOT_FOUND"}
        }

    async def test_accept_revised_offer(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())
        await send_revised_offer(client, auth_headers(STAFF_EMAIL), order["id"])

        response = await client.post(
            f"{API}/trade-in/respond",
            json={"order_id": order["id"], "email": CUSTOMER_EMAIL, "response": "ACCEPT"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "PROCESSING"
        assert data["final_amount"] == "1200.00"

    async def test_decline_revised_offer(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())
        await send_revised_offer(client, auth_headers(STAFF_EMAIL), order["id"], "800.00")

        response = await client.post(
            f"{API}/trade-in/respond",
            json={
                "order_id": order["id"],
                "email": CUSTOMER_EMAIL,
                "response": "decline",
                "notes": "Not worth it",
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "REJECTED"

    @pytest.mark.parametrize("answer", ["ACCEPT", "DECLINE"])
    async def test_respond_without_pending_offer_conflicts(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]], answer: str
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.post(
            f"{API}/trade-in/respond",
            json={"order_id": order["id"], "email": CUSTOMER_EMAIL, "response": answer},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

        tracked = await client.post(
            f"{API}/trade-in/track",
            json={"email": CUSTOMER_EMAIL, "order_number": order["order_number"]},
        )
        assert tracked.json()["data"]["status"] == "PENDING"

    async def test_cancel_order(
        self, client: AsyncClient, submission: Callable[..., dict[str, Any]]
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.post(
            f"{API}/trade-in/cancel",
            json={"order_id": order["id"], "email": CUSTOMER_EMAIL},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "CANCELLED"

        again = await client.post(
            f"{API}/trade-in/cancel",
            json={"order_id": order["id"], "email": CUSTOMER_EMAIL},
        )
        assert again.status_code == 409
