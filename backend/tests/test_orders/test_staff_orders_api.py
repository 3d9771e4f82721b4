"""
API tests for staff authorization, order management and the client view.
"""

from typing import Any, Callable

import pytest
from httpx import AsyncClient
from jose import jwt

from src.core.config import get_settings

API = "/api/v1"
ADMIN_EMAIL = "admin@example.com"
STAFF_EMAIL = "staff@example.com"
INACTIVE_STAFF_EMAIL = "former@example.com"
CUSTOMER_EMAIL = "jane.doe@example.com"


async def submit_order(client: AsyncClient, body: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(f"{API}/trade-in/submit", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ============================================================================
# Authorization
# ============================================================================


@pytest.mark.asyncio
class TestStaffAuthorization:
    """Tests for bearer token and allow-list checks."""

    async def test_missing_token_is_unauthorized(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/staff/orders")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_garbage_token_is_unauthorized(
        self, client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
    ) -> None:
        response = await client.get(
            f"{API}/staff/orders", headers=auth_headers(STAFF_EMAIL, token="not.a.jwt")
        )

        assert response.status_code == 401

    async def test_forged_token_is_unauthorized(
        self, client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
    ) -> None:
        settings = get_settings()
        forged = jwt.encode(
            {"sub": "idp|x", "email": STAFF_EMAIL, "aud": settings.jwt_audience},
            "wrong-secret",
            algorithm=settings.jwt_algorithm,
        )

        response = await client.get(
            f"{API}/staff/orders", headers=auth_headers(STAFF_EMAIL, token=forged)
        )

        assert response.status_code == 401

    async def test_unknown_identity_is_forbidden(
        self, client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
    ) -> None:
        response = await client.get(
            f"{API}/staff/orders", headers=auth_headers("stranger@example.com")
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    async def test_inactive_member_is_forbidden(
        self, client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
    ) -> None:
        response = await client.get(
            f"{API}/staff/orders", headers=auth_headers(INACTIVE_STAFF_EMAIL)
        )

        assert response.status_code == 403

    async def test_me_returns_identity(
        self, client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
    ) -> None:
        response = await client.get(f"{API}/staff/me", headers=auth_headers("Staff@Example.com"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == STAFF_EMAIL
        assert data["role"] == "STAFF"
        assert data["is_active"] is True


# ============================================================================
# Order Management
# ============================================================================


@pytest.mark.asyncio
class TestStaffOrderEndpoints:
    """Tests for listing, inspecting, updating and deleting orders."""

    async def test_get_order_details(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.get(
            f"{API}/staff/orders/{order['id']}", headers=auth_headers(STAFF_EMAIL)
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["customer"]["email"] == CUSTOMER_EMAIL
        assert data["device_model"]["display_name"] == "Apple iPhone 15 Pro"
        assert data["storage_option"]["storage"] == "256GB"
        assert data["condition"]["name"] == "Excellent"
        assert [h["status"] for h in data["status_history"]] == ["PENDING"]
        assert data["status_history"][0]["changed_by"] == f"customer:{CUSTOMER_EMAIL}"

    async def test_repeated_reads_are_identical(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())
        headers = auth_headers(STAFF_EMAIL)
        url = f"{API}/staff/orders/{order['id']}"
        await client.patch(
            url, json={"status": "PROCESSING", "notes": "Inspection started"}, headers=headers
        )

        first = await client.get(url, headers=headers)
        second = await client.get(url, headers=headers)

        assert first.status_code == 200
        assert len(first.json()["data"]["status_history"]) == 2
        assert first.content == second.content

    async def test_revised_offer_flow(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())
        headers = auth_headers(STAFF_EMAIL)
        url = f"{API}/staff/orders/{order['id']}"

        response = await client.patch(
            url,
            json={"status": "AWAITING_APPROVAL", "final_amount": "1100.00", "notes": "Scratches"},
            headers=headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "AWAITING_APPROVAL"
        assert data["final_amount"] == "1100.00"
        assert data["status_history"][-1]["notes"] == "Scratches"
        assert data["status_history"][-1]["changed_by"] == STAFF_EMAIL

        forbidden = await client.patch(url, json={"status": "PROCESSING"}, headers=headers)
        assert forbidden.status_code == 403

        accepted = await client.post(
            f"{API}/trade-in/respond",
            json={"order_id": order["id"], "email": CUSTOMER_EMAIL, "response": "ACCEPT"},
        )
        assert accepted.json()["data"]["status"] == "PROCESSING"

        completed = await client.patch(url, json={"status": "COMPLETED"}, headers=headers)
        assert completed.status_code == 200
        history = completed.json()["data"]["status_history"]
        assert [h["sequence"] for h in history] == [1, 2, 3, 4]
        assert [h["status"] for h in history] == [
            "PENDING",
            "AWAITING_APPROVAL",
            "PROCESSING",
            "COMPLETED",
        ]

    async def test_revised_offer_without_amount_fails(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.patch(
            f"{API}/staff/orders/{order['id']}",
            json={"status": "AWAITING_APPROVAL"},
            headers=auth_headers(STAFF_EMAIL),
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "final_amount"

    async def test_invalid_transition_conflicts(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.patch(
            f"{API}/staff/orders/{order['id']}",
            json={"status": "COMPLETED"},
            headers=auth_headers(STAFF_EMAIL),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    async def test_empty_update_fails_validation(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())

        response = await client.patch(
            f"{API}/staff/orders/{order['id']}", json={}, headers=auth_headers(STAFF_EMAIL)
        )

        assert response.status_code == 400

    async def test_list_orders_paginates(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        for email in ("a@example.com", "b@example.com", "c@example.com"):
            await submit_order(client, submission(email=email))

        response = await client.get(
            f"{API}/staff/orders",
            params={"page": 2, "limit": 2},
            headers=auth_headers(STAFF_EMAIL),
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "current_page": 2,
            "total_pages": 2,
            "total_count": 3,
            "has_next_page": False,
            "has_prev_page": True,
        }

    async def test_list_orders_by_status(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())
        await submit_order(client, submission(email="b@example.com"))
        headers = auth_headers(STAFF_EMAIL)
        await client.patch(
            f"{API}/staff/orders/{order['id']}", json={"status": "PROCESSING"}, headers=headers
        )

        response = await client.get(
            f"{API}/staff/orders", params={"status": "PROCESSING"}, headers=headers
        )

        assert [o["id"] for o in response.json()["data"]] == [order["id"]]

    async def test_page_size_is_capped(
        self, client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
    ) -> None:
        response = await client.get(
            f"{API}/staff/orders", params={"limit": 101}, headers=auth_headers(STAFF_EMAIL)
        )

        assert response.status_code == 400

    async def test_delete_requires_admin(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        order = await submit_order(client, submission())
        url = f"{API}/staff/orders/{order['id']}"

        forbidden = await client.delete(url, headers=auth_headers(STAFF_EMAIL))
        assert forbidden.status_code == 403

        response = await client.delete(url, headers=auth_headers(ADMIN_EMAIL))
        assert response.status_code == 200
        assert response.json()["data"] == {
            "id": order["id"],
            "order_number": order["order_number"],
            "deleted": True,
        }

        missing = await client.get(url, headers=auth_headers(ADMIN_EMAIL))
        assert missing.status_code == 404


# ============================================================================
# Clients
# ============================================================================


@pytest.mark.asyncio
class TestClientEndpoints:
    """Tests for the staff client view."""

    async def test_list_clients_with_search(
        self,
        client: AsyncClient,
        submission: Callable[..., dict[str, Any]],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        await submit_order(client, submission())
        await submit_order(client, submission())
        await submit_order(
            client, submission(email="sam@example.com", first_name="Sam", last_name="Lee")
        )

        response = await client.get(
            f"{API}/staff/clients",
            params={"search": "DOE"},
            headers=auth_headers(STAFF_EMAIL),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total_count"] == 1
        jane = body["data"][0]
        assert jane["email"] == CUSTOMER_EMAIL
        assert jane["order_count"] == 2
        assert {o["quoted_amount"] for o in jane["orders"]} == {"1350.00"}
