"""
API tests for staff catalog management.
"""

from typing import Any, Callable

import pytest
from httpx import AsyncClient

API = "/api/v1"
ADMIN_EMAIL = "admin@example.com"
STAFF_EMAIL = "staff@example.com"


@pytest.fixture
def staff_headers(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers(STAFF_EMAIL)


@pytest.fixture
def admin_headers(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers(ADMIN_EMAIL)


def model_body(catalog: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    body = {
        "name": "Pixel 8",
        "category_id": str(catalog["categories"]["Smartphone"]),
        "brand_id": str(catalog["brands"]["Google"]),
        "model_number": "GKWS6",
        "release_year": 2023,
        "storage_options": [
            {
                "storage": "128GB",
                "excellent_price": "500.00",
                "good_price": "450.00",
                "fair_price": "400.00",
                "poor_price": "300.00",
            },
            {
                "storage": "256 GB",
                "excellent_price": "600.00",
                "good_price": "540.00",
                "fair_price": "480.00",
            },
        ],
    }
    body.update(overrides)
    return body


# ============================================================================
# Categories, Brands and Conditions
# ============================================================================


@pytest.mark.asyncio
class TestCatalogReferenceData:
    """Tests for categories, brands and conditions."""

    async def test_create_and_update_category(
        self, client: AsyncClient, staff_headers: dict[str, str]
    ) -> None:
        created = await client.post(
            f"{API}/staff/categories",
            json={"name": "Console", "icon": "gamepad"},
            headers=staff_headers,
        )
        assert created.status_code == 201
        category = created.json()["data"]
        assert category["is_active"] is True

        updated = await client.patch(
            f"{API}/staff/categories/{category['id']}",
            json={"is_active": False, "name": None},
            headers=staff_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["is_active"] is False
        assert updated.json()["data"]["name"] == "Console"

    async def test_duplicate_category_conflicts(
        self, client: AsyncClient, staff_headers: dict[str, str]
    ) -> None:
        response = await client.post(
            f"{API}/staff/categories", json={"name": "Tablet"}, headers=staff_headers
        )

        assert response.status_code == 409

    async def test_category_in_use_cannot_be_deleted(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        admin_headers: dict[str, str],
    ) -> None:
        response = await client.delete(
            f"{API}/staff/categories/{catalog['categories']['Laptop']}", headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    async def test_unused_brand_is_deleted_by_admin_only(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        staff_headers: dict[str, str],
        admin_headers: dict[str, str],
    ) -> None:
        url = f"{API}/staff/brands/{catalog['brands']['Microsoft']}"

        forbidden = await client.delete(url, headers=staff_headers)
        assert forbidden.status_code == 403

        response = await client.delete(url, headers=admin_headers)
        assert response.status_code == 204

        brands = await client.get(f"{API}/staff/brands", headers=staff_headers)
        assert "Microsoft" not in {b["name"] for b in brands.json()["data"]}

    async def test_create_condition(
        self, client: AsyncClient, staff_headers: dict[str, str]
    ) -> None:
        response = await client.post(
            f"{API}/staff/conditions",
            json={"name": "Broken", "tier": "POOR", "display_order": 5},
            headers=staff_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["tier"] == "POOR"

    @pytest.mark.parametrize("tier", ["EXCELLENT", "GOOD", "FAIR", "POOR"])
    async def test_conditions_may_share_a_tier(
        self, client: AsyncClient, staff_headers: dict[str, str], tier: str
    ) -> None:
        response = await client.post(
            f"{API}/staff/conditions",
            json={"name": f"Refurbished {tier.title()}", "tier": tier, "display_order": 9},
            headers=staff_headers,
        )

        assert response.status_code == 201

    async def test_shared_tier_condition_prices_by_its_tier(
        self, client: AsyncClient, staff_headers: dict[str, str], catalog: dict[str, Any]
    ) -> None:
        await client.post(
            f"{API}/staff/conditions",
            json={"name": "Broken", "tier": "POOR", "display_order": 5},
            headers=staff_headers,
        )
        model_id = str(catalog["models"]["iPhone 15 Pro"])

        by_name = await client.post(
            f"{API}/quotes/calculate",
            json={"device_model_id": model_id, "storage": "256GB", "condition": "Broken"},
        )
        by_tier = await client.post(
            f"{API}/quotes/calculate",
            json={"device_model_id": model_id, "storage": "256GB", "condition": "POOR"},
        )

        assert by_name.json()["data"]["amount"] == "945.00"
        assert by_tier.json()["data"]["amount"] == "945.00"
        assert by_tier.json()["data"]["condition"] == "Poor"

    async def test_duplicate_condition_name_conflicts(
        self, client: AsyncClient, staff_headers: dict[str, str]
    ) -> None:
        response = await client.post(
            f"{API}/staff/conditions",
            json={"name": "Good", "tier": "GOOD"},
            headers=staff_headers,
        )

        assert response.status_code == 409

    async def test_condition_tier_must_be_known(
        self, client: AsyncClient, staff_headers: dict[str, str]
    ) -> None:
        response = await client.post(
            f"{API}/staff/conditions",
            json={"name": "Mint", "tier": "MINT"},
            headers=staff_headers,
        )

        assert response.status_code == 400


# ============================================================================
# Device Models
# ============================================================================


@pytest.mark.asyncio
class TestDeviceModelManagement:
    """Tests for device models and their storage schedules."""

    async def test_create_model_with_storage_options(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        staff_headers: dict[str, str],
    ) -> None:
        response = await client.post(
            f"{API}/staff/models", json=model_body(catalog), headers=staff_headers
        )

        assert response.status_code == 201
        model = response.json()["data"]
        assert model["display_name"] == "Google Pixel 8"
        options = {o["storage"]: o for o in model["storage_options"]}
        assert set(options) == {"128GB", "256GB"}
        assert options["256GB"]["poor_price"] is None

        quote = await client.post(
            f"{API}/quotes/calculate",
            json={"device_model_id": model["id"], "storage": "256GB", "condition": "Poor"},
        )
        assert quote.status_code == 404
        assert quote.json()["error"]["code"] == "PRICING_NOT_CONFIGURED"

    async def test_duplicate_storage_labels_are_rejected(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        staff_headers: dict[str, str],
    ) -> None:
        body = model_body(
            catalog,
            storage_options=[{"storage": "128GB"}, {"storage": "128gb"}],
        )

        response = await client.post(f"{API}/staff/models", json=body, headers=staff_headers)

        assert response.status_code == 400

    async def test_unknown_brand_is_not_found(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        staff_headers: dict[str, str],
    ) -> None:
        body = model_body(catalog, brand_id="00000000-0000-0000-0000-000000000000")

        response = await client.post(f"{API}/staff/models", json=body, headers=staff_headers)

        assert response.status_code == 404

    async def test_storage_schedule_is_replaced_by_label(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        staff_headers: dict[str, str],
    ) -> None:
        model_id = catalog["models"]["Samsung Galaxy S24"]
        kept_id = str(catalog["storage"]["Samsung Galaxy S24"]["256GB"])

        response = await client.patch(
            f"{API}/staff/models/{model_id}",
            json={
                "storage_options": [
                    {"storage": "256gb", "excellent_price": "777.00", "good_price": "700.00"},
                    {"storage": "1TB", "excellent_price": "999.00"},
                ]
            },
            headers=staff_headers,
        )

        assert response.status_code == 200
        options = response.json()["data"]["storage_options"]
        active = {o["storage"].upper(): o for o in options if o["is_active"]}
        assert set(active) == {"256GB", "1TB"}
        assert active["256GB"]["id"] == kept_id
        assert active["256GB"]["excellent_price"] == "777.00"
        assert any(not o["is_active"] for o in options)

        public = await client.get(f"{API}/devices/models/{model_id}")
        assert {o["storage"].upper() for o in public.json()["data"]["storage_options"]} == {
            "256GB",
            "1TB",
        }

    async def test_list_models_filters_by_category(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        staff_headers: dict[str, str],
    ) -> None:
        response = await client.get(
            f"{API}/staff/models",
            params={"category_id": str(catalog["categories"]["Smartphone"])},
            headers=staff_headers,
        )

        assert response.status_code == 200
        assert {m["name"] for m in response.json()["data"]} == {
            "iPhone 15 Pro",
            "Samsung Galaxy S24",
        }

    async def test_unreferenced_model_is_deleted(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        admin_headers: dict[str, str],
    ) -> None:
        model_id = str(catalog["models"]["MacBook Air M2"])

        response = await client.delete(f"{API}/staff/models/{model_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"id": model_id, "deleted": True, "deactivated": False}

        missing = await client.get(f"{API}/staff/models/{model_id}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_referenced_model_is_deactivated(
        self,
        client: AsyncClient,
        catalog: dict[str, Any],
        submission: Callable[..., dict[str, Any]],
        admin_headers: dict[str, str],
    ) -> None:
        submitted = await client.post(f"{API}/trade-in/submit", json=submission())
        assert submitted.status_code == 201
        model_id = str(catalog["models"]["iPhone 15 Pro"])

        response = await client.delete(f"{API}/staff/models/{model_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"id": model_id, "deleted": False, "deactivated": True}

        model = await client.get(f"{API}/staff/models/{model_id}", headers=admin_headers)
        assert model.json()["data"]["is_active"] is False

        order = await client.get(
            f"{API}/staff/orders/{submitted.json()['data']['id']}", headers=admin_headers
        )
        assert order.json()["data"]["device_model"]["name"] == "iPhone 15 Pro"
