"""HTTP surface: authentication, error mapping and the rental flow end to end.

Invariants:
    - Missing or bad tokens return 401 before any service runs
    - Domain errors render as {"success": false, "error": {code, message}}
    - Unauthorized -> 403, NotFound -> 404, Conflict -> 409, invalid input -> 422
"""

import uuid

import pytest

from app import app
from conftest import auth_headers
from models.enums import UserRole


@pytest.fixture
async def people(make_user, make_listing):
    owner = await make_user(UserRole.OWNER)
    tenant = await make_user(UserRole.TENANT)
    listing = await make_listing(owner)
    return owner, tenant, listing


async def test_requests_without_token_are_401(client):
    res = await client.get("/v1/listings/")
    assert res.status_code == 401


async def test_bad_token_is_401(client):
    res = await client.get("/v1/listings/", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401


async def test_offer_confirm_finalize_flow(client, people):
    owner, tenant, listing = people

    res = await client.post(
        f"/v1/listings/{listing.id}/offers",
        json={"tenant_id": str(tenant.id)},
        headers=auth_headers(owner),
    )
    assert res.status_code == 201
    rental_id = res.json()["id"]
    assert res.json()["status"] == "pending"

    res = await client.post(
        f"/v1/rentals/{rental_id}/confirm", headers=auth_headers(tenant)
    )
    assert res.status_code == 200
    assert res.json()["status"] == "active"

    res = await client.get(
        f"/v1/listings/{listing.id}/tenant", headers=auth_headers(owner)
    )
    assert res.status_code == 200
    assert res.json()["id"] == str(tenant.id)

    res = await client.post(
        f"/v1/rentals/{rental_id}/finalize", headers=auth_headers(owner)
    )
    assert res.status_code == 200
    assert res.json()["status"] == "finished"

    res = await client.get(
        f"/v1/rentals/{rental_id}/history", headers=auth_headers(tenant)
    )
    assert res.status_code == 200
    assert len(res.json()) == 3


async def test_conflict_maps_to_409(client, people):
    owner, tenant, listing = people
    await client.post(
        f"/v1/listings/{listing.id}/offers",
        json={"tenant_id": str(tenant.id)},
        headers=auth_headers(owner),
    )

    res = await client.delete(f"/v1/listings/{listing.id}", headers=auth_headers(owner))

    assert res.status_code == 409
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "CONFLICT"


async def test_unauthorized_maps_to_403(client, people):
    _, tenant, _ = people

    res = await client.get("/v1/listings/mine", headers=auth_headers(tenant))

    assert res.status_code == 403
    assert res.json()["error"]["code"] == "UNAUTHORIZED"


async def test_not_found_maps_to_404(client, people):
    _, tenant, _ = people

    res = await client.post(
        f"/v1/favorites/{uuid.uuid4()}/toggle", headers=auth_headers(tenant)
    )

    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


async def test_invalid_range_maps_to_422(client, people):
    _, tenant, _ = people

    res = await client.get(
        "/v1/listings/",
        params={"price_min": 900, "price_max": 100},
        headers=auth_headers(tenant),
    )

    assert res.status_code == 422
    assert res.json()["error"]["code"] == "INVALID_RANGE"
    assert res.json()["error"]["field"] == "price"


async def test_malformed_body_uses_validation_shape(client, people):
    owner, _, listing = people

    res = await client.post(
        f"/v1/listings/{listing.id}/offers",
        json={"tenant_id": "not-a-uuid"},
        headers=auth_headers(owner),
    )

    assert res.status_code == 422
    assert res.json()["error"] == "Validation failed"
    assert res.json()["details"]


async def test_create_browse_and_toggle_favorite(client, people):
    owner, tenant, _ = people

    res = await client.post(
        "/v1/listings/",
        json={
            "title": "Loft over the bakery",
            "listing_type": "studio",
            "price": 650,
            "area": 30,
            "bedroom_count": 1,
            "bathroom_count": 1,
            "address": "Praca Getulio Vargas 3",
            "latitude": -22.42,
            "longitude": -42.97,
            "images": ["img/loft.jpg"],
        },
        headers=auth_headers(owner),
    )
    assert res.status_code == 201
    created = res.json()["id"]

    res = await client.post(
        f"/v1/favorites/{created}/toggle", headers=auth_headers(tenant)
    )
    assert res.json() == {"listing_id": created, "is_favorite": True}

    res = await client.get(
        "/v1/favorites/", headers=auth_headers(tenant)
    )
    assert res.status_code == 200
    assert [item["id"] for item in res.json()["items"]] == [created]
    assert res.json()["total_pages"] == 1

    res = await client.get(
        "/v1/listings/",
        params={"q": "bakery"},
        headers=auth_headers(tenant),
    )
    assert [item["id"] for item in res.json()["items"]] == [created]
    assert res.json()["items"][0]["is_favorite"] is True


async def test_status_toggle_and_delete(client, people):
    owner, _, listing = people

    res = await client.patch(
        f"/v1/listings/{listing.id}/status",
        json={"status": "unavailable"},
        headers=auth_headers(owner),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "unavailable"

    res = await client.delete(f"/v1/listings/{listing.id}", headers=auth_headers(owner))
    assert res.status_code == 204

    res = await client.get(f"/v1/listings/{listing.id}", headers=auth_headers(owner))
    assert res.status_code == 404


async def test_tenant_directory_route(client, people):
    owner, tenant, _ = people

    res = await client.get("/v1/users/tenants", headers=auth_headers(owner))

    assert res.status_code == 200
    assert [u["id"] for u in res.json()] == [str(tenant.id)]


def test_collection_routes_are_registered():
    registered = {
        (route.path, method)
        for route in app.routes
        for method in getattr(route, "methods", None) or ()
    }

    assert ("/v1/listings/", "GET") in registered
    assert ("/v1/listings/", "POST") in registered
    assert ("/v1/favorites/", "GET") in registered
    assert ("/v1/listings/mine", "GET") in registered
