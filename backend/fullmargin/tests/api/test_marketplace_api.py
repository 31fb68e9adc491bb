"""Seller catalogue, public listing and admin moderation routes."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

ADMIN = "/admin/marketplace/products"


async def _submit(client: AsyncClient, headers, title: str, **pricing):
    return await client.post(
        "/marketplace/products",
        json={
            "title": title,
            "shortDescription": "Stratégie complète",
            "categoryKey": "Formation",
            "pricing": pricing or {"mode": "one_time", "amount": 49.9},
        },
        headers=headers,
    )


async def test_seller_submission_and_listing(client: AsyncClient, make_user, auth) -> None:
    seller = await make_user("seller@example.com")

    created = await _submit(client, auth(seller), "Pack Price Action")
    assert created.status_code == 201, created.text
    product = created.json()["data"]
    assert product["status"] == "pending"
    assert product["categoryKey"] == "formation"
    assert product["pricing"]["mode"] == "one_time"
    assert float(product["pricing"]["amount"]) == 49.9

    invalid = await _submit(client, auth(seller), "Abonnement", mode="subscription", amount=9)
    assert invalid.status_code == 400
    assert invalid.json()["error"]["code"] == "INVALID_PRICING"

    mine = await client.get("/marketplace/products/mine", headers=auth(seller))
    assert [p["id"] for p in mine.json()["data"]["items"]] == [product["id"]]

    public = await client.get("/marketplace/public/products")
    assert public.json()["data"]["items"] == []
    assert public.json()["data"]["meta"] == {"page": 1, "pageSize": 24, "total": 0}


async def test_admin_routes_require_staff(client: AsyncClient, make_user, auth) -> None:
    seller = await make_user("seller@example.com")
    assert (await client.get(ADMIN)).status_code == 401
    denied = await client.get(ADMIN, headers=auth(seller))
    assert denied.status_code == 403
    assert denied.json()["error"]["code"] == "FORBIDDEN"


async def test_moderation_flow(client: AsyncClient, make_user, auth) -> None:
    seller = await make_user("seller@example.com")
    agent = await make_user("agent@example.com", roles=["agent"])
    staff = auth(agent)
    product_id = (await _submit(client, auth(seller), "Robot Breakout")).json()["data"]["id"]

    pending = await client.get(ADMIN, params={"status": "pending", "categoryKey": "formation"}, headers=staff)
    assert pending.json()["data"]["meta"]["total"] == 1

    bad_status = await client.get(ADMIN, params={"status": "archived"}, headers=staff)
    assert bad_status.status_code == 422

    published = await client.patch(
        f"{ADMIN}/{product_id}",
        json={"status": "published", "featured": True, "verified": True},
        headers=staff,
    )
    assert published.status_code == 200, published.text
    body = published.json()["data"]
    assert body["status"] == "published"
    assert body["featured"] is True
    assert body["reviewedAt"] is not None

    badge = await client.patch(f"{ADMIN}/{product_id}/badge", headers=staff)
    assert badge.json()["data"] == {"id": product_id, "badgeEligible": True, "message": "Badge attribué"}

    catalogue = await client.get("/marketplace/public/products", params={"q": "robot", "pageSize": 10})
    assert [p["id"] for p in catalogue.json()["data"]["items"]] == [product_id]

    rejected = await client.patch(
        f"{ADMIN}/{product_id}",
        json={"status": "rejected", "moderationReason": "Contenu trompeur"},
        headers=staff,
    )
    body = rejected.json()["data"]
    assert (body["badgeEligible"], body["featured"]) == (False, False)
    assert body["moderationReason"] == "Contenu trompeur"

    forbidden_badge = await client.patch(f"{ADMIN}/{product_id}/badge", headers=staff)
    assert forbidden_badge.status_code == 400
    assert forbidden_badge.json()["error"]["code"] == "BADGE_FORBIDDEN_FOR_STATUS"

    unknown_field = await client.patch(f"{ADMIN}/{product_id}", json={"price": 3}, headers=staff)
    assert unknown_field.status_code == 422


async def test_out_of_range_amount_is_a_pricing_error(client: AsyncClient, make_user, auth) -> None:
    seller = await make_user("seller@example.com")
    agent = await make_user("agent@example.com", roles=["agent"])
    product_id = (await _submit(client, auth(seller), "Pack Swing")).json()["data"]["id"]

    for amount in (1e30, 10_000_000_000.01):
        created = await _submit(client, auth(seller), "Trop cher", mode="one_time", amount=amount)
        assert created.status_code == 400, created.text
        assert created.json()["error"]["code"] == "INVALID_PRICING"
        assert created.json()["error"]["details"] == {"field": "amount"}

        patched = await client.patch(
            f"{ADMIN}/{product_id}",
            json={"pricing": {"mode": "one_time", "amount": amount}},
            headers=auth(agent),
        )
        assert patched.status_code == 400, patched.text
        assert patched.json()["error"]["code"] == "INVALID_PRICING"

    mine = await client.get("/marketplace/products/mine", headers=auth(seller))
    assert [p["title"] for p in mine.json()["data"]["items"]] == ["Pack Swing"]
    assert float(mine.json()["data"]["items"][0]["pricing"]["amount"]) == 49.9


async def test_soft_delete(client: AsyncClient, make_user, auth) -> None:
    seller = await make_user("seller@example.com")
    admin = await make_user("admin@example.com", roles=["user", "admin"])
    staff = auth(admin)
    product_id = (await _submit(client, auth(seller), "Indicateur VWAP")).json()["data"]["id"]

    deleted = await client.request("DELETE", f"{ADMIN}/{product_id}", json={"reason": "Doublon"}, headers=staff)
    assert deleted.status_code == 200, deleted.text
    assert deleted.json()["data"]["deletedAt"] is not None

    again = await client.delete(f"{ADMIN}/{product_id}", headers=staff)
    assert again.json()["data"]["deletedAt"] == deleted.json()["data"]["deletedAt"]

    detail = await client.get(f"{ADMIN}/{product_id}", headers=staff)
    assert detail.json()["data"]["moderationReason"] == "Doublon"

    missing = await client.get(f"{ADMIN}/00000000-0000-0000-0000-000000000000", headers=staff)
    assert missing.status_code == 404
