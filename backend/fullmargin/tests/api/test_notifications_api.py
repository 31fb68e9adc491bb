"""Notification inbox and system status."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_inbox_and_mark_seen(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")
    traders = [await make_user(f"trader{i}@example.com", full_name=f"Trader {i}") for i in range(3)]

    for trader in traders:
        await client.post(
            "/communaute/memberships/join",
            json={"communityId": str(community.id)},
            headers=auth(trader),
        )

    inbox = await client.get("/notifications", headers=auth(owner))
    assert inbox.status_code == 200
    data = inbox.json()["data"]
    assert data["unseen"] == 3
    assert {n["kind"] for n in data["items"]} == {"community_member_joined"}
    assert all(n["communityId"] == str(community.id) for n in data["items"])

    first_id = data["items"][0]["id"]
    marked = await client.post("/notifications/mark-seen", json={"ids": [first_id]}, headers=auth(owner))
    assert marked.json()["data"] == {"updated": 1}

    unseen = await client.get("/notifications", params={"unseen": "true"}, headers=auth(owner))
    assert unseen.json()["data"]["unseen"] == 2
    assert first_id not in {n["id"] for n in unseen.json()["data"]["items"]}

    # No body marks everything
    rest = await client.post("/notifications/mark-seen", headers=auth(owner))
    assert rest.json()["data"] == {"updated": 2}

    empty = await client.get("/notifications", params={"unseen": "true"}, headers=auth(owner))
    assert empty.json()["data"] == {"items": [], "unseen": 0}


async def test_inbox_is_private(client: AsyncClient, make_user, auth) -> None:
    user = await make_user("lonely@example.com")
    assert (await client.get("/notifications")).status_code == 401
    inbox = await client.get("/notifications", headers=auth(user))
    assert inbox.json()["data"] == {"items": [], "unseen": 0}


async def test_system_status_counts_running_lives(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")

    before = await client.get("/system/status")
    assert before.status_code == 200
    body = before.json()
    assert body["ok"] is True
    assert body["db"] == {"ok": True}
    assert body["lives"] == {"running": 0}
    assert body["ts"]

    await client.post(
        "/communaute/lives/start-now",
        json={"communityId": str(community.id), "title": "Ouverture US"},
        headers=auth(owner),
    )
    after = await client.get("/system/status")
    assert after.json()["lives"] == {"running": 1}
