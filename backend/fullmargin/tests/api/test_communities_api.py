"""Communities, memberships and access requests over HTTP."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_create_and_lookup_community(client: AsyncClient, make_user, auth) -> None:
    owner = await make_user("owner@example.com", full_name="Owner")
    headers = auth(owner)

    created = await client.post(
        "/communaute/communities",
        json={"name": "Élite Scalping", "category": " Forex ", "visibility": "private"},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    community = created.json()["data"]
    assert community["slug"] == "elite-scalping"
    assert community["category"] == "forex"
    assert community["membersCount"] == 0
    assert community["ownerId"] == str(owner.id)

    duplicate = await client.post("/communaute/communities", json={"name": "Elite scalping"}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "SLUG_TAKEN"

    by_slug = await client.get("/communaute/communities/elite-scalping")
    by_id = await client.get(f"/communaute/communities/{community['id']}")
    assert by_slug.json()["data"]["id"] == by_id.json()["data"]["id"] == community["id"]
    assert by_slug.json()["data"]["owner"]["fullName"] == "Owner"

    assert (await client.get("/communaute/communities/unknown-slug")).status_code == 404

    mine = await client.get("/communaute/communities/my", headers=headers)
    assert [c["id"] for c in mine.json()["data"]["items"]] == [community["id"]]

    forex = await client.get("/communaute/communities/public", params={"category": "FOREX"})
    assert [c["slug"] for c in forex.json()["data"]["items"]] == ["elite-scalping"]
    other = await client.get("/communaute/communities/public", params={"category": "crypto"})
    assert other.json()["data"]["items"] == []


async def test_public_join_leave_and_members(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com", full_name="Trader")
    community = await make_community(owner, "scalping")
    payload = {"communityId": str(community.id)}

    joined = await client.post("/communaute/memberships/join", json=payload, headers=auth(trader))
    assert joined.json()["data"] == {"status": "approved"}

    status = await client.get(f"/communaute/memberships/status/{community.id}", headers=auth(trader))
    assert status.json()["data"]["status"] == "approved"

    mine = await client.get("/communaute/memberships/my", headers=auth(trader))
    assert mine.json()["data"]["communityIds"] == [str(community.id)]

    members = await client.get(f"/communaute/memberships/{community.id}/members", headers=auth(owner))
    assert members.status_code == 200
    assert [(m["id"], m["fullName"]) for m in members.json()["data"]] == [(str(trader.id), "Trader")]

    denied = await client.get(f"/communaute/memberships/{community.id}/members", headers=auth(trader))
    assert denied.status_code == 403

    left = await client.post("/communaute/memberships/leave", json=payload, headers=auth(trader))
    assert left.json()["data"]["status"] == "none"

    count = await client.get(f"/communaute/communities/{community.id}")
    assert count.json()["data"]["membersCount"] == 0


async def test_private_request_flow(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com")
    other = await make_user("other@example.com")
    community = await make_community(owner, "private-desk", visibility="private")

    for user in (trader, other):
        response = await client.post(
            "/communaute/memberships/join",
            json={"communityId": str(community.id), "note": "Bonjour"},
            headers=auth(user),
        )
        assert response.json()["data"]["status"] == "pending"

    incoming = await client.get(f"/communaute/requests/incoming/{community.id}", headers=auth(owner))
    requests_by_user = {r["userId"]: r for r in incoming.json()["data"]["items"]}
    assert set(requests_by_user) == {str(trader.id), str(other.id)}
    assert requests_by_user[str(trader.id)]["note"] == "Bonjour"

    assert (
        await client.get(f"/communaute/requests/incoming/{community.id}", headers=auth(trader))
    ).status_code == 403

    approve = await client.post(
        f"/communaute/requests/{requests_by_user[str(trader.id)]['id']}/approve", headers=auth(owner)
    )
    assert approve.json()["data"]["status"] == "approved"

    # Reject without a body
    reject = await client.post(
        f"/communaute/requests/{requests_by_user[str(other.id)]['id']}/reject", headers=auth(owner)
    )
    assert reject.status_code == 200
    assert reject.json()["data"]["status"] == "rejected"

    mine = await client.get("/communaute/requests/my", headers=auth(other))
    assert [r["status"] for r in mine.json()["data"]["items"]] == ["rejected"]

    page = await client.get(f"/communaute/communities/{community.id}")
    assert page.json()["data"]["membersCount"] == 1


async def test_join_unknown_community_is_404(client: AsyncClient, make_user, auth) -> None:
    user = await make_user("trader@example.com")
    response = await client.post(
        "/communaute/memberships/join",
        json={"communityId": "00000000-0000-0000-0000-000000000000"},
        headers=auth(user),
    )
    assert response.status_code == 404


async def test_request_endpoints_and_badge_counters(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com", full_name="Trader Joe")
    community = await make_community(owner, "private-desk", visibility="private")

    created = await client.post(
        "/communaute/requests",
        json={"communityId": str(community.id), "note": "Je trade le DAX"},
        headers=auth(trader),
    )
    assert created.status_code == 201, created.text
    request_id = created.json()["data"]["id"]
    assert created.json()["data"]["status"] == "pending"

    owner_counters = await client.get("/communaute/requests/counters", headers=auth(owner))
    assert owner_counters.json()["data"] == {"myPending": 0, "ownerPending": 1}

    incoming = (await client.get(f"/communaute/requests/incoming/{community.id}", headers=auth(owner))).json()["data"]
    assert incoming["pendingCount"] == 1
    item = incoming["items"][0]
    assert item["user"] == {"id": str(trader.id), "fullName": "Trader Joe", "avatarUrl": None}
    assert item["note"] == "Je trade le DAX"
    assert item["requestedAt"]

    await client.post(f"/communaute/requests/{request_id}/approve", headers=auth(owner))

    approved = await client.get(
        f"/communaute/requests/incoming/{community.id}", params={"status": "approved"}, headers=auth(owner)
    )
    assert [r["id"] for r in approved.json()["data"]["items"]] == [request_id]
    assert approved.json()["data"]["pendingCount"] == 0

    mine = (await client.get("/communaute/requests/my", headers=auth(trader))).json()["data"]
    assert mine["pendingCount"] == 0

    trader_counters = await client.get("/communaute/requests/counters", headers=auth(trader))
    assert trader_counters.json()["data"] == {"myPending": 1, "ownerPending": 0}

    seen = await client.post("/communaute/requests/mark-seen", json={"requestIds": [request_id]}, headers=auth(trader))
    assert seen.json()["data"] == {"updated": 1}
    trader_counters = await client.get("/communaute/requests/counters", headers=auth(trader))
    assert trader_counters.json()["data"]["myPending"] == 0

    again = await client.post("/communaute/requests", json={"communityId": str(community.id)}, headers=auth(trader))
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_MEMBER"

    missing = await client.post(
        "/communaute/requests",
        json={"communityId": "00000000-0000-0000-0000-000000000000"},
        headers=auth(trader),
    )
    assert missing.status_code == 404
