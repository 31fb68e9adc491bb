"""Live routes: transitions, reads, expiry on read and room access."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from fullmargin.core.clock import utcnow
from fullmargin.models.community_live import CommunityLive

pytestmark = pytest.mark.asyncio


async def _schedule(client: AsyncClient, headers, community_id, **overrides):
    payload = {
        "communityId": str(community_id),
        "title": "Analyse du lundi",
        "startsAt": (utcnow() + timedelta(days=1)).isoformat(),
        "durationMin": 45,
    }
    payload.update(overrides)
    return await client.post("/communaute/lives/schedule", json=payload, headers=headers)


async def test_schedule_go_live_and_end(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")
    headers = auth(owner)

    scheduled = await _schedule(client, headers, community.id)
    assert scheduled.status_code == 201, scheduled.text
    live = scheduled.json()["data"]["live"]
    assert live["status"] == "scheduled"
    assert live["isOwner"] is True
    assert live["communityId"] == str(community.id)
    assert live["roomName"].startswith("fm-")

    started = await client.post(f"/communaute/lives/{live['id']}/go-live", headers=headers)
    assert started.status_code == 200, started.text
    assert started.json()["data"]["live"]["status"] == "live"

    again = await client.post(f"/communaute/lives/{live['id']}/go-live", headers=headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "INVALID_TRANSITION"

    ended = await client.post(f"/communaute/lives/{live['id']}/end", headers=headers)
    assert ended.status_code == 200
    body = ended.json()["data"]["live"]
    assert body["status"] == "ended"
    assert body["endedAt"] is not None


async def test_start_now_replaces_running_live(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")
    headers = auth(owner)

    first = await client.post(
        "/communaute/lives/start-now",
        json={"communityId": str(community.id), "title": "Session Asie"},
        headers=headers,
    )
    second = await client.post(
        "/communaute/lives/start-now",
        json={"communityId": str(community.id), "title": "Session Londres"},
        headers=headers,
    )
    assert first.status_code == second.status_code == 201

    listing = await client.get(f"/communaute/lives/by-community/{community.id}", headers=headers)
    assert listing.status_code == 200
    statuses = {item["title"]: item["status"] for item in listing.json()["data"]["items"]}
    assert statuses == {"Session Asie": "ended", "Session Londres": "live"}


async def test_transitions_are_owner_only(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    intruder = await make_user("intruder@example.com")
    community = await make_community(owner, "scalping")

    forbidden = await _schedule(client, auth(intruder), community.id)
    assert forbidden.status_code == 403
    assert forbidden.json()["error"]["code"] == "FORBIDDEN"

    anonymous = await _schedule(client, {}, community.id)
    assert anonymous.status_code == 401


async def test_schedule_rejects_unknown_fields_and_past_start(
    client: AsyncClient, make_user, make_community, auth
) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")
    headers = auth(owner)

    unknown = await _schedule(client, headers, community.id, color="red")
    assert unknown.status_code == 422

    past = await _schedule(client, headers, community.id, startsAt=(utcnow() - timedelta(hours=2)).isoformat())
    assert past.status_code == 422
    assert past.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_cancel_is_idempotent(client: AsyncClient, make_user, make_community, auth) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")
    headers = auth(owner)
    live_id = (await _schedule(client, headers, community.id)).json()["data"]["live"]["id"]

    for _ in range(2):
        response = await client.post(f"/communaute/lives/{live_id}/cancel", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["live"]["status"] == "cancelled"

    end = await client.post(f"/communaute/lives/{live_id}/end", headers=headers)
    assert end.status_code == 409


async def test_overdue_live_expires_on_read(
    client: AsyncClient, session_factory, make_user, make_community, auth
) -> None:
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "scalping")
    planned_end = utcnow() - timedelta(minutes=10)

    async with session_factory() as session:
        live = CommunityLive(
            community_id=community.id,
            created_by=owner.id,
            title="Oublié",
            status="live",
            is_public=True,
            starts_at=planned_end - timedelta(hours=1),
            planned_end_at=planned_end,
            room_name="fullmargin-test-overdue",
        )
        session.add(live)
        await session.commit()
        live_id = live.id

    public = await client.get("/communaute/lives/public-live", headers=auth(owner))
    assert public.status_code == 200
    assert public.json()["data"]["items"] == []

    response = await client.get(f"/communaute/lives/{live_id}")
    assert response.status_code == 200
    body = response.json()["data"]["live"]
    assert body["status"] == "ended"
    assert body["endedAt"] == body["plannedEndAt"]
    assert body["isOwner"] is False

    token = await client.get(f"/communaute/lives/{live_id}/room-token", headers=auth(owner))
    assert token.status_code == 409
    assert token.json()["error"]["code"] == "LIVE_NOT_RUNNING"


async def test_public_live_listing_and_viewer_access(
    client: AsyncClient, make_user, make_community, auth
) -> None:
    owner = await make_user("owner@example.com")
    viewer = await make_user("viewer@example.com", full_name="Viewer")
    community = await make_community(owner, "private-desk", visibility="private", name="Private Desk")

    private_live = await client.post(
        "/communaute/lives/start-now",
        json={"communityId": str(community.id), "title": "Membres only"},
        headers=auth(owner),
    )
    live_id = private_live.json()["data"]["live"]["id"]

    assert (await client.get(f"/communaute/lives/{live_id}")).status_code == 403
    assert (await client.get(f"/communaute/lives/{live_id}", headers=auth(viewer))).status_code == 403
    assert (await client.get(f"/communaute/lives/by-community/{community.id}", headers=auth(viewer))).status_code == 403

    listing = await client.get("/communaute/lives/public-live", headers=auth(viewer))
    assert listing.json()["data"]["items"] == []

    public_live = await client.post(
        "/communaute/lives/start-now",
        json={"communityId": str(community.id), "title": "Ouvert à tous", "isPublic": True},
        headers=auth(owner),
    )
    public_id = public_live.json()["data"]["live"]["id"]

    listing = await client.get("/communaute/lives/public-live", headers=auth(viewer))
    items = listing.json()["data"]["items"]
    assert [item["id"] for item in items] == [public_id]
    assert items[0]["communityName"] == "Private Desk"
    assert items[0]["communitySlug"] == "private-desk"

    room = await client.get(
        f"/communaute/lives/{public_id}/room-token", params={"name": "  Spectateur  "}, headers=auth(viewer)
    )
    assert room.status_code == 200, room.text
    data = room.json()["data"]
    assert data["isOwner"] is False
    assert data["room"] == public_live.json()["data"]["live"]["roomName"]
    assert data["token"]


async def test_unknown_live_is_404(client: AsyncClient, make_user, auth) -> None:
    user = await make_user("someone@example.com")
    response = await client.get(
        "/communaute/lives/00000000-0000-0000-0000-000000000000", headers=auth(user)
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
