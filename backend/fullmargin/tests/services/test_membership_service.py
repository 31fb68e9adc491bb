"""Memberships and access requests: counters, idempotence, notifications."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from fullmargin.core.errors import AppHTTPException
from fullmargin.models.community import Community
from fullmargin.models.community_access_request import CommunityAccessRequest
from fullmargin.models.notification import Notification
from fullmargin.services import membership_service, request_service

pytestmark = pytest.mark.asyncio


async def _members_count(session_factory, community_id) -> int:
    async with session_factory() as session:
        community = (await session.execute(select(Community).where(Community.id == community_id))).scalars().one()
        return community.members_count


async def _kinds(session_factory, user_id) -> list[str]:
    async with session_factory() as session:
        rows = (
            await session.execute(
                select(Notification.kind).where(Notification.user_id == user_id).order_by(Notification.created_at)
            )
        ).scalars().all()
        return list(rows)


async def test_join_and_leave_public_community_are_idempotent(db, session_factory, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com", full_name="Trader")
    community = await make_community(owner, "scalping")

    assert await membership_service.join(db, trader, community.id) == "approved"
    assert await membership_service.join(db, trader, community.id) == "approved"
    assert await _members_count(session_factory, community.id) == 1
    assert await membership_service.membership_status(db, trader.id, community.id) == "approved"
    assert await membership_service.my_community_ids(db, trader.id) == [community.id]

    assert await membership_service.leave(db, trader, community.id) == "none"
    assert await membership_service.leave(db, trader, community.id) == "none"
    assert await _members_count(session_factory, community.id) == 0
    assert await membership_service.membership_status(db, trader.id, community.id) == "none"

    # Rejoin reactivates the same row
    assert await membership_service.join(db, trader, community.id) == "approved"
    assert await _members_count(session_factory, community.id) == 1

    assert await _kinds(session_factory, owner.id) == [
        "community_member_joined",
        "community_member_left",
        "community_member_joined",
    ]


async def test_owner_join_is_not_notified(db, session_factory, make_user, make_community):
    owner = await make_user("owner@example.com")
    community = await make_community(owner, "private-desk", visibility="private")

    assert await membership_service.join(db, owner, community.id) == "approved"
    assert await _members_count(session_factory, community.id) == 1
    assert await _kinds(session_factory, owner.id) == []


async def test_private_join_creates_pending_request(db, session_factory, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com")
    community = await make_community(owner, "private-desk", visibility="private")

    status = await membership_service.join(db, trader, community.id, note="x" * 800)
    assert status == "pending"
    assert await membership_service.membership_status(db, trader.id, community.id) == "pending"
    assert await _members_count(session_factory, community.id) == 0

    req = (
        await db.execute(select(CommunityAccessRequest).where(CommunityAccessRequest.user_id == trader.id))
    ).scalars().one()
    assert len(req.note) == 500
    assert await _kinds(session_factory, owner.id) == ["community_request_received"]


async def test_approve_is_idempotent_and_counts_once(db, session_factory, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com")
    community = await make_community(owner, "private-desk", visibility="private")
    await membership_service.join(db, trader, community.id)

    incoming, pending = await request_service.list_incoming(db, owner, community.id)
    assert pending == 1
    assert [requester.id for _, requester in incoming] == [trader.id]
    request_id = incoming[0][0].id

    with pytest.raises(AppHTTPException) as exc:
        await request_service.approve(db, trader, request_id)
    assert exc.value.status_code == 403

    assert await request_service.approve(db, owner, request_id) == "approved"
    assert await request_service.approve(db, owner, request_id) == "approved"

    assert await _members_count(session_factory, community.id) == 1
    assert await membership_service.membership_status(db, trader.id, community.id) == "approved"
    assert await request_service.list_incoming(db, owner, community.id) == ([], 0)
    assert await _kinds(session_factory, trader.id) == ["community_request_approved"]

    # Leaving flags the approved request as left
    await membership_service.leave(db, trader, community.id)
    async with session_factory() as session:
        req = (
            await session.execute(select(CommunityAccessRequest).where(CommunityAccessRequest.id == request_id))
        ).scalars().one()
        assert req.status == "left"


async def test_reject_truncates_reason_and_notifies(db, session_factory, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com")
    community = await make_community(owner, "private-desk", visibility="private")
    await membership_service.join(db, trader, community.id)
    request_id = (await request_service.list_my_requests(db, trader.id))[0].id

    assert await request_service.reject(db, owner, request_id, "r" * 900) == "rejected"
    assert await request_service.reject(db, owner, request_id, "again") == "rejected"

    async with session_factory() as session:
        req = (
            await session.execute(select(CommunityAccessRequest).where(CommunityAccessRequest.id == request_id))
        ).scalars().one()
        assert req.status == "rejected"
        assert len(req.reason) == 500

    assert await _kinds(session_factory, trader.id) == ["community_request_rejected"]
    assert await membership_service.membership_status(db, trader.id, community.id) == "rejected"


async def test_members_list_is_owner_only(db, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com", full_name="Trader")
    community = await make_community(owner, "scalping")
    await membership_service.join(db, trader, community.id)

    members = await membership_service.list_members(db, owner, community.id)
    assert [m.user_id for m in members] == [trader.id]

    with pytest.raises(AppHTTPException) as exc:
        await membership_service.list_members(db, trader, community.id)
    assert exc.value.status_code == 403


async def test_explicit_request_refuses_members_and_reopens(db, session_factory, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com")
    member = await make_user("member@example.com")
    community = await make_community(owner, "private-desk", visibility="private")
    await membership_service.activate_membership(db, community.id, member.id)
    await db.commit()

    for user in (owner, member):
        with pytest.raises(AppHTTPException) as exc:
            await request_service.create_request(db, user, community.id)
        assert exc.value.status_code == 409
        assert exc.value.code == "ALREADY_MEMBER"

    first = await request_service.create_request(db, trader, community.id, note="Bonjour")
    assert first.status == "pending"
    await request_service.reject(db, owner, first.id, "Profil incomplet")

    again = await request_service.create_request(db, trader, community.id, note="n" * 600)
    assert again.id == first.id
    assert (again.status, again.reason, len(again.note)) == ("pending", "", 500)
    assert await _kinds(session_factory, owner.id) == ["community_request_received"] * 2


async def test_incoming_status_filter(db, make_user, make_community):
    owner = await make_user("owner@example.com")
    alice = await make_user("alice@example.com", full_name="Alice")
    bob = await make_user("bob@example.com", full_name="Bob")
    community = await make_community(owner, "private-desk", visibility="private")

    rejected = await request_service.create_request(db, alice, community.id)
    await request_service.create_request(db, bob, community.id)
    await request_service.reject(db, owner, rejected.id)

    pending_rows, pending = await request_service.list_incoming(db, owner, community.id)
    assert [u.full_name for _, u in pending_rows] == ["Bob"]
    assert pending == 1

    rejected_rows, _ = await request_service.list_incoming(db, owner, community.id, "rejected")
    assert [u.full_name for _, u in rejected_rows] == ["Alice"]

    everything, pending = await request_service.list_incoming(db, owner, community.id, "all")
    assert {u.full_name for _, u in everything} == {"Alice", "Bob"}
    assert pending == 1


async def test_counters_and_mark_replies_seen(db, make_user, make_community):
    owner = await make_user("owner@example.com")
    trader = await make_user("trader@example.com")
    desk = await make_community(owner, "private-desk", visibility="private")
    club = await make_community(owner, "private-club", visibility="private")

    desk_request = await request_service.create_request(db, trader, desk.id)
    club_request = await request_service.create_request(db, trader, club.id)
    assert await request_service.counters(db, owner.id) == (0, 2)
    assert await request_service.counters(db, trader.id) == (0, 0)

    await request_service.approve(db, owner, desk_request.id)
    await request_service.reject(db, owner, club_request.id)
    assert await request_service.counters(db, owner.id) == (0, 0)
    assert await request_service.counters(db, trader.id) == (2, 0)

    assert await request_service.mark_replies_seen(db, trader.id, [desk_request.id]) == 1
    assert await request_service.counters(db, trader.id) == (1, 0)
    assert await request_service.mark_replies_seen(db, trader.id) == 1
    assert await request_service.counters(db, trader.id) == (0, 0)
