"""Tests for identity and the in-process identity hub"""
import pytest

from storefront.identity import GUEST, Identity, IdentityHub


def test_identity_kinds():
    assert GUEST.is_guest
    assert not Identity.authenticated("u1").is_guest
    assert str(GUEST) == "guest"
    assert str(Identity("a-very-long-user-id")) == "user:a-very-l"


def test_authenticated_needs_user_id():
    with pytest.raises(ValueError):
        Identity.authenticated("")


@pytest.mark.asyncio
async def test_subscribe_reports_current_identity():
    hub = IdentityHub("u1")
    seen = []

    async def callback(user_id):
        seen.append(user_id)

    await hub.subscribe(callback)

    assert seen == ["u1"]


@pytest.mark.asyncio
async def test_changes_reach_subscribers_until_unsubscribed():
    hub = IdentityHub()
    seen = []

    async def callback(user_id):
        seen.append(user_id)

    unsubscribe = await hub.subscribe(callback)
    await hub.sign_in("u1")
    await hub.sign_out()
    unsubscribe()
    await hub.sign_in("u2")

    assert seen == [None, "u1", None]
    assert hub.user_id == "u2"
