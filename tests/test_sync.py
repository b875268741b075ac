"""Tests for guest-to-user cart reconciliation"""
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

from storefront.cart import CartPersistence, CartState, merge_carts, reconcile
from storefront.cart.storage import RemoteCartStore
from storefront.errors import CartPersistenceError
from storefront.identity import GUEST, Identity


class TestMergeCarts:

    def test_disjoint_ids_conserve_lines_and_total(self, make_line):
        guest = (make_line("A", 10, 2), make_line("C", 3, 3))
        remote = (make_line("B", 5, 1),)

        merged = CartState.of(merge_carts(remote, guest))

        assert len(merged.items) == len(guest) + len(remote)
        assert merged.total == CartState.of(guest).total + CartState.of(remote).total
        assert [l.id for l in merged.items] == ["B", "A", "C"]

    def test_overlapping_id_adds_quantity_keeps_remote_price(self, make_line):
        remote = (make_line("X", 20, 1, name="Stored"),)
        guest = (make_line("X", 15, 4, name="Guest"),)

        merged = merge_carts(remote, guest)

        assert len(merged) == 1
        assert merged[0].quantity == 5
        assert merged[0].price == Decimal("20")
        assert merged[0].name == "Stored"

    def test_empty_guest_returns_remote(self, make_line):
        remote = (make_line("B", 5, 1),)

        assert merge_carts(remote, ()) == remote


class TestReconcile:

    @pytest.mark.asyncio
    async def test_sign_in_scenario(self, persistence, guest_store, remote_store, make_line):
        guest_store.save([make_line("A", 10, 2)])
        await remote_store.save("u1", [make_line("B", 5, 1)])

        items = await reconcile(Identity("u1"), persistence)
        state = CartState.of(items)

        assert [(l.id, l.price, l.quantity) for l in items] == [("B", 5, 1), ("A", 10, 2)]
        assert state.total == 25
        assert state.item_count == 3
        assert await remote_store.load("u1") == items
        assert guest_store.load() == ()

    @pytest.mark.asyncio
    async def test_running_twice_is_a_noop(self, persistence, guest_store, remote_store, make_line):
        guest_store.save([make_line("A", 10, 2)])
        await remote_store.save("u1", [make_line("A", 10, 1)])

        first = await reconcile(Identity("u1"), persistence)
        second = await reconcile(Identity("u1"), persistence)

        assert first == second
        assert second[0].quantity == 3
        assert (await remote_store.load("u1"))[0].quantity == 3

    @pytest.mark.asyncio
    async def test_new_user_gets_guest_cart(self, persistence, guest_store, remote_store, make_line):
        guest_store.save([make_line("A", 10, 2)])

        items = await reconcile(Identity("fresh"), persistence)

        assert [l.id for l in items] == ["A"]
        assert [l.id for l in await remote_store.load("fresh")] == ["A"]

    @pytest.mark.asyncio
    async def test_guest_loads_slot_and_leaves_remote(self, persistence, guest_store, remote_store, make_line):
        guest_store.save([make_line("G", 1, 1)])
        await remote_store.save("u1", [make_line("B", 5, 1)])

        items = await reconcile(GUEST, persistence)

        assert [l.id for l in items] == ["G"]
        assert [l.id for l in guest_store.load()] == ["G"]
        assert [l.id for l in await remote_store.load("u1")] == ["B"]

    @pytest.mark.asyncio
    async def test_unreadable_remote_keeps_guest_slot(self, guest_store, make_line):
        documents = Mock()
        documents.get = AsyncMock(side_effect=CartPersistenceError("offline"))
        documents.put = AsyncMock()
        persistence = CartPersistence(guest=guest_store, remote=RemoteCartStore(documents))
        guest_store.save([make_line("A", 10, 2)])

        with pytest.raises(CartPersistenceError):
            await reconcile(Identity("u1"), persistence)

        documents.put.assert_not_awaited()
        assert [l.id for l in guest_store.load()] == ["A"]

    @pytest.mark.asyncio
    async def test_stale_load_writes_nothing(self, guest_store, make_line):
        documents = Mock()
        documents.get = AsyncMock(return_value={"items": [make_line("R", 5, 1).to_dict()]})
        documents.put = AsyncMock()
        persistence = CartPersistence(guest=guest_store, remote=RemoteCartStore(documents))
        guest_store.save([make_line("G", 1, 1)])

        assert await reconcile(Identity("u1"), persistence, is_current=lambda: False) is None

        documents.put.assert_not_awaited()
        assert [l.id for l in guest_store.load()] == ["G"]

    @pytest.mark.asyncio
    async def test_reads_after_queued_writes(self, persistence, remote_store, make_line):
        persistence.save(Identity("u1"), [make_line("A", 10, 1)])

        items = await reconcile(Identity("u1"), persistence)

        assert [l.id for l in items] == ["A"]
        assert [l.id for l in await remote_store.load("u1")] == ["A"]
