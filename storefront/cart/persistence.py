"""
Cart persistence adapter.

Routes cart writes to the guest slot or to the signed-in user's document.
Remote writes go through a per-user save queue: one lock per user plus the
latest unsaved snapshot. Writes for a user never overlap, and whichever
snapshot was saved last is the most recent one handed to ``save``.
"""
import asyncio
from collections.abc import Iterable

from storefront.errors import CartPersistenceError
from storefront.identity import Identity
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import CartLine
from .storage import GuestCartStore, RemoteCartStore

logger = get_logger(__name__)


class CartPersistence:
    """Reads and writes carts for whichever identity is active."""

    def __init__(self, guest: GuestCartStore, remote: RemoteCartStore) -> None:
        self.guest = guest
        self.remote = remote
        self._locks: dict[str, asyncio.Lock] = {}
        # Running drains per user; the lock is dropped when none remain
        self._lock_users: dict[str, int] = {}
        self._pending: dict[str, tuple[CartLine, ...]] = {}
        self._tasks: set[asyncio.Task] = set()

    # ---- reads ----

    def load_guest(self) -> tuple[CartLine, ...]:
        return self.guest.load()

    async def load_remote(self, user_id: str) -> tuple[CartLine, ...]:
        """Raises CartPersistenceError when the document store is unreachable."""
        return await self.remote.load(user_id)

    # ---- writes ----

    def clear_guest(self) -> None:
        try:
            self.guest.clear()
        except CartPersistenceError as e:
            logger.error("Failed to clear guest cart: %s", e)

    def save(self, identity: Identity, items: Iterable[CartLine]) -> asyncio.Task | None:
        """
        Persist a full cart snapshot for ``identity`` without waiting.

        Guest writes are synchronous and done before returning. Remote writes
        are queued; the returned task finishes once the snapshot (or a newer
        one) has been written or the write failed.

        Must be called from a running event loop for signed-in identities.
        """
        snapshot = tuple(items)

        if identity.is_guest:
            self._save_guest(snapshot)
            return None

        user_id = identity.user_id
        self._pending[user_id] = snapshot
        task = asyncio.get_running_loop().create_task(self._drain(user_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def write(self, identity: Identity, items: Iterable[CartLine]) -> bool:
        """Persist a snapshot and wait for it. Returns False if the write failed."""
        task = self.save(identity, items)
        if task is None:
            return True
        return await task

    async def flush(self) -> None:
        """Wait until every queued write has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def flush_user(self, user_id: str) -> bool:
        """
        Wait for writes already queued for ``user_id`` and write any snapshot
        still pending. After this a read of the user's document sees every
        snapshot handed to ``save`` before the call.
        """
        return await self._drain(user_id)

    @property
    def pending_writes(self) -> int:
        return len(self._tasks)

    def _save_guest(self, snapshot: tuple[CartLine, ...]) -> None:
        try:
            self.guest.save(snapshot)
        except CartPersistenceError as e:
            logger.error("Failed to save guest cart: %s", e)

    async def _drain(self, user_id: str) -> bool:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                return await self._write_pending(user_id)
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id] and user_id not in self._pending:
                del self._lock_users[user_id]
                del self._locks[user_id]

    async def _write_pending(self, user_id: str) -> bool:
        snapshot = self._pending.pop(user_id, None)
        if snapshot is None:
            # An earlier queued write already took the newest snapshot
            return True
        try:
            await self.remote.save(user_id, snapshot)
        except CartPersistenceError as e:
            logger.error(
                "Cart write for user %s failed, keeping in-memory cart: %s",
                sanitize_id_for_logging(user_id),
                e,
            )
            return False
        logger.debug(
            "Saved %d cart lines for user %s", len(snapshot), sanitize_id_for_logging(user_id)
        )
        return True
