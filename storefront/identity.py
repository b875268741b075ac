"""
Identity - who the cart belongs to.

The auth provider itself lives outside this package. ``IdentityResolver``
is the shape the cart depends on; ``IdentityHub`` is a small in-process
implementation that auth code (or tests) push sign-in/sign-out into.
"""
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

IdentityCallback = Callable[[str | None], Awaitable[None]]


@dataclass(frozen=True)
class Identity:
    """Guest when ``user_id`` is None, otherwise an authenticated user."""
    user_id: str | None = None

    @classmethod
    def guest(cls) -> "Identity":
        return cls(None)

    @classmethod
    def authenticated(cls, user_id: str) -> "Identity":
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        return cls(user_id)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def __str__(self) -> str:
        return "guest" if self.is_guest else f"user:{sanitize_id_for_logging(self.user_id)}"


GUEST = Identity.guest()


class IdentityResolver(Protocol):
    """Source of identity changes.

    ``subscribe`` must invoke the callback with the current user id (or
    None) before returning, and again on every later change.
    """

    async def subscribe(self, callback: IdentityCallback) -> Callable[[], None]:
        ...


class IdentityHub:
    """In-process identity resolver."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id
        self._callbacks: list[IdentityCallback] = []

    @property
    def user_id(self) -> str | None:
        return self._user_id

    async def subscribe(self, callback: IdentityCallback) -> Callable[[], None]:
        self._callbacks.append(callback)
        await callback(self._user_id)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def set_user(self, user_id: str | None) -> None:
        """Publish a sign-in (user id) or sign-out (None)."""
        self._user_id = user_id or None
        logger.info("Identity changed to %s", Identity(self._user_id))
        for callback in list(self._callbacks):
            await callback(self._user_id)

    async def sign_in(self, user_id: str) -> None:
        await self.set_user(Identity.authenticated(user_id).user_id)

    async def sign_out(self) -> None:
        await self.set_user(None)
