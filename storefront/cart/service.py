"""Cart service: in-memory cart, identity-aware persistence, sign-in merge."""
from collections.abc import Callable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from storefront import db
from storefront.errors import ERROR_STORE_UNAVAILABLE, CartPersistenceError
from storefront.identity import GUEST, Identity, IdentityResolver
from storefront.logging import get_logger
from storefront.services.money import to_float

from .actions import AddItem, CartAction, ClearCart, RemoveItem, SetCart, UpdateQuantity
from .checkout import CheckoutSummary, checkout_summary
from .models import CartLine, CartState
from .persistence import CartPersistence
from .storage import (
    DocumentStore,
    FileLocalStore,
    GuestCartStore,
    LocalStore,
    RedisDocumentStore,
    RemoteCartStore,
    SupabaseDocumentStore,
)
from .store import CartListener, CartStore
from .sync import reconcile

logger = get_logger(__name__)


class CartPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class CartService:
    """
    Owns one client's cart.

    Lifecycle:
    - ``start()`` subscribes to the identity resolver, which reports the
      current identity right away; the cart is loaded (and merged on
      sign-in) and the service becomes READY.
    - Every later identity change goes back through LOADING.
    - Mutations always update the in-memory cart. They are persisted only
      while READY; anything changed during LOADING is replaced by the load.

    Create one per client and pass it to whatever needs the cart.
    """

    def __init__(
        self,
        persistence: CartPersistence,
        identity_resolver: Optional[IdentityResolver] = None,
        store: Optional[CartStore] = None,
    ) -> None:
        self.persistence = persistence
        self.identity_resolver = identity_resolver
        self.store = store or CartStore()

        self._identity = GUEST
        self._phase = CartPhase.UNINITIALIZED
        self._generation = 0
        self._unsubscribe_identity: Optional[Callable[[], None]] = None
        self._unsubscribe_store = self.store.subscribe(self._persist_change)

    # ---- lifecycle ----

    @property
    def phase(self) -> CartPhase:
        return self._phase

    @property
    def is_ready(self) -> bool:
        return self._phase is CartPhase.READY

    @property
    def identity(self) -> Identity:
        return self._identity

    async def start(self) -> None:
        """Subscribe to identity changes and load the initial cart."""
        if self._phase is not CartPhase.UNINITIALIZED:
            return
        self._phase = CartPhase.LOADING

        if self.identity_resolver is None:
            await self.on_identity_change(None)
            return
        self._unsubscribe_identity = await self.identity_resolver.subscribe(self.on_identity_change)

    async def stop(self) -> None:
        """Stop following identity changes and wait for queued writes."""
        if self._unsubscribe_identity is not None:
            self._unsubscribe_identity()
            self._unsubscribe_identity = None
        await self.persistence.flush()

    async def on_identity_change(self, user_id: str | None) -> None:
        """
        Load the cart for a new identity.

        If another identity change arrives while this one is loading, the
        later one wins and this result is dropped. If the user's stored cart
        cannot be read the service stays LOADING (nothing is persisted) until
        ``resync()`` or the next identity change succeeds.
        """
        identity = Identity(user_id or None)
        self._generation += 1
        generation = self._generation
        self._identity = identity
        self._phase = CartPhase.LOADING

        try:
            items = await reconcile(
                identity,
                self.persistence,
                is_current=lambda: generation == self._generation,
            )
        except CartPersistenceError as e:
            logger.error(
                "%s, cart for %s not persisted until resync: %s", ERROR_STORE_UNAVAILABLE, identity, e
            )
            return

        if items is None or generation != self._generation:
            logger.info("Cart load for %s superseded by a newer identity", identity)
            return

        self.store.apply(SetCart(items))
        self._phase = CartPhase.READY

    async def resync(self) -> None:
        """Reload (and re-merge) the cart for the current identity."""
        await self.on_identity_change(self._identity.user_id)

    # ---- state ----

    @property
    def state(self) -> CartState:
        return self.store.state

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Observe every cart change. Returns an unsubscribe function."""
        return self.store.subscribe(listener)

    def apply(self, action: CartAction) -> CartState:
        return self.store.apply(action)

    def _persist_change(self, state: CartState, action: CartAction) -> None:
        if self._phase is not CartPhase.READY:
            return
        self.persistence.save(self._identity, state.items)

    # ---- commands ----

    def add_item(self, line: CartLine) -> CartState:
        return self.apply(AddItem(line))

    def add_product(
        self,
        product: Mapping[str, Any],
        size: str,
        color: str,
        quantity: int = 1,
    ) -> CartState:
        """Add a selected variant from a product page."""
        return self.add_item(CartLine.for_product(product, size, color, quantity))

    def quick_add(self, product: Mapping[str, Any]) -> CartState:
        """Add one unit from a product card."""
        return self.add_item(CartLine.quick_add(product))

    def remove_item(self, line_id: str) -> CartState:
        return self.apply(RemoveItem(line_id))

    def update_quantity(self, line_id: str, quantity: int) -> CartState:
        return self.apply(UpdateQuantity(line_id, quantity))

    def change_quantity(self, line_id: str, quantity: int) -> CartState:
        """Quantity stepper: going below 1 removes the line."""
        if quantity < 1:
            return self.remove_item(line_id)
        return self.update_quantity(line_id, quantity)

    def clear(self) -> CartState:
        return self.apply(ClearCart())

    # ---- queries ----

    def checkout_summary(self) -> CheckoutSummary:
        return checkout_summary(self.state)

    def summary(self) -> dict:
        """Snapshot of the cart for display or API responses."""
        state = self.state
        if state.is_empty:
            return {
                "is_empty": True,
                "items": [],
                "item_count": 0,
                "total": 0.0,
            }
        return {
            "is_empty": False,
            "items": [
                {**line.to_dict(), "lineTotal": to_float(line.line_total)}
                for line in state.items
            ],
            "item_count": state.item_count,
            "total": to_float(state.total),
        }


async def create_document_store(backend: str | None = None) -> DocumentStore:
    """Document store for ``backend`` ("supabase" or "redis")."""
    backend = (backend or db.CART_DOCUMENT_BACKEND).lower()
    if backend == "redis":
        return RedisDocumentStore(db.get_redis())
    if backend == "supabase":
        return SupabaseDocumentStore(await db.get_supabase())
    raise ValueError(f"Unknown cart document backend: {backend}")


async def create_cart_service(
    identity_resolver: Optional[IdentityResolver] = None,
    backend: str | None = None,
    local_store: Optional[LocalStore] = None,
    guest_dir: Path | str | None = None,
) -> CartService:
    """
    Build a CartService on the configured backends.

    The service is not started; call ``start()`` once the identity resolver
    is ready.
    """
    local = local_store or FileLocalStore(guest_dir or db.GUEST_CART_DIR)
    persistence = CartPersistence(
        guest=GuestCartStore(local),
        remote=RemoteCartStore(await create_document_store(backend)),
    )
    return CartService(persistence, identity_resolver=identity_resolver)
