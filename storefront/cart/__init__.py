"""Cart package: models, reducer, storage, and the cart service."""
from .actions import AddItem, CartAction, ClearCart, RemoveItem, SetCart, UpdateQuantity
from .checkout import CheckoutSummary, checkout_summary, ensure_checkout_ready
from .models import EMPTY_CART, CartLine, CartState, line_id_for
from .persistence import CartPersistence
from .reducer import reduce
from .service import CartPhase, CartService, create_cart_service
from .store import CartStore
from .sync import merge_carts, reconcile

__all__ = [
    "AddItem",
    "CartAction",
    "CartLine",
    "CartPersistence",
    "CartPhase",
    "CartService",
    "CartState",
    "CartStore",
    "CheckoutSummary",
    "ClearCart",
    "EMPTY_CART",
    "RemoveItem",
    "SetCart",
    "UpdateQuantity",
    "checkout_summary",
    "create_cart_service",
    "ensure_checkout_ready",
    "line_id_for",
    "merge_carts",
    "reconcile",
    "reduce",
]
