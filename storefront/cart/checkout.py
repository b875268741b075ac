"""Checkout totals for the current cart (PKR)."""
from dataclasses import dataclass
from decimal import Decimal

from storefront.errors import ERROR_EMPTY_CART, ERROR_INVALID_QUANTITY, CartValidationError
from storefront.services.currency import CURRENCY, format_pkr
from storefront.services.money import multiply, round_money, subtract, to_float

from .models import CartState

TAX_RATE = Decimal("0.13")
SHIPPING_COST = Decimal("500")
# Orders strictly above this ship free
FREE_SHIPPING_THRESHOLD = Decimal("10000")


@dataclass(frozen=True)
class CheckoutSummary:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    free_shipping_remaining: Decimal

    @property
    def free_shipping(self) -> bool:
        return self.shipping == 0

    def to_dict(self) -> dict:
        return {
            "subtotal": to_float(self.subtotal),
            "shippingCost": to_float(self.shipping),
            "taxAmount": to_float(self.tax),
            "totalAmount": to_float(self.total),
            "freeShippingRemaining": to_float(self.free_shipping_remaining),
            "currency": CURRENCY,
        }

    def formatted(self) -> dict[str, str]:
        return {
            "subtotal": format_pkr(self.subtotal),
            "shipping": "FREE" if self.free_shipping else format_pkr(self.shipping),
            "tax": format_pkr(self.tax),
            "total": format_pkr(self.total),
        }


def checkout_summary(state: CartState) -> CheckoutSummary:
    """Subtotal, flat shipping unless above the threshold, 13% tax on the subtotal."""
    subtotal = state.total
    shipping = Decimal("0") if subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_COST
    tax = round_money(multiply(subtotal, TAX_RATE))
    remaining = max(subtract(FREE_SHIPPING_THRESHOLD, subtotal), Decimal("0"))

    return CheckoutSummary(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=subtotal + shipping + tax,
        free_shipping_remaining=remaining,
    )


def ensure_checkout_ready(state: CartState) -> None:
    """
    Raise if the cart cannot be turned into an order.

    Lines at zero or negative quantity can exist in the cart but cannot be
    ordered.

    Raises:
        CartValidationError: empty cart or a line below quantity 1
    """
    if state.is_empty:
        raise CartValidationError(ERROR_EMPTY_CART)
    bad = [line.id for line in state.items if line.quantity < 1]
    if bad:
        raise CartValidationError(f"{ERROR_INVALID_QUANTITY}: {', '.join(bad)}")
