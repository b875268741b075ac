"""Cart models with Decimal-based pricing."""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront.errors import ERROR_INVALID_PRODUCT, ERROR_INVALID_QUANTITY, CartValidationError
from storefront.services.money import multiply, to_decimal, to_float

# Quick-add from a product card picks these when the product lists none
DEFAULT_SIZE = "M"
DEFAULT_COLOR = "Black"


def line_id_for(product_id: str, size: str, color: str) -> str:
    """Line id for a product variant: one cart line per size/color pair."""
    return f"{product_id}-{size}-{color}"


@dataclass(frozen=True)
class CartLine:
    """Single purchasable selection in the cart.

    Display fields and ``price`` are copied when the line is added and are
    never refreshed from the catalog afterwards.
    """
    id: str
    product_id: str
    name: str
    price: Decimal
    quantity: int
    size: str = ""
    color: str = ""
    category: str = ""
    image: str = ""

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "quantity", int(self.quantity))

    @property
    def line_total(self) -> Decimal:
        """Price for all units of this line."""
        return multiply(self.price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to the stored document shape."""
        return {
            "id": self.id,
            "productId": self.product_id,
            "category": self.category,
            "name": self.name,
            "price": to_float(self.price),
            "quantity": self.quantity,
            "size": self.size,
            "color": self.color,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartLine":
        """Create from a stored document entry."""
        return cls(
            id=data["id"],
            product_id=data.get("productId", data.get("product_id", "")),
            category=data.get("category", ""),
            name=data.get("name", ""),
            price=to_decimal(data.get("price")),
            quantity=int(data["quantity"]),
            size=data.get("size", ""),
            color=data.get("color", ""),
            image=data.get("image", ""),
        )

    @classmethod
    def for_product(
        cls,
        product: Mapping[str, Any],
        size: str,
        color: str,
        quantity: int = 1,
    ) -> "CartLine":
        """Build a line for the selected variant of a catalog product.

        Args:
            product: Catalog product (``id``, ``name``, ``price``, optional
                ``category`` and ``images``)
            size: Selected size
            color: Selected color
            quantity: Units to add

        Raises:
            CartValidationError: product incomplete or quantity below 1
        """
        if not isinstance(quantity, int) or quantity < 1:
            raise CartValidationError(ERROR_INVALID_QUANTITY)
        product_id = product.get("id")
        if not product_id or not product.get("name") or product.get("price") is None:
            raise CartValidationError(ERROR_INVALID_PRODUCT)

        images = product.get("images") or []
        return cls(
            id=line_id_for(product_id, size, color),
            product_id=product_id,
            category=product.get("category", ""),
            name=product["name"],
            price=to_decimal(product["price"]),
            quantity=quantity,
            size=size,
            color=color,
            image=images[0] if images else "",
        )

    @classmethod
    def quick_add(cls, product: Mapping[str, Any]) -> "CartLine":
        """One unit with the first listed size and color.

        Quick-add lines share the ``{product_id}-default-default`` id, so
        repeated quick-adds stack onto one line.
        """
        sizes = product.get("sizes") or []
        colors = product.get("colors") or []
        line = cls.for_product(
            product,
            size=sizes[0] if sizes else DEFAULT_SIZE,
            color=colors[0] if colors else DEFAULT_COLOR,
        )
        return CartLine(
            id=line_id_for(line.product_id, "default", "default"),
            product_id=line.product_id,
            category=line.category,
            name=line.name,
            price=line.price,
            quantity=line.quantity,
            size=line.size,
            color=line.color,
            image=line.image,
        )


@dataclass(frozen=True)
class CartState:
    """Cart contents. ``total`` and ``item_count`` are derived from ``items``."""
    items: tuple[CartLine, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, items: Iterable[CartLine]) -> "CartState":
        return cls(items=tuple(items))

    @property
    def total(self) -> Decimal:
        """Sum of price x quantity over all lines."""
        return sum((line.line_total for line in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        """Sum of quantities over all lines."""
        return sum(line.quantity for line in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find(self, line_id: str) -> CartLine | None:
        return next((line for line in self.items if line.id == line_id), None)

    def to_dict(self) -> dict:
        """Stored document shape: ``{"items": [...]}``."""
        return {"items": [line.to_dict() for line in self.items]}


EMPTY_CART = CartState()
