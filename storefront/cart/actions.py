"""Cart actions accepted by the reducer."""
from dataclasses import dataclass, field
from typing import Union

from .models import CartLine


@dataclass(frozen=True)
class AddItem:
    line: CartLine


@dataclass(frozen=True)
class RemoveItem:
    line_id: str


@dataclass(frozen=True)
class UpdateQuantity:
    line_id: str
    quantity: int


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class SetCart:
    """Replace all lines. Issued by loads and sign-in merges."""
    items: tuple[CartLine, ...] = field(default_factory=tuple)


CartAction = Union[AddItem, RemoveItem, UpdateQuantity, ClearCart, SetCart]
