"""Pure cart state transitions."""
from dataclasses import replace

from .actions import AddItem, CartAction, ClearCart, RemoveItem, SetCart, UpdateQuantity
from .models import EMPTY_CART, CartLine, CartState


def _add_line(items: tuple[CartLine, ...], line: CartLine) -> tuple[CartLine, ...]:
    """Existing line keeps its fields and gains the quantity; new lines go last."""
    if any(existing.id == line.id for existing in items):
        return tuple(
            replace(existing, quantity=existing.quantity + line.quantity)
            if existing.id == line.id
            else existing
            for existing in items
        )
    return items + (line,)


def reduce(state: CartState, action: CartAction) -> CartState:
    """
    Apply one action and return the next state.

    ``state`` is never modified. Totals are properties of ``CartState`` and
    are therefore always recomputed from the resulting lines.

    Args:
        state: Current cart state
        action: Action to apply

    Returns:
        New cart state

    Raises:
        TypeError: unknown action type
    """
    if isinstance(action, AddItem):
        return CartState(items=_add_line(state.items, action.line))

    if isinstance(action, RemoveItem):
        if state.find(action.line_id) is None:
            return state
        return CartState(items=tuple(line for line in state.items if line.id != action.line_id))

    if isinstance(action, UpdateQuantity):
        if state.find(action.line_id) is None:
            return state
        # Zero and negative quantities are stored as given, not removed
        return CartState(items=tuple(
            replace(line, quantity=action.quantity) if line.id == action.line_id else line
            for line in state.items
        ))

    if isinstance(action, ClearCart):
        return EMPTY_CART

    if isinstance(action, SetCart):
        return CartState.of(action.items)

    raise TypeError(f"Unknown cart action: {type(action).__name__}")


def merge_lines(base: tuple[CartLine, ...], incoming: tuple[CartLine, ...]) -> tuple[CartLine, ...]:
    """Fold ``incoming`` into ``base`` with the same rule as ``AddItem``."""
    merged = tuple(base)
    for line in incoming:
        merged = _add_line(merged, line)
    return merged
