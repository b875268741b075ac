"""In-memory cart state machine with observers."""
from collections.abc import Callable

from storefront.logging import get_logger

from .actions import CartAction
from .models import EMPTY_CART, CartState
from .reducer import reduce

logger = get_logger(__name__)

CartListener = Callable[[CartState, CartAction], None]


class CartStore:
    """
    Holds the current ``CartState`` and applies actions through ``reduce``.

    Listeners are called synchronously, in subscription order, after every
    applied action with the new state and the action that produced it.
    """

    def __init__(self, state: CartState = EMPTY_CART) -> None:
        self._state = state
        self._listeners: list[CartListener] = []

    @property
    def state(self) -> CartState:
        return self._state

    def apply(self, action: CartAction) -> CartState:
        """Apply an action, notify listeners and return the new state."""
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            try:
                listener(self._state, action)
            except Exception:
                # A broken observer must not undo the state change
                logger.error("Cart listener %r failed", listener, exc_info=True)
        return self._state

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
