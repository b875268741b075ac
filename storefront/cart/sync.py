"""Guest-to-user cart reconciliation."""
from collections.abc import Callable

from storefront.identity import Identity
from storefront.logging import get_logger

from .models import CartLine
from .persistence import CartPersistence
from .reducer import merge_lines

logger = get_logger(__name__)


def merge_carts(remote: tuple[CartLine, ...], guest: tuple[CartLine, ...]) -> tuple[CartLine, ...]:
    """
    Merge a guest cart into a user's stored cart.

    Stored lines come first and keep their price and details; a guest line
    with the same id only adds its quantity. Other guest lines are appended
    in the order they were added.
    """
    return merge_lines(remote, guest)


async def reconcile(
    identity: Identity,
    persistence: CartPersistence,
    is_current: Callable[[], bool] | None = None,
) -> tuple[CartLine, ...] | None:
    """
    Load the cart for a newly resolved identity.

    Guest: the guest slot as-is. Signed-in user: writes already queued for
    the user are finished first, then the stored cart is merged with the
    guest slot, the guest slot is cleared and the merge is written back.
    Running it again with an empty guest slot returns the stored cart
    unchanged.

    ``is_current`` is checked once the stored cart has been read. If it
    returns False a newer identity has taken over: nothing is written, the
    guest slot is kept, and None is returned.

    Raises:
        CartPersistenceError: the user's stored cart could not be read.
            Nothing is written and the guest slot is kept.
    """
    if identity.is_guest:
        guest = persistence.load_guest()
        logger.info("Loaded guest cart with %d lines", len(guest))
        return guest

    await persistence.flush_user(identity.user_id)
    remote = await persistence.load_remote(identity.user_id)

    if is_current is not None and not is_current():
        logger.info("Cart merge for %s dropped, identity changed while loading", identity)
        return None

    # No suspension between reading and clearing the guest slot
    guest = persistence.load_guest()
    merged = merge_carts(remote, guest)
    persistence.clear_guest()

    await persistence.write(identity, merged)

    logger.info(
        "Merged %d guest lines into %d stored lines for %s (%d lines)",
        len(guest),
        len(remote),
        identity,
        len(merged),
    )
    return merged
