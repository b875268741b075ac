"""
Cart errors.

Message constants are shared between the stores and the service so log
lines and exception texts stay identical.
"""

# Store errors
ERROR_STORE_READ = "Cart store read failed"
ERROR_STORE_WRITE = "Cart store write failed"
ERROR_STORE_UNAVAILABLE = "Cart store unavailable"

# Data errors
ERROR_MALFORMED_CART = "Malformed cart data"
ERROR_INVALID_QUANTITY = "Quantity must be a positive integer"
ERROR_INVALID_PRODUCT = "Product must have an id, name and price"
ERROR_EMPTY_CART = "Cart is empty"


class CartError(Exception):
    """Base class for cart errors."""


class CartPersistenceError(CartError):
    """A cart store could not be read or written."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class CartValidationError(CartError, ValueError):
    """Invalid input for a cart line or checkout."""
