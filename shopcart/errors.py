"""
Cart Errors

Exception hierarchy raised by the cart and its wiring, plus the shared
message constants (kept in one place to avoid string duplication).
"""

# Argument errors
ERROR_INVALID_QUANTITY = "Invalid quantity."
ERROR_INVALID_PRICE = "Invalid price."
ERROR_INVALID_MODEL = "Invalid model name '{model}'."
ERROR_UNKNOWN_STORAGE = "Unknown cart storage '{storage}'."
ERROR_SESSION_REQUIRED = "Session storage requires a session mapping."

# Lookup errors
ERROR_ITEM_NOT_FOUND = "Item not found."

# Auth errors
ERROR_INVALID_AUTH = "Invalid auth."


class CartError(Exception):
    """Base class for every error raised by shopcart."""


class InvalidArgument(CartError, ValueError):
    """Non-numeric or out-of-range qty/price, unknown model or storage."""


class NotFound(CartError, KeyError):
    """Update on a raw_id that is not in the cart."""

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0]) if self.args else ERROR_ITEM_NOT_FOUND


class InvalidAuth(CartError, PermissionError):
    """No authenticated actor where an actor-scoped cart is required."""


__all__ = [
    "CartError",
    "InvalidArgument",
    "NotFound",
    "InvalidAuth",
    "ERROR_INVALID_QUANTITY",
    "ERROR_INVALID_PRICE",
    "ERROR_INVALID_MODEL",
    "ERROR_UNKNOWN_STORAGE",
    "ERROR_SESSION_REQUIRED",
    "ERROR_ITEM_NOT_FOUND",
    "ERROR_INVALID_AUTH",
]
