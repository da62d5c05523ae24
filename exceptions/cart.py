"""
Cart-related exceptions.
"""

from .base import ShopException


class CartException(ShopException):
    """Base exception for cart-related errors."""
    pass


class CartNotFoundException(CartException):
    """Raised when no cart exists for the presented owner."""

    def __init__(self, user_id: int | None = None, guest_token: str | None = None, cart_id: int | None = None):
        if user_id is not None:
            message = f"Cart not found for user {user_id}"
            details = {'user_id': user_id}
        elif guest_token is not None:
            message = "Guest cart not found"
            details = {}
        elif cart_id is not None:
            message = f"Cart {cart_id} not found"
            details = {'cart_id': cart_id}
        else:
            message = "Cart not found"
            details = {}

        super().__init__(message, details)
        self.user_id = user_id
        self.cart_id = cart_id


class CartItemNotFoundException(CartException):
    """Raised when cart item not found."""

    def __init__(self, cart_item_id: int):
        super().__init__(
            f"Cart item {cart_item_id} not found",
            details={'cart_item_id': cart_item_id}
        )
        self.cart_item_id = cart_item_id


class CartOwnerRequiredException(CartException):
    """Raised when a cart operation is attempted without user identity or guest token."""

    def __init__(self):
        super().__init__("User identity or guest token required")


class CartOwnershipException(CartException):
    """Raised when the caller's credential does not own the cart."""

    def __init__(self, cart_id: int, reason: str):
        super().__init__(
            f"Not authorized to modify cart {cart_id}: {reason}",
            details={'cart_id': cart_id, 'reason': reason}
        )
        self.cart_id = cart_id
        self.reason = reason


class EmptyCartException(CartException):
    """Raised when trying to checkout with empty cart."""

    def __init__(self, user_id: int):
        super().__init__(
            f"Cannot create order with empty cart (user {user_id})",
            details={'user_id': user_id}
        )
        self.user_id = user_id


class CartConflictException(CartException):
    """Raised when a concurrent write keeps colliding with the cart's unique constraints."""

    def __init__(self, product_id: int):
        super().__init__(
            f"Cart was modified concurrently while adding product {product_id}, please retry",
            details={'product_id': product_id}
        )
        self.product_id = product_id
