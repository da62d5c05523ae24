"""
Order-related exceptions.
"""

from .base import ShopException


class OrderException(ShopException):
    """Base exception for order-related errors."""
    pass


class OrderNotFoundException(OrderException):
    """Raised when order is not found in database."""

    def __init__(self, order_id: int):
        super().__init__(
            f"Order {order_id} not found",
            details={'order_id': order_id}
        )
        self.order_id = order_id


class InsufficientStockException(OrderException):
    """Raised when requested quantity exceeds the product's available stock."""

    def __init__(self, product_id: int, requested: int, available: int, product_name: str | None = None):
        label = product_name if product_name else f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            details={'product_id': product_id, 'requested': requested, 'available': available}
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class CheckoutCartUnavailableException(OrderException):
    """Raised when the user's cart cannot be resolved (or merged) for checkout."""

    def __init__(self, user_id: int):
        super().__init__(
            f"Cart not found or empty for user {user_id}",
            details={'user_id': user_id}
        )
        self.user_id = user_id


class OrderCreationFailedException(OrderException):
    """Raised when the checkout transaction fails for a reason other than stock."""

    def __init__(self, user_id: int):
        super().__init__(
            "Failed to create order",
            details={'user_id': user_id}
        )
        self.user_id = user_id


class InvalidOrderStateException(OrderException):
    """Raised when order is in a terminal state and cannot change anymore."""

    def __init__(self, order_id: int, current_state: str):
        super().__init__(
            f"Cannot update status of order {order_id}: order is already {current_state}",
            details={'order_id': order_id, 'current_state': current_state}
        )
        self.order_id = order_id
        self.current_state = current_state


class InvalidStatusTransitionException(OrderException):
    """Raised when the requested status would move an order backwards."""

    def __init__(self, order_id: int, current_state: str, requested_state: str):
        super().__init__(
            f"Invalid status transition for order {order_id}: {current_state} -> {requested_state}",
            details={'order_id': order_id, 'current_state': current_state, 'requested_state': requested_state}
        )
        self.order_id = order_id
        self.current_state = current_state
        self.requested_state = requested_state


class OrderOwnershipException(OrderException):
    """Raised when user attempts to access/modify order they don't own."""

    def __init__(self, order_id: int, user_id: int):
        super().__init__(
            f"User {user_id} does not have permission to access order {order_id}",
            details={'order_id': order_id, 'user_id': user_id}
        )
        self.order_id = order_id
        self.user_id = user_id
