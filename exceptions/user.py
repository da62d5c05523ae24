"""
User and authentication exceptions.
"""

from .base import ShopException


class UserException(ShopException):
    """Base exception for user-related errors."""
    pass


class UserNotFoundException(UserException):
    """Raised when user is not found in database."""

    def __init__(self, user_id: int | None = None, email: str | None = None):
        if user_id is not None:
            message = f"User with ID {user_id} not found"
            details = {'user_id': user_id}
        elif email:
            message = "User with given email not found"
            details = {}
        else:
            message = "User not found"
            details = {}

        super().__init__(message, details)
        self.user_id = user_id


class AuthenticationException(UserException):
    """Raised when a credential is missing, malformed, expired or forged."""

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(reason, details={'reason': reason})
        self.reason = reason


class PermissionDeniedException(UserException):
    """Raised when an authenticated caller lacks the required role."""

    def __init__(self, user_id: int | None, action: str):
        super().__init__(
            f"User {user_id} is not allowed to {action}",
            details={'user_id': user_id, 'action': action}
        )
        self.user_id = user_id
        self.action = action


class UserAlreadyExistsException(UserException):
    """Raised when an email or username is already taken by another user."""

    def __init__(self, field: str, value: str):
        super().__init__(
            f"User with this {field} already exists",
            details={'field': field, 'value': value}
        )
        self.field = field
        self.value = value


class UserHasOrdersException(UserException):
    """Raised when deleting a user that still has orders."""

    def __init__(self, user_id: int, order_count: int):
        super().__init__(
            f"Cannot delete user {user_id}: user has {order_count} order(s)",
            details={'user_id': user_id, 'order_count': order_count}
        )
        self.user_id = user_id
        self.order_count = order_count


class InvalidUserDataException(UserException):
    """Raised when user input fails validation."""

    def __init__(self, message: str, user_id: int | None = None):
        super().__init__(message, details={'user_id': user_id} if user_id is not None else {})
        self.user_id = user_id
