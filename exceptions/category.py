"""
Category-related exceptions.
"""

from .base import ShopException


class CategoryException(ShopException):
    """Base exception for category-related errors."""
    pass


class CategoryNotFoundException(CategoryException):
    """Raised when category is not found in database."""

    def __init__(self, category_id: int):
        super().__init__(
            f"Category {category_id} not found",
            details={'category_id': category_id}
        )
        self.category_id = category_id


class CategoryAlreadyExistsException(CategoryException):
    """Raised when a category with the same name (case-insensitive) exists."""

    def __init__(self, name: str):
        super().__init__(
            f"Category with name '{name}' already exists",
            details={'name': name}
        )
        self.name = name


class CategoryNotEmptyException(CategoryException):
    """Raised when deleting a category that still has products."""

    def __init__(self, category_id: int, product_count: int):
        super().__init__(
            f"Cannot delete category {category_id} with {product_count} linked products",
            details={'category_id': category_id, 'product_count': product_count}
        )
        self.category_id = category_id
        self.product_count = product_count


class InvalidCategoryDataException(CategoryException):
    """Raised when category input is invalid."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid category data: {reason}",
            details={'reason': reason}
        )
        self.reason = reason
