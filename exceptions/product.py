"""
Product-related exceptions.
"""

from .base import ShopException


class ProductException(ShopException):
    """Base exception for product-related errors."""
    pass


class ProductNotFoundException(ProductException):
    """Raised when product is not found in database."""

    def __init__(self, product_id: int | None = None, slug: str | None = None):
        if product_id is not None:
            message = f"Product {product_id} not found"
            details = {'product_id': product_id}
        elif slug is not None:
            message = f"Product with slug '{slug}' not found"
            details = {'slug': slug}
        else:
            message = "Product not found"
            details = {}

        super().__init__(message, details)
        self.product_id = product_id
        self.slug = slug


class ProductConflictException(ProductException):
    """Raised when a product write violates a uniqueness or reference constraint."""

    def __init__(self, reason: str, product_id: int | None = None):
        super().__init__(
            f"Product conflict: {reason}",
            details={'product_id': product_id, 'reason': reason}
        )
        self.product_id = product_id
        self.reason = reason


class InvalidProductDataException(ProductException):
    """Raised when product input is invalid (unknown category, negative stock result, ...)."""

    def __init__(self, reason: str, product_id: int | None = None):
        super().__init__(
            f"Invalid product data: {reason}",
            details={'product_id': product_id, 'reason': reason}
        )
        self.product_id = product_id
        self.reason = reason


class ProductImageNotFoundException(ProductException):
    """Raised when removing an image URL that is not attached to the product."""

    def __init__(self, product_id: int, image_url: str):
        super().__init__(
            f"Image not attached to product {product_id}",
            details={'product_id': product_id, 'image_url': image_url}
        )
        self.product_id = product_id
        self.image_url = image_url


class InvalidImageException(ProductException):
    """Raised when an uploaded image is rejected or storage fails."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid image: {reason}",
            details={'reason': reason}
        )
        self.reason = reason
