"""
Custom exceptions for the shop backend.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
ShopException (base)
├── CartException
│   ├── CartNotFoundException
│   ├── CartItemNotFoundException
│   ├── CartOwnerRequiredException
│   ├── CartOwnershipException
│   ├── CartConflictException
│   └── EmptyCartException
├── CategoryException
│   ├── CategoryNotFoundException
│   ├── CategoryAlreadyExistsException
│   ├── CategoryNotEmptyException
│   └── InvalidCategoryDataException
├── ProductException
│   ├── ProductNotFoundException
│   ├── ProductConflictException
│   ├── InvalidProductDataException
│   ├── ProductImageNotFoundException
│   └── InvalidImageException
├── OrderException
│   ├── OrderNotFoundException
│   ├── InsufficientStockException
│   ├── CheckoutCartUnavailableException
│   ├── OrderCreationFailedException
│   ├── InvalidOrderStateException
│   ├── InvalidStatusTransitionException
│   └── OrderOwnershipException
└── UserException
    ├── UserNotFoundException
    ├── UserAlreadyExistsException
    ├── UserHasOrdersException
    ├── InvalidUserDataException
    ├── AuthenticationException
    └── PermissionDeniedException

Usage:
------
Services raise specific exceptions:
    raise OrderNotFoundException(order_id=123)

The web layer translates them into HTTP responses (see utils/error_handler.py):
    404 {"detail": "Order 123 not found", "error": "OrderNotFoundException", ...}
"""

from .base import ShopException
from .cart import (
    CartException,
    CartNotFoundException,
    CartItemNotFoundException,
    CartOwnerRequiredException,
    CartOwnershipException,
    CartConflictException,
    EmptyCartException,
)
from .category import (
    CategoryException,
    CategoryNotFoundException,
    CategoryAlreadyExistsException,
    CategoryNotEmptyException,
    InvalidCategoryDataException,
)
from .order import (
    OrderException,
    OrderNotFoundException,
    InsufficientStockException,
    CheckoutCartUnavailableException,
    OrderCreationFailedException,
    InvalidOrderStateException,
    InvalidStatusTransitionException,
    OrderOwnershipException,
)
from .product import (
    ProductException,
    ProductNotFoundException,
    ProductConflictException,
    InvalidProductDataException,
    ProductImageNotFoundException,
    InvalidImageException,
)
from .user import (
    UserException,
    UserNotFoundException,
    UserAlreadyExistsException,
    UserHasOrdersException,
    InvalidUserDataException,
    AuthenticationException,
    PermissionDeniedException,
)

__all__ = [
    # Base
    'ShopException',

    # Cart
    'CartException',
    'CartNotFoundException',
    'CartItemNotFoundException',
    'CartOwnerRequiredException',
    'CartOwnershipException',
    'CartConflictException',
    'EmptyCartException',

    # Category
    'CategoryException',
    'CategoryNotFoundException',
    'CategoryAlreadyExistsException',
    'CategoryNotEmptyException',
    'InvalidCategoryDataException',

    # Order
    'OrderException',
    'OrderNotFoundException',
    'InsufficientStockException',
    'CheckoutCartUnavailableException',
    'OrderCreationFailedException',
    'InvalidOrderStateException',
    'InvalidStatusTransitionException',
    'OrderOwnershipException',

    # Product
    'ProductException',
    'ProductNotFoundException',
    'ProductConflictException',
    'InvalidProductDataException',
    'ProductImageNotFoundException',
    'InvalidImageException',

    # User
    'UserException',
    'UserNotFoundException',
    'UserAlreadyExistsException',
    'UserHasOrdersException',
    'InvalidUserDataException',
    'AuthenticationException',
    'PermissionDeniedException',
]
