"""
Error Handler Utility for the REST API

Provides centralized error handling for routers with:
- Automatic exception to HTTP status mapping
- Consistent JSON error body
- Logging for debugging

Routers never catch service exceptions themselves; they propagate to the
handlers registered here:

    from utils.error_handler import register_exception_handlers
    register_exception_handlers(app)

Error body:
    {"detail": "<message>", "error": "<ExceptionClass>", "details": {...}}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from exceptions import (
    ShopException,
    CartNotFoundException,
    CartItemNotFoundException,
    CartOwnerRequiredException,
    CartOwnershipException,
    CartConflictException,
    EmptyCartException,
    CategoryNotFoundException,
    CategoryAlreadyExistsException,
    CategoryNotEmptyException,
    InvalidCategoryDataException,
    ProductNotFoundException,
    ProductConflictException,
    InvalidProductDataException,
    ProductImageNotFoundException,
    InvalidImageException,
    OrderNotFoundException,
    InsufficientStockException,
    CheckoutCartUnavailableException,
    OrderCreationFailedException,
    InvalidOrderStateException,
    InvalidStatusTransitionException,
    OrderOwnershipException,
    UserNotFoundException,
    UserAlreadyExistsException,
    UserHasOrdersException,
    InvalidUserDataException,
    AuthenticationException,
    PermissionDeniedException,
)

logger = logging.getLogger(__name__)

# Map exception types to HTTP status codes
error_mapping: dict[type[ShopException], int] = {
    # Not found
    CartNotFoundException: 404,
    CartItemNotFoundException: 404,
    CategoryNotFoundException: 404,
    ProductNotFoundException: 404,
    ProductImageNotFoundException: 404,
    OrderNotFoundException: 404,
    UserNotFoundException: 404,

    # Bad request
    CartOwnerRequiredException: 400,
    EmptyCartException: 400,
    InsufficientStockException: 400,
    CheckoutCartUnavailableException: 400,
    OrderCreationFailedException: 400,
    InvalidOrderStateException: 400,
    InvalidStatusTransitionException: 400,
    CategoryNotEmptyException: 400,
    InvalidCategoryDataException: 400,
    InvalidProductDataException: 400,
    InvalidImageException: 400,
    InvalidUserDataException: 400,

    # Unauthorized
    AuthenticationException: 401,
    CartOwnershipException: 401,

    # Forbidden
    PermissionDeniedException: 403,
    OrderOwnershipException: 403,

    # Conflict
    CategoryAlreadyExistsException: 409,
    ProductConflictException: 409,
    CartConflictException: 409,
    UserAlreadyExistsException: 409,
    UserHasOrdersException: 409,
}

DEFAULT_SERVICE_ERROR_STATUS = 400


def get_status_code(exception: ShopException) -> int:
    """
    Resolve the HTTP status for a service exception.

    Walks the MRO so subclasses inherit their parent's status unless mapped explicitly.
    """
    for exception_type in type(exception).__mro__:
        if exception_type in error_mapping:
            return error_mapping[exception_type]
    logger.error(f"Unmapped exception type: {type(exception).__name__}")
    return DEFAULT_SERVICE_ERROR_STATUS


def build_error_body(exception: ShopException) -> dict:
    return {
        "detail": exception.message,
        "error": type(exception).__name__,
        "details": exception.details,
    }


async def handle_service_error(request: Request, exception: ShopException) -> JSONResponse:
    """Convert a service exception into a JSON error response."""
    status_code = get_status_code(exception)
    logger.warning(f"Service error handled: {request.method} {request.url.path} -> {status_code} "
                   f"{type(exception).__name__} - {exception.message}")
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=build_error_body(exception), headers=headers)


async def handle_unexpected_error(request: Request, exception: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions (non-ShopException).

    The full traceback goes to the log, the client only gets a generic message.
    """
    logger.error(f"Unexpected error on {request.method} {request.url.path}: "
                 f"{type(exception).__name__} - {str(exception)}", exc_info=exception)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": "InternalServerError", "details": {}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopException, handle_service_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
