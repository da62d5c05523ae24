"""
Centralized permission utilities for user authorization.

This module provides centralized functions for checking user permissions
to eliminate duplicate admin verification logic across services and routers.

Roles come from the verified bearer token (see utils/token_validator.py).
"""

import logging
from typing import Optional

from exceptions.user import AuthenticationException, PermissionDeniedException
from utils.token_validator import Identity

logger = logging.getLogger(__name__)


def is_admin_user(identity: Optional[Identity]) -> bool:
    """
    Check if a caller is an admin.

    Args:
        identity: Verified caller identity, or None for anonymous callers

    Returns:
        True if caller is an admin, False otherwise
    """
    return identity is not None and identity.is_admin


def require_authenticated(identity: Optional[Identity]) -> Identity:
    """Return the identity or raise AuthenticationException for anonymous callers."""
    if identity is None:
        raise AuthenticationException("Authentication required")
    return identity


def require_admin(identity: Optional[Identity], action: str) -> Identity:
    """
    Ensure the caller is an admin.

    Args:
        identity: Verified caller identity
        action: Short description of the attempted action, used in the error and the log

    Raises:
        AuthenticationException: anonymous caller
        PermissionDeniedException: authenticated non-admin caller
    """
    identity = require_authenticated(identity)
    if not identity.is_admin:
        logger.warning(f"Permission denied: user {identity.user_id} attempted '{action}'")
        raise PermissionDeniedException(identity.user_id, action)
    return identity
