"""
Bearer token validation utility.

Tokens are issued by the external auth service and signed with the shared
JWT_SECRET. This module only verifies them and extracts the caller identity.

Security features:
- Signature verification (HS256 by default)
- Expiry check (exp claim, when present)
- Subject (user id) and role extraction
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt

import config
from enums.user_role import UserRole
from exceptions.user import AuthenticationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as asserted by a verified token."""
    user_id: int
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the raw token from an 'Authorization: Bearer <token>' header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def validate_access_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> Identity:
    """
    Verify a JWT and build the caller identity.

    Args:
        token: Raw JWT (without the 'Bearer ' prefix)
        secret: Verification secret (default: config.JWT_SECRET)
        algorithm: Signing algorithm (default: config.JWT_ALGORITHM)

    Returns:
        Identity with user id from 'sub' and role from 'role' (default USER)

    Raises:
        AuthenticationException: If the token is malformed, expired, forged,
            or carries no usable subject

    Example:
        >>> identity = validate_access_token(request_token)
        >>> identity.user_id
        42
    """
    if not token:
        raise AuthenticationException("Authentication required")

    secret = secret or config.JWT_SECRET
    algorithm = algorithm or config.JWT_ALGORITHM

    decode_options = {"require": ["sub"]}
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=config.JWT_AUDIENCE,
            options={**decode_options, "verify_aud": config.JWT_AUDIENCE is not None},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationException("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected bearer token: {type(e).__name__}")
        raise AuthenticationException("Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationException("Invalid token subject")

    role_claim = payload.get("role", UserRole.USER.value)
    try:
        role = UserRole(str(role_claim).upper())
    except ValueError:
        logger.warning(f"Token for user {user_id} carries unknown role '{role_claim}', treating as USER")
        role = UserRole.USER

    return Identity(user_id=user_id, role=role)
