"""
Shared FastAPI dependencies: database session, caller identity, guest token.

Identity comes only from 'Authorization: Bearer <jwt>'. The guest credential
comes only from the X-Guest-Token header.
"""

from typing import AsyncIterator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import get_db_session
from utils.permission_utils import require_admin, require_authenticated
from utils.token_validator import Identity, extract_bearer_token, validate_access_token


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_db_session() as session:
        yield session


async def get_optional_identity(authorization: str | None = Header(default=None)) -> Identity | None:
    """
    Identity of the caller, or None for anonymous requests.

    A malformed or invalid token is rejected (401) rather than silently
    treated as anonymous.
    """
    if authorization is None:
        return None
    token = extract_bearer_token(authorization)
    if token is None:
        return validate_access_token("")
    return validate_access_token(token)


async def get_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    return require_authenticated(identity)


async def get_admin_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    return require_admin(identity, "access admin endpoints")


async def get_guest_token(
    guest_token: str | None = Header(default=None, alias=config.GUEST_TOKEN_HEADER),
) -> str | None:
    if guest_token is None:
        return None
    guest_token = guest_token.strip()
    return guest_token or None
