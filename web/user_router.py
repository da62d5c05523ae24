"""
Users API: admin user management under /api/users, the caller's own profile under /api/auth/profile.
"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.user_role import UserRole
from models.pagination import UserPageDTO
from models.user import UserDTO
from services.user import UserService
from utils.token_validator import Identity
from web.dependencies import get_admin_identity, get_identity, get_session

logger = logging.getLogger(__name__)

user_router = APIRouter(prefix="/api/users", tags=["users"])
profile_router = APIRouter(prefix="/api/auth", tags=["profile"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CreateUserPayload(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    username: str = Field(..., min_length=3, max_length=20)
    name: str | None = Field(default=None, max_length=100)
    role: UserRole = UserRole.USER


class UpdateProfilePayload(BaseModel):
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    username: str | None = Field(default=None, min_length=3, max_length=20)
    name: str | None = Field(default=None, max_length=100)


class UpdateUserPayload(UpdateProfilePayload):
    role: UserRole | None = None


class MessageResponse(BaseModel):
    message: str


@user_router.post("", response_model=UserDTO, status_code=201)
async def create_user(payload: CreateUserPayload,
                      identity: Identity = Depends(get_admin_identity),
                      session: AsyncSession = Depends(get_session)):
    return await UserService.create_user(payload.email, payload.username, payload.name, payload.role,
                                         identity, session)


@user_router.get("", response_model=UserPageDTO)
async def list_users(page: int = Query(default=1, ge=1),
                     limit: int = Query(default=config.PAGE_DEFAULT_LIMIT, ge=1, le=config.PAGE_MAX_LIMIT),
                     identity: Identity = Depends(get_admin_identity),
                     session: AsyncSession = Depends(get_session)):
    return await UserService.list_users(identity, page, limit, session)


@user_router.get("/{user_id}", response_model=UserDTO)
async def get_user(user_id: int,
                   identity: Identity = Depends(get_admin_identity),
                   session: AsyncSession = Depends(get_session)):
    return await UserService.get_user(user_id, identity, session)


@user_router.patch("/{user_id}", response_model=UserDTO)
async def update_user(user_id: int,
                      payload: UpdateUserPayload,
                      identity: Identity = Depends(get_admin_identity),
                      session: AsyncSession = Depends(get_session)):
    return await UserService.update_user(user_id, payload.model_dump(exclude_unset=True), identity, session)


@user_router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int,
                      identity: Identity = Depends(get_admin_identity),
                      session: AsyncSession = Depends(get_session)):
    await UserService.delete_user(user_id, identity, session)
    logger.info(f"User {user_id} removed via API")
    return MessageResponse(message="User deleted successfully")


@profile_router.get("/profile", response_model=UserDTO)
async def get_profile(identity: Identity = Depends(get_identity),
                      session: AsyncSession = Depends(get_session)):
    return await UserService.get_profile(identity, session)


@profile_router.patch("/profile", response_model=UserDTO)
async def update_profile(payload: UpdateProfilePayload,
                         identity: Identity = Depends(get_identity),
                         session: AsyncSession = Depends(get_session)):
    return await UserService.update_profile(identity, payload.model_dump(exclude_unset=True), session)
