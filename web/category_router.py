"""
Categories API. Listing is public, writes are admin-only.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from models.category import CategoryWithCountDTO
from services.category import CategoryService
from utils.token_validator import Identity
from web.dependencies import get_admin_identity, get_session

logger = logging.getLogger(__name__)

category_router = APIRouter(prefix="/api/categories", tags=["categories"])


class CreateCategoryPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    slug: str | None = Field(default=None, max_length=120)


class UpdateCategoryPayload(BaseModel):
    """All fields optional. An empty slug regenerates it from the name."""
    name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    slug: str | None = Field(default=None, max_length=120)


class MessageResponse(BaseModel):
    message: str


@category_router.get("", response_model=list[CategoryWithCountDTO])
async def list_categories(session: AsyncSession = Depends(get_session)):
    return await CategoryService.list_categories(session)


@category_router.get("/{category_id}", response_model=CategoryWithCountDTO)
async def get_category(category_id: int, session: AsyncSession = Depends(get_session)):
    return await CategoryService.get(category_id, session)


@category_router.post("", response_model=CategoryWithCountDTO, status_code=201)
async def create_category(payload: CreateCategoryPayload,
                          identity: Identity = Depends(get_admin_identity),
                          session: AsyncSession = Depends(get_session)):
    return await CategoryService.create(payload.name, payload.description, payload.slug, identity, session)


@category_router.patch("/{category_id}", response_model=CategoryWithCountDTO)
async def update_category(category_id: int,
                          payload: UpdateCategoryPayload,
                          identity: Identity = Depends(get_admin_identity),
                          session: AsyncSession = Depends(get_session)):
    return await CategoryService.update(category_id, payload.name, payload.description, payload.slug,
                                        identity, session, fields_set=set(payload.model_fields_set))


@category_router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(category_id: int,
                          identity: Identity = Depends(get_admin_identity),
                          session: AsyncSession = Depends(get_session)):
    await CategoryService.delete(category_id, identity, session)
    return MessageResponse(message="Category deleted successfully")
