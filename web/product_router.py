"""
Products API.

Public: paginated listing with filters, search, lookup by id or slug.
Admin: create, partial update, delete, stock correction, image upload/removal.
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.product_sort import ProductSortField, SortOrder
from models.pagination import ProductPageDTO
from models.product import ProductDetailDTO, ProductQueryDTO
from services.product import ProductService
from storage import ImageUpload
from utils.token_validator import Identity
from web.dependencies import get_admin_identity, get_session

logger = logging.getLogger(__name__)

product_router = APIRouter(prefix="/api/products", tags=["products"])


class CreateProductPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    category_id: int = Field(..., gt=0)


class UpdateProductPayload(BaseModel):
    """Only the fields sent are changed."""
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    stock: int | None = Field(default=None, ge=0)
    category_id: int | None = Field(default=None, gt=0)


class StockAdjustmentPayload(BaseModel):
    """Signed delta applied to the current stock."""
    quantity: int


class RemoveImagePayload(BaseModel):
    image_url: str = Field(..., min_length=1)


def product_query(q: str | None = Query(default=None, max_length=200),
                  category_id: int | None = Query(default=None, gt=0),
                  min_price: Decimal | None = Query(default=None, ge=0),
                  max_price: Decimal | None = Query(default=None, ge=0),
                  page: int = Query(default=1, ge=1),
                  limit: int = Query(default=config.PAGE_DEFAULT_LIMIT, ge=1, le=config.PAGE_MAX_LIMIT),
                  sort_by: ProductSortField = ProductSortField.CREATED_AT,
                  sort_order: SortOrder = SortOrder.DESC) -> ProductQueryDTO:
    return ProductQueryDTO(q=q, category_id=category_id, min_price=min_price, max_price=max_price,
                           page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


@product_router.get("", response_model=ProductPageDTO)
async def list_products(query: ProductQueryDTO = Depends(product_query),
                        session: AsyncSession = Depends(get_session)):
    return await ProductService.list_products(query, session)


@product_router.get("/search", response_model=ProductPageDTO)
async def search_products(q: str = Query(..., min_length=1, max_length=200),
                          query: ProductQueryDTO = Depends(product_query),
                          session: AsyncSession = Depends(get_session)):
    return await ProductService.search(q, query, session)


@product_router.get("/slug/{slug}", response_model=ProductDetailDTO)
async def get_product_by_slug(slug: str, session: AsyncSession = Depends(get_session)):
    return await ProductService.get_by_slug(slug, session)


@product_router.get("/{product_id}", response_model=ProductDetailDTO)
async def get_product(product_id: int, session: AsyncSession = Depends(get_session)):
    return await ProductService.get(product_id, session)


@product_router.post("", response_model=ProductDetailDTO, status_code=201)
async def create_product(payload: CreateProductPayload,
                         identity: Identity = Depends(get_admin_identity),
                         session: AsyncSession = Depends(get_session)):
    return await ProductService.create(payload.name, payload.description, payload.price, payload.stock,
                                       payload.category_id, identity, session)


@product_router.patch("/{product_id}", response_model=ProductDetailDTO)
async def update_product(product_id: int,
                         payload: UpdateProductPayload,
                         identity: Identity = Depends(get_admin_identity),
                         session: AsyncSession = Depends(get_session)):
    return await ProductService.update(product_id, payload.model_dump(exclude_unset=True), identity, session)


@product_router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: int,
                         identity: Identity = Depends(get_admin_identity),
                         session: AsyncSession = Depends(get_session)):
    await ProductService.delete(product_id, identity, session)
    return Response(status_code=204)


@product_router.patch("/{product_id}/stock", response_model=ProductDetailDTO)
async def adjust_product_stock(product_id: int,
                               payload: StockAdjustmentPayload,
                               identity: Identity = Depends(get_admin_identity),
                               session: AsyncSession = Depends(get_session)):
    return await ProductService.adjust_stock(product_id, payload.quantity, identity, session)


@product_router.post("/{product_id}/images", response_model=ProductDetailDTO)
async def upload_product_images(product_id: int,
                                files: list[UploadFile] = File(...),
                                identity: Identity = Depends(get_admin_identity),
                                session: AsyncSession = Depends(get_session)):
    images = []
    for upload in files:
        images.append(ImageUpload(
            filename=upload.filename or "upload",
            content_type=upload.content_type or "",
            content=await upload.read(),
        ))
    return await ProductService.add_images(product_id, images, identity, session)


@product_router.delete("/{product_id}/images", response_model=ProductDetailDTO)
async def remove_product_image(product_id: int,
                               payload: RemoveImagePayload,
                               identity: Identity = Depends(get_admin_identity),
                               session: AsyncSession = Depends(get_session)):
    return await ProductService.remove_image(product_id, payload.image_url, identity, session)
