import asyncio
import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit, session_rollback
from exceptions.product import (
    InvalidImageException,
    InvalidProductDataException,
    ProductConflictException,
    ProductImageNotFoundException,
    ProductNotFoundException,
)
from models.pagination import PageMeta, ProductPageDTO
from models.product import ProductDTO, ProductDetailDTO, ProductQueryDTO
from repositories.category import CategoryRepository
from repositories.product import ProductRepository
from storage import ImageStorageError, ImageUpload, get_storage
from utils.permission_utils import require_admin
from utils.slug import slugify, unique_slug
from utils.token_validator import Identity

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

# Fields an admin may change through update()
UPDATABLE_FIELDS = ("name", "description", "price", "stock", "category_id")


class ProductService:
    """Catalog products. Reads are public, writes require an admin."""

    @staticmethod
    async def _unique_slug(name: str, session: AsyncSession, exclude_id: int | None = None) -> str:
        async def exists(candidate: str) -> bool:
            return await ProductRepository.slug_exists(candidate, session, exclude_id=exclude_id)
        return await unique_slug(slugify(name), exists)

    @staticmethod
    async def _ensure_category(category_id: int, session: AsyncSession) -> None:
        if await CategoryRepository.get_by_id(category_id, session) is None:
            raise InvalidProductDataException(f"Category {category_id} not found")

    @staticmethod
    def _validate_values(price: Decimal | None, stock: int | None) -> None:
        if price is not None and price <= 0:
            raise InvalidProductDataException("Price must be greater than 0")
        if stock is not None and stock < 0:
            raise InvalidProductDataException("Stock cannot be negative")

    @staticmethod
    async def _commit_or_conflict(session: AsyncSession, product_id: int | None = None) -> None:
        try:
            await session_commit(session)
        except IntegrityError as e:
            await session_rollback(session)
            logging.warning(f"Product write hit a constraint: {e.orig}")
            raise ProductConflictException("Product violates a uniqueness constraint", product_id)

    @staticmethod
    def _normalize_query(query: ProductQueryDTO) -> ProductQueryDTO:
        page = max(query.page, 1)
        limit = min(max(query.limit, 1), config.PAGE_MAX_LIMIT)
        if query.min_price is not None and query.max_price is not None and query.min_price > query.max_price:
            raise InvalidProductDataException("min_price cannot be greater than max_price")
        return query.model_copy(update={"page": page, "limit": limit})

    @staticmethod
    async def create(name: str, description: str | None, price: Decimal, stock: int, category_id: int,
                     identity: Identity | None, session: AsyncSession) -> ProductDetailDTO:
        """
        Create a product in an existing category.

        Raises:
            InvalidProductDataException: unknown category, blank name, price <= 0, stock < 0
        """
        require_admin(identity, "create products")
        name = (name or "").strip()
        if not name:
            raise InvalidProductDataException("Product name is required")
        ProductService._validate_values(price, stock)
        await ProductService._ensure_category(category_id, session)

        slug = await ProductService._unique_slug(name, session)
        product_id = await ProductRepository.create(ProductDTO(
            name=name,
            description=description,
            slug=slug,
            price=price,
            stock=stock,
            category_id=category_id,
            image_urls=[],
        ), session)
        await ProductService._commit_or_conflict(session)
        logging.info(f"📦 Product {product_id} '{name}' created (slug={slug}, stock={stock})")
        return await ProductRepository.get_detail(product_id, session)

    @staticmethod
    async def list_products(query: ProductQueryDTO, session: AsyncSession) -> ProductPageDTO:
        query = ProductService._normalize_query(query)
        products, total = await ProductRepository.search(query, session)
        return ProductPageDTO(data=products, meta=PageMeta.build(query.page, query.limit, total))

    @staticmethod
    async def search(q: str, query: ProductQueryDTO, session: AsyncSession) -> ProductPageDTO:
        return await ProductService.list_products(query.model_copy(update={"q": q}), session)

    @staticmethod
    async def get(product_id: int, session: AsyncSession) -> ProductDetailDTO:
        product = await ProductRepository.get_detail(product_id, session)
        if product is None:
            raise ProductNotFoundException(product_id=product_id)
        return product

    @staticmethod
    async def get_by_slug(slug: str, session: AsyncSession) -> ProductDetailDTO:
        product = await ProductRepository.get_detail_by_slug(slug, session)
        if product is None:
            raise ProductNotFoundException(slug=slug)
        return product

    @staticmethod
    async def update(product_id: int, changes: dict, identity: Identity | None,
                     session: AsyncSession) -> ProductDetailDTO:
        """
        Partial update. `changes` holds only the fields the client sent.

        A renamed product gets a new unique slug; a changed category must exist.
        """
        require_admin(identity, "update products")
        existing = await ProductRepository.get_by_id(product_id, session)
        if existing is None:
            raise ProductNotFoundException(product_id=product_id)

        values = {field: value for field, value in changes.items() if field in UPDATABLE_FIELDS}
        if not values:
            raise InvalidProductDataException("No updatable fields provided", product_id)

        if "name" in values:
            values["name"] = (values["name"] or "").strip()
            if not values["name"]:
                raise InvalidProductDataException("Product name cannot be empty", product_id)
        ProductService._validate_values(values.get("price"), values.get("stock"))
        if values.get("category_id") is not None:
            await ProductService._ensure_category(values["category_id"], session)
        elif "category_id" in values:
            raise InvalidProductDataException("category_id cannot be null", product_id)

        if "name" in values and values["name"] != existing.name:
            values["slug"] = await ProductService._unique_slug(values["name"], session, exclude_id=product_id)

        await ProductRepository.update(product_id, values, session)
        await ProductService._commit_or_conflict(session, product_id)
        logging.info(f"📦 Product {product_id} updated: {sorted(values)}")
        return await ProductRepository.get_detail(product_id, session)

    @staticmethod
    async def delete(product_id: int, identity: Identity | None, session: AsyncSession) -> None:
        """
        Delete a product, then its images.

        Products referenced by orders are kept (ProductConflictException).
        Image deletion failures are logged, the product stays deleted.
        """
        require_admin(identity, "delete products")
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None:
            raise ProductNotFoundException(product_id=product_id)
        if await ProductRepository.is_referenced_by_orders(product_id, session):
            raise ProductConflictException("Product is referenced by existing orders", product_id)

        await ProductRepository.delete(product_id, session)
        await ProductService._commit_or_conflict(session, product_id)
        logging.info(f"📦 Product {product_id} '{product.name}' deleted")

        storage = get_storage()
        for image_url in product.image_urls:
            try:
                await asyncio.to_thread(storage.delete, image_url)
            except ImageStorageError as e:
                logging.warning(f"Failed to delete image during product removal ({product_id}): {e}")

    @staticmethod
    async def adjust_stock(product_id: int, delta: int, identity: Identity | None,
                           session: AsyncSession) -> ProductDetailDTO:
        """Apply a signed stock correction. The result may not drop below zero."""
        require_admin(identity, "adjust stock")
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None:
            raise ProductNotFoundException(product_id=product_id)

        if not await ProductRepository.adjust_stock(product_id, delta, session):
            await session_rollback(session)
            raise InvalidProductDataException(
                f"Insufficient stock: cannot apply {delta} to current stock {product.stock}", product_id)
        await session_commit(session)
        logging.info(f"📦 Product {product_id} stock adjusted by {delta:+d}")
        return await ProductRepository.get_detail(product_id, session)

    @staticmethod
    def _validate_image(image: ImageUpload) -> None:
        if image.content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidImageException(f"Only JPEG, PNG, and WebP images are allowed ({image.filename})")
        if not image.content:
            raise InvalidImageException(f"Empty file ({image.filename})")
        if len(image.content) > config.IMAGE_MAX_BYTES:
            raise InvalidImageException(
                f"File size must be at most {config.IMAGE_MAX_BYTES} bytes ({image.filename})")

    @staticmethod
    async def add_images(product_id: int, images: list[ImageUpload], identity: Identity | None,
                         session: AsyncSession) -> ProductDetailDTO:
        """
        Upload images and append their URLs to the product.

        All files are validated before any upload. Already uploaded files are
        removed again if a later upload or the database update fails.
        """
        require_admin(identity, "upload product images")
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None:
            raise ProductNotFoundException(product_id=product_id)
        if not images:
            raise InvalidImageException("No file provided")
        for image in images:
            ProductService._validate_image(image)

        storage = get_storage()
        uploaded: list[str] = []
        try:
            for image in images:
                uploaded.append(await asyncio.to_thread(storage.upload, image.content, image.content_type,
                                                        image.filename, product_id))
            await ProductRepository.update(product_id, {"image_urls": [*product.image_urls, *uploaded]}, session)
            await session_commit(session)
        except Exception as e:
            await session_rollback(session)
            for url in uploaded:
                try:
                    await asyncio.to_thread(storage.delete, url)
                except ImageStorageError as cleanup_error:
                    logging.warning(f"Failed to clean up uploaded image {url}: {cleanup_error}")
            if isinstance(e, ImageStorageError):
                raise InvalidImageException(f"Upload failed: {e}") from e
            raise

        logging.info(f"🖼 Product {product_id}: {len(uploaded)} image(s) added")
        return await ProductRepository.get_detail(product_id, session)

    @staticmethod
    async def remove_image(product_id: int, image_url: str, identity: Identity | None,
                           session: AsyncSession) -> ProductDetailDTO:
        require_admin(identity, "remove product images")
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None:
            raise ProductNotFoundException(product_id=product_id)
        if image_url not in product.image_urls:
            raise ProductImageNotFoundException(product_id, image_url)

        try:
            await asyncio.to_thread(get_storage().delete, image_url)
        except ImageStorageError as e:
            raise InvalidImageException(f"Failed to delete image: {e}") from e

        remaining = [url for url in product.image_urls if url != image_url]
        await ProductRepository.update(product_id, {"image_urls": remaining}, session)
        await session_commit(session)
        logging.info(f"🖼 Product {product_id}: image removed")
        return await ProductRepository.get_detail(product_id, session)
