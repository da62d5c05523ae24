import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit, session_rollback
from exceptions.category import (
    CategoryAlreadyExistsException,
    CategoryNotEmptyException,
    CategoryNotFoundException,
    InvalidCategoryDataException,
)
from models.category import CategoryDTO, CategoryWithCountDTO
from repositories.category import CategoryRepository
from utils.permission_utils import require_admin
from utils.slug import slugify, unique_slug
from utils.token_validator import Identity


class CategoryService:
    """Catalog categories. Reads are public, writes require an admin."""

    @staticmethod
    async def _unique_slug(base: str, session: AsyncSession, exclude_id: int | None = None) -> str:
        async def exists(candidate: str) -> bool:
            return await CategoryRepository.slug_exists(candidate, session, exclude_id=exclude_id)
        return await unique_slug(slugify(base), exists)

    @staticmethod
    async def _commit_or_conflict(name: str | None, session: AsyncSession) -> None:
        try:
            await session_commit(session)
        except IntegrityError as e:
            await session_rollback(session)
            logging.warning(f"Category write hit unique constraint: {e.orig}")
            raise CategoryAlreadyExistsException(name or "")

    @staticmethod
    async def create(name: str, description: str | None, slug: str | None,
                     identity: Identity | None, session: AsyncSession) -> CategoryWithCountDTO:
        """
        Create a category.

        Raises:
            InvalidCategoryDataException: blank name
            CategoryAlreadyExistsException: name exists (case-insensitive)
        """
        require_admin(identity, "create categories")
        name = (name or "").strip()
        if not name:
            raise InvalidCategoryDataException("Category name is required and cannot be empty")

        if await CategoryRepository.get_by_name_ci(name, session) is not None:
            raise CategoryAlreadyExistsException(name)

        slug_source = slug.strip() if slug and slug.strip() else name
        final_slug = await CategoryService._unique_slug(slug_source, session)

        category_id = await CategoryRepository.create(CategoryDTO(
            name=name,
            description=(description or "").strip() or None,
            slug=final_slug,
        ), session)
        await CategoryService._commit_or_conflict(name, session)
        logging.info(f"📁 Category {category_id} '{name}' created (slug={final_slug})")
        return await CategoryRepository.get_with_count(category_id, session)

    @staticmethod
    async def list_categories(session: AsyncSession) -> list[CategoryWithCountDTO]:
        return await CategoryRepository.get_all_with_counts(session)

    @staticmethod
    async def get(category_id: int, session: AsyncSession) -> CategoryWithCountDTO:
        category = await CategoryRepository.get_with_count(category_id, session)
        if category is None:
            raise CategoryNotFoundException(category_id)
        return category

    @staticmethod
    async def update(category_id: int,
                     name: str | None,
                     description: str | None,
                     slug: str | None,
                     identity: Identity | None,
                     session: AsyncSession,
                     fields_set: set[str] | None = None) -> CategoryWithCountDTO:
        """
        Partial update.

        `fields_set` names the fields the client actually sent, so an explicit
        empty slug (regenerate from name) can be told apart from an omitted one.
        """
        require_admin(identity, "update categories")
        fields_set = fields_set if fields_set is not None else {
            field for field, value in (("name", name), ("description", description), ("slug", slug))
            if value is not None
        }
        if not fields_set & {"name", "description", "slug"}:
            raise InvalidCategoryDataException("At least one field (name, description, or slug) must be provided")

        current = await CategoryRepository.get_by_id(category_id, session)
        if current is None:
            raise CategoryNotFoundException(category_id)

        values = {}
        if "name" in fields_set:
            name = (name or "").strip()
            if not name:
                raise InvalidCategoryDataException("Category name cannot be empty")
            if await CategoryRepository.get_by_name_ci(name, session, exclude_id=category_id) is not None:
                raise CategoryAlreadyExistsException(name)
            values["name"] = name

        if "description" in fields_set:
            values["description"] = (description or "").strip() or None

        if "slug" in fields_set:
            if slug and slug.strip():
                values["slug"] = await CategoryService._unique_slug(slug.strip(), session, exclude_id=category_id)
            else:
                # Empty slug: regenerate from the (possibly new) name
                values["slug"] = await CategoryService._unique_slug(values.get("name", current.name), session,
                                                                    exclude_id=category_id)
        elif "name" in values:
            values["slug"] = await CategoryService._unique_slug(values["name"], session, exclude_id=category_id)

        await CategoryRepository.update(category_id, values, session)
        await CategoryService._commit_or_conflict(values.get("name"), session)
        logging.info(f"📁 Category {category_id} updated: {sorted(values)}")
        return await CategoryRepository.get_with_count(category_id, session)

    @staticmethod
    async def delete(category_id: int, identity: Identity | None, session: AsyncSession) -> None:
        """Delete an empty category. Categories with products are never deleted."""
        require_admin(identity, "delete categories")
        category = await CategoryRepository.get_by_id(category_id, session)
        if category is None:
            raise CategoryNotFoundException(category_id)

        product_count = await CategoryRepository.count_products(category_id, session)
        if product_count > 0:
            raise CategoryNotEmptyException(category_id, product_count)

        await CategoryRepository.delete(category_id, session)
        await session_commit(session)
        logging.info(f"📁 Category {category_id} '{category.name}' deleted")
