from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.category import Category, CategoryDTO, CategoryWithCountDTO
from models.product import Product


class CategoryRepository:
    @staticmethod
    async def get_by_id(category_id: int, session: AsyncSession) -> CategoryDTO | None:
        stmt = select(Category).where(Category.id == category_id).execution_options(populate_existing=True)
        category = await session_execute(stmt, session)
        category = category.scalar()
        if category is not None:
            return CategoryDTO.model_validate(category, from_attributes=True)
        return None

    @staticmethod
    async def get_by_name_ci(name: str, session: AsyncSession, exclude_id: int | None = None) -> CategoryDTO | None:
        """Case-insensitive lookup by name, optionally ignoring one category (for renames)."""
        stmt = (select(Category)
                .where(func.lower(Category.name) == name.lower())
                .execution_options(populate_existing=True))
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        category = await session_execute(stmt, session)
        category = category.scalars().first()
        if category is not None:
            return CategoryDTO.model_validate(category, from_attributes=True)
        return None

    @staticmethod
    async def slug_exists(slug: str, session: AsyncSession, exclude_id: int | None = None) -> bool:
        stmt = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        result = await session_execute(stmt, session)
        return result.scalar() is not None

    @staticmethod
    async def get_all_with_counts(session: AsyncSession) -> list[CategoryWithCountDTO]:
        stmt = (
            select(Category, func.count(Product.id))
            .outerjoin(Product, Product.category_id == Category.id)
            .group_by(Category.id)
            .order_by(Category.name.asc())
            .execution_options(populate_existing=True)
        )
        result = await session_execute(stmt, session)
        return [
            CategoryWithCountDTO(**CategoryDTO.model_validate(category, from_attributes=True).model_dump(),
                                 product_count=count)
            for category, count in result.all()
        ]

    @staticmethod
    async def get_with_count(category_id: int, session: AsyncSession) -> CategoryWithCountDTO | None:
        category = await CategoryRepository.get_by_id(category_id, session)
        if category is None:
            return None
        count = await CategoryRepository.count_products(category_id, session)
        return CategoryWithCountDTO(**category.model_dump(), product_count=count)

    @staticmethod
    async def count_products(category_id: int, session: AsyncSession) -> int:
        stmt = select(func.count(Product.id)).where(Product.category_id == category_id)
        result = await session_execute(stmt, session)
        return result.scalar_one()

    @staticmethod
    async def create(category_dto: CategoryDTO, session: AsyncSession) -> int:
        category = Category(**category_dto.model_dump(exclude_none=True))
        session.add(category)
        await session_flush(session)
        return category.id

    @staticmethod
    async def update(category_id: int, values: dict, session: AsyncSession) -> None:
        stmt = (update(Category)
                .where(Category.id == category_id)
                .values(**values)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def delete(category_id: int, session: AsyncSession) -> None:
        stmt = delete(Category).where(Category.id == category_id)
        await session_execute(stmt, session)
