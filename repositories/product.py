from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db import session_execute, session_flush
from enums.product_sort import ProductSortField, SortOrder
from models.orderItem import OrderItem
from models.product import Product, ProductDTO, ProductDetailDTO, ProductQueryDTO

SORT_COLUMNS = {
    ProductSortField.NAME: Product.name,
    ProductSortField.PRICE: Product.price,
    ProductSortField.CREATED_AT: Product.created_at,
    ProductSortField.UPDATED_AT: Product.updated_at,
}


class ProductRepository:
    @staticmethod
    def _detail_stmt():
        return (select(Product)
                .options(selectinload(Product.category))
                .execution_options(populate_existing=True))

    @staticmethod
    async def get_by_id(product_id: int, session: AsyncSession) -> ProductDTO | None:
        stmt = select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        product = await session_execute(stmt, session)
        product = product.scalar()
        if product is not None:
            return ProductDTO.model_validate(product, from_attributes=True)
        return None

    @staticmethod
    async def get_detail(product_id: int, session: AsyncSession) -> ProductDetailDTO | None:
        stmt = ProductRepository._detail_stmt().where(Product.id == product_id)
        product = await session_execute(stmt, session)
        product = product.scalar()
        if product is not None:
            return ProductDetailDTO.model_validate(product, from_attributes=True)
        return None

    @staticmethod
    async def get_detail_by_slug(slug: str, session: AsyncSession) -> ProductDetailDTO | None:
        stmt = ProductRepository._detail_stmt().where(Product.slug == slug)
        product = await session_execute(stmt, session)
        product = product.scalar()
        if product is not None:
            return ProductDetailDTO.model_validate(product, from_attributes=True)
        return None

    @staticmethod
    async def get_by_ids(product_ids: list[int], session: AsyncSession) -> dict[int, ProductDTO]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids)).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        return {p.id: ProductDTO.model_validate(p, from_attributes=True) for p in result.scalars().all()}

    @staticmethod
    async def slug_exists(slug: str, session: AsyncSession, exclude_id: int | None = None) -> bool:
        stmt = select(Product.id).where(Product.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        result = await session_execute(stmt, session)
        return result.scalar() is not None

    @staticmethod
    async def search(query: ProductQueryDTO, session: AsyncSession) -> tuple[list[ProductDetailDTO], int]:
        """
        Filtered, sorted and paginated product listing.

        Returns the requested page plus the total number of matching rows.
        """
        conditions = []
        if query.q:
            pattern = f"%{query.q}%"
            conditions.append(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        if query.category_id is not None:
            conditions.append(Product.category_id == query.category_id)
        if query.min_price is not None:
            conditions.append(Product.price >= query.min_price)
        if query.max_price is not None:
            conditions.append(Product.price <= query.max_price)

        count_stmt = select(func.count(Product.id)).where(*conditions)
        total = await session_execute(count_stmt, session)
        total = total.scalar_one()

        sort_column = SORT_COLUMNS[query.sort_by]
        order_by = sort_column.asc() if query.sort_order == SortOrder.ASC else sort_column.desc()
        stmt = (ProductRepository._detail_stmt()
                .where(*conditions)
                .order_by(order_by, Product.id.asc())
                .offset((query.page - 1) * query.limit)
                .limit(query.limit))
        result = await session_execute(stmt, session)
        products = [ProductDetailDTO.model_validate(p, from_attributes=True) for p in result.scalars().all()]
        return products, total

    @staticmethod
    async def create(product_dto: ProductDTO, session: AsyncSession) -> int:
        product = Product(**product_dto.model_dump(exclude_none=True))
        session.add(product)
        await session_flush(session)
        return product.id

    @staticmethod
    async def update(product_id: int, values: dict, session: AsyncSession) -> None:
        stmt = (update(Product)
                .where(Product.id == product_id)
                .values(**values)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def delete(product_id: int, session: AsyncSession) -> None:
        stmt = delete(Product).where(Product.id == product_id)
        await session_execute(stmt, session)

    @staticmethod
    async def decrement_stock(product_id: int, quantity: int, session: AsyncSession) -> bool:
        """
        Guarded stock decrement.

        UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

        Returns False when the guard did not match (concurrent checkout took the
        stock first). Stock can never go negative through this path.
        """
        stmt = (update(Product)
                .where(Product.id == product_id, Product.stock >= quantity)
                .values(stock=Product.stock - quantity)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def increment_stock(product_id: int, quantity: int, session: AsyncSession) -> None:
        stmt = (update(Product)
                .where(Product.id == product_id)
                .values(stock=Product.stock + quantity)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def adjust_stock(product_id: int, delta: int, session: AsyncSession) -> bool:
        """Apply a signed correction; False if it would take stock below zero."""
        stmt = (update(Product)
                .where(Product.id == product_id, Product.stock + delta >= 0)
                .values(stock=Product.stock + delta)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def is_referenced_by_orders(product_id: int, session: AsyncSession) -> bool:
        stmt = select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1)
        result = await session_execute(stmt, session)
        return result.scalar() is not None

    @staticmethod
    async def get_stock(product_id: int, session: AsyncSession) -> int | None:
        stmt = select(Product.stock).where(Product.id == product_id)
        result = await session_execute(stmt, session)
        return result.scalar()
