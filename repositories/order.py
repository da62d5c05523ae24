from decimal import Decimal

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db import session_execute, session_flush
from enums.order_status import OrderStatus
from models.order import Order, OrderDTO, OrderDetailDTO, OrderQueryDTO
from models.orderItem import OrderItem
from models.product import Product


class OrderRepository:
    @staticmethod
    def _detail_stmt():
        return (select(Order)
                .options(selectinload(Order.user),
                         selectinload(Order.items)
                         .selectinload(OrderItem.product)
                         .selectinload(Product.category))
                .execution_options(populate_existing=True))

    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession) -> int:
        order = Order(**order_dto.model_dump(exclude_none=True))
        session.add(order)
        await session_flush(session)
        return order.id

    @staticmethod
    async def get_by_id(order_id: int, session: AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        order = await session_execute(stmt, session)
        order = order.scalar()
        if order is not None:
            return OrderDTO.model_validate(order, from_attributes=True)
        else:
            return None

    @staticmethod
    async def get_detail(order_id: int, session: AsyncSession) -> OrderDetailDTO | None:
        """Order with user and items -> product -> category."""
        stmt = OrderRepository._detail_stmt().where(Order.id == order_id)
        order = await session_execute(stmt, session)
        order = order.scalar()
        if order is not None:
            return OrderDetailDTO.model_validate(order, from_attributes=True)
        else:
            return None

    @staticmethod
    async def update_status(order_id: int, status: OrderStatus, notes: str | None,
                            expected_status: OrderStatus, session: AsyncSession) -> bool:
        """
        Compare-and-set status change.

        Applies only while the order is still in expected_status. Returns False
        when a concurrent writer moved the order first.
        """
        stmt = (update(Order)
                .where(Order.id == order_id, Order.status == expected_status)
                .values(status=status, notes=notes)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def search(query: OrderQueryDTO, session: AsyncSession) -> tuple[list[OrderDetailDTO], int]:
        """Filtered order listing, newest first."""
        conditions = []
        if query.user_id is not None:
            conditions.append(Order.user_id == query.user_id)
        if query.status is not None:
            conditions.append(Order.status == query.status)
        if query.from_date is not None:
            conditions.append(Order.created_at >= query.from_date)
        if query.to_date is not None:
            conditions.append(Order.created_at <= query.to_date)

        count_stmt = select(func.count(Order.id)).where(*conditions)
        total = await session_execute(count_stmt, session)
        total = total.scalar_one()

        stmt = (OrderRepository._detail_stmt()
                .where(*conditions)
                .order_by(Order.created_at.desc(), Order.id.desc())
                .offset((query.page - 1) * query.limit)
                .limit(query.limit))
        result = await session_execute(stmt, session)
        orders = [OrderDetailDTO.model_validate(order, from_attributes=True) for order in result.scalars().all()]
        return orders, total

    @staticmethod
    async def count_by_status(session: AsyncSession, user_id: int | None = None) -> dict[OrderStatus, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await session_execute(stmt, session)
        return {status: count for status, count in result.all()}

    @staticmethod
    async def sum_total_amount(session: AsyncSession, user_id: int | None = None) -> Decimal:
        """Sum of total_amount over all non-cancelled orders (optionally for one user)."""
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0)).where(Order.status != OrderStatus.CANCELLED)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await session_execute(stmt, session)
        total = result.scalar()
        return Decimal(str(total)).quantize(Decimal("0.01")) if total is not None else Decimal("0.00")
