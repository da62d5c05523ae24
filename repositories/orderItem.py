from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.orderItem import OrderItem, OrderItemDTO


class OrderItemRepository:
    @staticmethod
    async def create(order_item_dto: OrderItemDTO, session: AsyncSession) -> int:
        order_item = OrderItem(**order_item_dto.model_dump(exclude_none=True))
        session.add(order_item)
        await session_flush(session)
        return order_item.id

    @staticmethod
    async def get_by_order_id(order_id: int, session: AsyncSession) -> list[OrderItemDTO]:
        stmt = (select(OrderItem)
                .where(OrderItem.order_id == order_id)
                .order_by(OrderItem.id)
                .execution_options(populate_existing=True))
        order_items = await session_execute(stmt, session)
        return [OrderItemDTO.model_validate(item, from_attributes=True) for item in order_items.scalars().all()]
