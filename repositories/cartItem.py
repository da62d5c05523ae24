from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.cartItem import CartItem, CartItemDTO


class CartItemRepository:
    @staticmethod
    async def get_by_id(cart_item_id: int, session: AsyncSession) -> CartItemDTO | None:
        stmt = select(CartItem).where(CartItem.id == cart_item_id).execution_options(populate_existing=True)
        cart_item = await session_execute(stmt, session)
        cart_item = cart_item.scalar()
        if cart_item is not None:
            return CartItemDTO.model_validate(cart_item, from_attributes=True)
        return None

    @staticmethod
    async def get_by_cart_and_product(cart_id: int, product_id: int, session: AsyncSession) -> CartItemDTO | None:
        stmt = (select(CartItem)
                .where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
                .execution_options(populate_existing=True))
        cart_item = await session_execute(stmt, session)
        cart_item = cart_item.scalar()
        if cart_item is not None:
            return CartItemDTO.model_validate(cart_item, from_attributes=True)
        return None

    @staticmethod
    async def get_by_cart_id(cart_id: int, session: AsyncSession) -> list[CartItemDTO]:
        stmt = (select(CartItem)
                .where(CartItem.cart_id == cart_id)
                .order_by(CartItem.id)
                .execution_options(populate_existing=True))
        cart_items = await session_execute(stmt, session)
        return [CartItemDTO.model_validate(item, from_attributes=True) for item in cart_items.scalars().all()]

    @staticmethod
    async def create(cart_item_dto: CartItemDTO, session: AsyncSession) -> int:
        cart_item = CartItem(**cart_item_dto.model_dump(exclude_none=True))
        session.add(cart_item)
        await session_flush(session)
        return cart_item.id

    @staticmethod
    async def update_quantity(cart_item_id: int, quantity: int, session: AsyncSession) -> None:
        stmt = (update(CartItem)
                .where(CartItem.id == cart_item_id)
                .values(quantity=quantity)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def move_to_cart(cart_item_id: int, cart_id: int, session: AsyncSession) -> None:
        stmt = (update(CartItem)
                .where(CartItem.id == cart_item_id)
                .values(cart_id=cart_id)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def remove_from_cart(cart_item_id: int, session: AsyncSession) -> None:
        stmt = delete(CartItem).where(CartItem.id == cart_item_id)
        await session_execute(stmt, session)

    @staticmethod
    async def clear_cart(cart_id: int, session: AsyncSession) -> int:
        """Delete all lines of a cart. The cart row itself is kept."""
        stmt = delete(CartItem).where(CartItem.cart_id == cart_id)
        result = await session_execute(stmt, session)
        return result.rowcount
