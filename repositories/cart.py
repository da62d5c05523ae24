import uuid

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db import session_execute, session_flush
from models.cart import Cart, CartDTO, CartDetailDTO, CartOwner, UserOwner, GuestOwner
from models.cartItem import CartItem
from models.product import Product


class CartRepository:
    @staticmethod
    async def get_by_id(cart_id: int, session: AsyncSession) -> CartDTO | None:
        stmt = select(Cart).where(Cart.id == cart_id).execution_options(populate_existing=True)
        cart = await session_execute(stmt, session)
        cart = cart.scalar()
        if cart is not None:
            return CartDTO.model_validate(cart, from_attributes=True)
        return None

    @staticmethod
    async def get_by_owner(owner: CartOwner, session: AsyncSession) -> CartDTO | None:
        if isinstance(owner, UserOwner):
            stmt = select(Cart).where(Cart.user_id == owner.user_id)
        else:
            stmt = select(Cart).where(Cart.guest_token == owner.guest_token)
        cart = await session_execute(stmt.execution_options(populate_existing=True), session)
        cart = cart.scalar()
        if cart is not None:
            return CartDTO.model_validate(cart, from_attributes=True)
        return None

    @staticmethod
    async def get_or_create(user_id: int, session: AsyncSession) -> CartDTO:
        cart = await CartRepository.get_by_owner(UserOwner(user_id), session)
        if cart is None:
            cart = Cart(user_id=user_id)
            session.add(cart)
            await session_flush(session)
            return CartDTO.model_validate(cart, from_attributes=True)
        else:
            return cart

    @staticmethod
    async def create_guest(session: AsyncSession) -> CartDTO:
        cart = Cart(guest_token=str(uuid.uuid4()))
        session.add(cart)
        await session_flush(session)
        return CartDTO.model_validate(cart, from_attributes=True)

    @staticmethod
    async def get_detail(cart_id: int, session: AsyncSession) -> CartDetailDTO | None:
        """Cart with items -> product -> category loaded and totals computed."""
        stmt = (select(Cart)
                .where(Cart.id == cart_id)
                .options(selectinload(Cart.items)
                         .selectinload(CartItem.product)
                         .selectinload(Product.category))
                .execution_options(populate_existing=True))
        cart = await session_execute(stmt, session)
        cart = cart.scalar()
        if cart is not None:
            return CartDetailDTO.from_cart(cart)
        return None

    @staticmethod
    async def assign_to_user(cart_id: int, user_id: int, session: AsyncSession) -> None:
        """Re-own a guest cart: set user_id and clear the guest token in one statement."""
        stmt = (update(Cart)
                .where(Cart.id == cart_id)
                .values(user_id=user_id, guest_token=None)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def delete(cart_id: int, session: AsyncSession) -> None:
        # Lines first, then the cart row
        await session_execute(
            delete(CartItem).where(CartItem.cart_id == cart_id),
            session)
        await session_execute(
            delete(Cart).where(Cart.id == cart_id),
            session)
