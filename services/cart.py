import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit, session_rollback
from exceptions.cart import (
    CartConflictException,
    CartNotFoundException,
    CartItemNotFoundException,
    CartOwnerRequiredException,
    CartOwnershipException,
)
from exceptions.order import InsufficientStockException
from exceptions.product import ProductNotFoundException
from models.cart import CartDTO, CartDetailDTO, CartOwner, UserOwner, GuestOwner
from models.cartItem import CartItemDTO
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.product import ProductRepository
from utils.token_validator import Identity
from utils.transaction_manager import TransactionManager


class CartService:
    """
    Cart aggregate operations for users and guests.

    Ownership: an authenticated caller owns a cart iff cart.user_id matches,
    a guest owns it iff cart.guest_token matches the presented token.
    Authenticated callers are never matched by token and vice versa.
    """

    @staticmethod
    def resolve_owner(identity: Identity | None, guest_token: str | None) -> CartOwner | None:
        """Authenticated identity wins over a presented guest token."""
        if identity is not None:
            return UserOwner(identity.user_id)
        if guest_token:
            return GuestOwner(guest_token)
        return None

    @staticmethod
    async def create_guest_cart(session: AsyncSession) -> CartDTO:
        cart = await CartRepository.create_guest(session)
        await session_commit(session)
        logging.info(f"🛒 Guest cart {cart.id} created")
        return cart

    @staticmethod
    async def _resolve_cart_for_write(owner: CartOwner | None, session: AsyncSession) -> CartDTO:
        """
        Find or lazily create the cart an add-to-cart writes into.

        - no owner: a fresh guest cart (its token is returned with the cart)
        - user: get or create the user's cart
        - guest: the cart must exist
        """
        if owner is None:
            cart = await CartRepository.create_guest(session)
            logging.info(f"🛒 Guest cart {cart.id} created on first add")
            return cart
        if isinstance(owner, UserOwner):
            return await CartRepository.get_or_create(owner.user_id, session)
        cart = await CartRepository.get_by_owner(owner, session)
        if cart is None:
            raise CartNotFoundException(guest_token=owner.guest_token)
        return cart

    @staticmethod
    async def add_item(owner: CartOwner | None, product_id: int, quantity: int,
                       session: AsyncSession) -> CartDetailDTO:
        """
        Add a product to the caller's cart.

        The stock check here is advisory only, nothing is reserved. Checkout
        re-validates and decrements stock atomically.

        Raises:
            ProductNotFoundException: unknown product
            InsufficientStockException: product.stock < quantity
            CartNotFoundException: unknown guest token
            CartConflictException: unique constraint still violated after one retry
        """
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None:
            raise ProductNotFoundException(product_id=product_id)
        if product.stock < quantity:
            raise InsufficientStockException(product.id, quantity, product.stock, product.name)

        try:
            cart = await CartService._write_line(owner, product_id, quantity, session)
        except IntegrityError as e:
            # A concurrent add created the cart or line first; the retry sees it and increments
            await session_rollback(session)
            logging.warning(f"Add to cart collided with a concurrent write (product {product_id}), retrying: {e.orig}")
            try:
                cart = await CartService._write_line(owner, product_id, quantity, session)
            except IntegrityError as retry_error:
                await session_rollback(session)
                raise CartConflictException(product_id) from retry_error

        logging.info(f"Cart {cart.id}: added product {product_id} x{quantity}")
        return await CartRepository.get_detail(cart.id, session)

    @staticmethod
    async def _write_line(owner: CartOwner | None, product_id: int, quantity: int,
                          session: AsyncSession) -> CartDTO:
        cart = await CartService._resolve_cart_for_write(owner, session)

        existing = await CartItemRepository.get_by_cart_and_product(cart.id, product_id, session)
        if existing is not None:
            await CartItemRepository.update_quantity(existing.id, existing.quantity + quantity, session)
        else:
            await CartItemRepository.create(CartItemDTO(cart_id=cart.id, product_id=product_id, quantity=quantity),
                                            session)
        await session_commit(session)
        return cart

    @staticmethod
    async def get_cart(owner: CartOwner | None, session: AsyncSession) -> CartDetailDTO:
        """
        Cart with lines, products and computed totals.

        Raises:
            CartOwnerRequiredException: neither identity nor guest token
            CartNotFoundException: owner has no cart
        """
        if owner is None:
            raise CartOwnerRequiredException()
        cart = await CartRepository.get_by_owner(owner, session)
        if cart is None:
            if isinstance(owner, UserOwner):
                raise CartNotFoundException(user_id=owner.user_id)
            raise CartNotFoundException(guest_token=owner.guest_token)
        return await CartRepository.get_detail(cart.id, session)

    @staticmethod
    async def _get_owned_line(cart_item_id: int, owner: CartOwner | None,
                              session: AsyncSession) -> tuple[CartItemDTO, CartDTO]:
        cart_item = await CartItemRepository.get_by_id(cart_item_id, session)
        if cart_item is None:
            raise CartItemNotFoundException(cart_item_id)
        cart = await CartRepository.get_by_id(cart_item.cart_id, session)
        if owner is None:
            raise CartOwnershipException(cart.id, "no credentials presented")
        if not owner.owns(cart):
            logging.warning(f"Cart ownership check failed: {owner} on cart {cart.id}")
            raise CartOwnershipException(cart.id, "cart belongs to another owner")
        return cart_item, cart

    @staticmethod
    async def update_item(cart_item_id: int, quantity: int, owner: CartOwner | None,
                          session: AsyncSession) -> CartDetailDTO:
        """
        Set a line's quantity. 0 deletes the line.

        When increasing, only the additional quantity is checked against stock.
        """
        cart_item, cart = await CartService._get_owned_line(cart_item_id, owner, session)

        if quantity == 0:
            await CartItemRepository.remove_from_cart(cart_item.id, session)
        else:
            if quantity > cart_item.quantity:
                additional = quantity - cart_item.quantity
                product = await ProductRepository.get_by_id(cart_item.product_id, session)
                if product.stock < additional:
                    raise InsufficientStockException(product.id, additional, product.stock, product.name)
            await CartItemRepository.update_quantity(cart_item.id, quantity, session)
        await session_commit(session)
        return await CartRepository.get_detail(cart.id, session)

    @staticmethod
    async def remove_item(cart_item_id: int, owner: CartOwner | None, session: AsyncSession) -> CartDetailDTO:
        cart_item, cart = await CartService._get_owned_line(cart_item_id, owner, session)
        await CartItemRepository.remove_from_cart(cart_item.id, session)
        await session_commit(session)
        return await CartRepository.get_detail(cart.id, session)

    @staticmethod
    async def clear(owner: CartOwner | None, session: AsyncSession) -> int:
        """Delete every line of the caller's cart. The cart itself is kept. Returns removed line count."""
        if owner is None:
            raise CartOwnerRequiredException()
        cart = await CartRepository.get_by_owner(owner, session)
        if cart is None:
            if isinstance(owner, UserOwner):
                raise CartNotFoundException(user_id=owner.user_id)
            raise CartNotFoundException(guest_token=owner.guest_token)
        removed = await CartItemRepository.clear_cart(cart.id, session)
        await session_commit(session)
        logging.info(f"Cart {cart.id} cleared ({removed} lines)")
        return removed

    @staticmethod
    async def merge_guest_into_user(guest_token: str, user_id: int, session: AsyncSession) -> int:
        """
        Merge a guest cart into the user's cart as one transaction.

        Flow:
        1. Guest cart must exist
        2. User has no cart: re-own the guest cart (token cleared, user_id set)
        3. Otherwise: sum matching product lines, move the rest, delete the guest cart

        Returns:
            ID of the user's cart after the merge

        Raises:
            CartNotFoundException: unknown guest token (nothing is changed)
        """
        async with TransactionManager.atomic(session, "guest_cart_merge"):
            guest_cart = await CartRepository.get_by_owner(GuestOwner(guest_token), session)
            if guest_cart is None:
                raise CartNotFoundException(guest_token=guest_token)

            user_cart = await CartRepository.get_by_owner(UserOwner(user_id), session)
            if user_cart is None:
                await CartRepository.assign_to_user(guest_cart.id, user_id, session)
                logging.info(f"🛒 Guest cart {guest_cart.id} re-owned by user {user_id}")
                return guest_cart.id

            guest_items = await CartItemRepository.get_by_cart_id(guest_cart.id, session)
            merged, moved = 0, 0
            for guest_item in guest_items:
                user_item = await CartItemRepository.get_by_cart_and_product(
                    user_cart.id, guest_item.product_id, session)
                if user_item is not None:
                    await CartItemRepository.update_quantity(
                        user_item.id, user_item.quantity + guest_item.quantity, session)
                    merged += 1
                else:
                    await CartItemRepository.move_to_cart(guest_item.id, user_cart.id, session)
                    moved += 1

            await CartRepository.delete(guest_cart.id, session)
            logging.info(f"🛒 Guest cart {guest_cart.id} merged into cart {user_cart.id} of user {user_id} "
                         f"(summed={merged}, moved={moved})")
            return user_cart.id

    @staticmethod
    async def transfer_guest_cart(guest_token: str, identity: Identity, session: AsyncSession) -> CartDetailDTO:
        cart_id = await CartService.merge_guest_into_user(guest_token, identity.user_id, session)
        return await CartRepository.get_detail(cart_id, session)
