import logging

from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.order_status import OrderStatus
from exceptions.cart import CartException, EmptyCartException
from exceptions.order import (
    CheckoutCartUnavailableException,
    InsufficientStockException,
    InvalidOrderStateException,
    OrderCreationFailedException,
    OrderNotFoundException,
    OrderOwnershipException,
)
from exceptions.user import AuthenticationException
from models.cart import CartDetailDTO, UserOwner
from models.order import OrderDTO, OrderDetailDTO, OrderQueryDTO
from models.orderItem import OrderItemDTO
from models.pagination import OrderPageDTO, PageMeta
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.order import OrderRepository
from repositories.orderItem import OrderItemRepository
from repositories.product import ProductRepository
from services.cart import CartService
from utils.order_state_machine import OrderStateMachine
from utils.permission_utils import is_admin_user, require_admin, require_authenticated
from utils.token_validator import Identity
from utils.transaction_manager import TransactionManager

NOTES_SEPARATOR = "\n\n"


class OrderService:

    @staticmethod
    def _verify_stock(cart: CartDetailDTO) -> None:
        """Pre-flight check: every line must fit the current stock."""
        for line in cart.items:
            if line.product.stock < line.quantity:
                raise InsufficientStockException(line.product_id, line.quantity, line.product.stock,
                                                 line.product.name)

    @staticmethod
    async def create_order(identity: Identity | None,
                           shipping_address: str,
                           phone_number: str,
                           notes: str | None,
                           guest_token: str | None,
                           session: AsyncSession) -> OrderDetailDTO:
        """
        Convert the caller's cart into an order.

        Flow:
        1. Caller must be authenticated
        2. Guest token presented: merge the guest cart into the user's cart first
        3. Load the user's cart (missing or merge failed: CheckoutCartUnavailable)
        4. Empty cart: EmptyCart
        5. Pre-flight stock check per line
        6. Atomic phase:
           a. order row (PENDING, total = cart total, shipping fields)
           b. per line: order item with current price, guarded stock decrement
           c. delete the cart lines (cart row stays)

        A lost stock race in 6b surfaces as InsufficientStockException, any other
        failure of the atomic phase as OrderCreationFailedException. Either way
        nothing of the atomic phase is persisted.

        Returns:
            Created order with user and items -> product -> category
        """
        if identity is None:
            raise AuthenticationException("Authentication required to place an order")
        user_id = identity.user_id

        # 2. Merge guest cart (own transaction, committed before checkout)
        if guest_token:
            try:
                await CartService.merge_guest_into_user(guest_token, user_id, session)
            except CartException as e:
                logging.warning(f"Checkout for user {user_id}: guest cart merge failed: {e}")
                raise CheckoutCartUnavailableException(user_id) from e

        # 3. Resolve cart
        cart = await CartRepository.get_by_owner(UserOwner(user_id), session)
        if cart is None:
            raise CheckoutCartUnavailableException(user_id)
        cart_detail = await CartRepository.get_detail(cart.id, session)

        # 4. Empty cart
        if not cart_detail.items:
            raise EmptyCartException(user_id)

        # 5. Pre-flight stock check
        OrderService._verify_stock(cart_detail)

        # 6. Atomic phase
        try:
            async with TransactionManager.atomic(session, f"checkout user={user_id}"):
                order_id = await OrderRepository.create(OrderDTO(
                    user_id=user_id,
                    status=OrderStatus.PENDING,
                    total_amount=cart_detail.total_amount,
                    shipping_address=shipping_address,
                    phone_number=phone_number,
                    notes=notes or None,
                ), session)

                for line in cart_detail.items:
                    await OrderItemRepository.create(OrderItemDTO(
                        order_id=order_id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        price=line.product.price,
                    ), session)
                    decremented = await ProductRepository.decrement_stock(line.product_id, line.quantity, session)
                    if not decremented:
                        available = await ProductRepository.get_stock(line.product_id, session)
                        logging.warning(f"⚠️ Stock race lost for product {line.product_id} "
                                        f"(requested={line.quantity}, available={available}), checkout rolled back")
                        raise InsufficientStockException(line.product_id, line.quantity, available or 0,
                                                         line.product.name)

                await CartItemRepository.clear_cart(cart.id, session)
        except InsufficientStockException:
            raise
        except Exception as e:
            logging.error(f"❌ Order creation failed for user {user_id}: {type(e).__name__}: {e}")
            raise OrderCreationFailedException(user_id) from e

        logging.info(f"✅ Order {order_id} created for user {user_id} "
                     f"({len(cart_detail.items)} lines, total={cart_detail.total_amount})")
        return await OrderRepository.get_detail(order_id, session)

    @staticmethod
    async def list_orders(identity: Identity | None, query: OrderQueryDTO, session: AsyncSession) -> OrderPageDTO:
        """Non-admins only ever see their own orders; admins may filter by user."""
        identity = require_authenticated(identity)
        if not is_admin_user(identity):
            query = query.model_copy(update={"user_id": identity.user_id})
        page = max(query.page, 1)
        limit = min(max(query.limit, 1), config.PAGE_MAX_LIMIT)
        query = query.model_copy(update={"page": page, "limit": limit})

        orders, total = await OrderRepository.search(query, session)
        return OrderPageDTO(data=orders, meta=PageMeta.build(page, limit, total))

    @staticmethod
    async def get_order(order_id: int, identity: Identity | None, session: AsyncSession) -> OrderDetailDTO:
        identity = require_authenticated(identity)
        order = await OrderRepository.get_detail(order_id, session)
        if order is None:
            raise OrderNotFoundException(order_id)
        if not is_admin_user(identity) and order.user_id != identity.user_id:
            logging.warning(f"User {identity.user_id} attempted to read order {order_id} of user {order.user_id}")
            raise OrderOwnershipException(order_id, identity.user_id)
        return order

    @staticmethod
    async def update_status(order_id: int,
                            new_status: OrderStatus,
                            notes: str | None,
                            identity: Identity | None,
                            session: AsyncSession) -> OrderDetailDTO:
        """
        Admin status change.

        Checks in order: admin role, order exists, current status not final,
        no backward move except cancellation. Cancelling returns every item
        quantity to stock in the same transaction as the status change.
        Notes are appended to the existing notes, never replaced.

        The status write is conditioned on the status that was validated. If
        another admin changed the order in between, nothing is applied and
        InvalidOrderStateException is raised.
        """
        admin = require_admin(identity, "update order status")

        order = await OrderRepository.get_by_id(order_id, session)
        if order is None:
            raise OrderNotFoundException(order_id)

        current_status = order.status
        OrderStateMachine.validate_transition(order_id, current_status, new_status)

        if notes:
            merged_notes = f"{order.notes}{NOTES_SEPARATOR}{notes}" if order.notes else notes
        else:
            merged_notes = order.notes

        async with TransactionManager.atomic(session, f"order {order_id} status"):
            applied = await OrderRepository.update_status(order_id, new_status, merged_notes,
                                                          current_status, session)
            if not applied:
                latest = await OrderRepository.get_by_id(order_id, session)
                logging.warning(f"Order {order_id} changed concurrently ({current_status.value} -> "
                                f"{latest.status.value}), {new_status.value} not applied")
                raise InvalidOrderStateException(order_id, latest.status.value)

            # Stock goes back only after the guarded status change won
            if new_status == OrderStatus.CANCELLED:
                order_items = await OrderItemRepository.get_by_order_id(order_id, session)
                for order_item in order_items:
                    await ProductRepository.increment_stock(order_item.product_id, order_item.quantity, session)
                logging.info(f"🔄 Order {order_id} cancelled: restored stock for {len(order_items)} lines")

        OrderStateMachine.log_transition(order_id, current_status, new_status, admin_id=admin.user_id)
        return await OrderRepository.get_detail(order_id, session)
