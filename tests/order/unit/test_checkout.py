"""
Unit Tests: OrderService.create_order (checkout)

Covers:
- Successful checkout: order total, stock decrement, cart emptied
- Guest cart merged at checkout
- Empty / missing cart
- Pre-flight stock check and lost stock race (rollback of the whole order)
"""

from decimal import Decimal

import pytest

from enums.order_status import OrderStatus
from exceptions.cart import EmptyCartException
from exceptions.order import (
    CheckoutCartUnavailableException,
    InsufficientStockException,
    OrderCreationFailedException,
)
from exceptions.user import AuthenticationException
from models.cart import UserOwner
from models.order import OrderQueryDTO
from repositories.order import OrderRepository
from repositories.orderItem import OrderItemRepository
from repositories.product import ProductRepository
from services.cart import CartService
from services.order import OrderService

ADDRESS = "Main Street 1, 10115 Berlin"
PHONE = "+49 30 1234567"


class TestCheckout:

    @pytest.mark.asyncio
    async def test_checkout_creates_order_and_decrements_stock(self, test_session, customer, customer_identity,
                                                               make_product):
        product = await make_product(price="10.00", stock=5)
        await CartService.add_item(UserOwner(customer.id), product.id, 2, test_session)

        order = await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)

        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("20.00")
        assert order.shipping_address == ADDRESS
        assert order.phone_number == PHONE
        assert order.user.id == customer.id
        assert len(order.items) == 1
        assert order.items[0].quantity == 2
        assert order.items[0].price == Decimal("10.00")
        assert order.items[0].product.category is not None

        assert await ProductRepository.get_stock(product.id, test_session) == 3
        cart = await CartService.get_cart(UserOwner(customer.id), test_session)
        assert cart.items == []

    @pytest.mark.asyncio
    async def test_order_records_price_at_checkout(self, test_session, customer, customer_identity, make_product):
        product = await make_product(price="10.00", stock=5)
        await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)
        await ProductRepository.update(product.id, {"price": Decimal("11.00")}, test_session)
        await test_session.commit()

        order = await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)

        assert order.items[0].price == Decimal("11.00")
        assert order.total_amount == Decimal("11.00")

    @pytest.mark.asyncio
    async def test_guest_cart_merged_before_checkout(self, test_session, customer, customer_identity, make_product):
        product = await make_product(price="5.00", stock=10)
        guest_cart = await CartService.add_item(None, product.id, 2, test_session)
        await CartService.add_item(UserOwner(customer.id), product.id, 3, test_session)

        order = await OrderService.create_order(customer_identity, ADDRESS, PHONE, "Ring twice",
                                                guest_cart.guest_token, test_session)

        assert order.items[0].quantity == 5
        assert order.total_amount == Decimal("25.00")
        assert order.notes == "Ring twice"
        assert await ProductRepository.get_stock(product.id, test_session) == 5

    @pytest.mark.asyncio
    async def test_failed_merge_aborts_checkout(self, test_session, customer, customer_identity, make_product):
        product = await make_product()
        await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)

        with pytest.raises(CheckoutCartUnavailableException):
            await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, "unknown-token", test_session)

        orders, total = await OrderRepository.search(OrderQueryDTO(), test_session)
        assert total == 0

    @pytest.mark.asyncio
    async def test_requires_authentication(self, test_session):
        with pytest.raises(AuthenticationException):
            await OrderService.create_order(None, ADDRESS, PHONE, None, None, test_session)

    @pytest.mark.asyncio
    async def test_user_without_cart(self, test_session, customer_identity):
        with pytest.raises(CheckoutCartUnavailableException):
            await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)

    @pytest.mark.asyncio
    async def test_empty_cart(self, test_session, customer, customer_identity, make_product):
        product = await make_product()
        await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)
        await CartService.clear(UserOwner(customer.id), test_session)

        with pytest.raises(EmptyCartException):
            await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)

    @pytest.mark.asyncio
    async def test_preflight_stock_check(self, test_session, customer, customer_identity, make_product):
        product = await make_product(stock=5)
        await CartService.add_item(UserOwner(customer.id), product.id, 4, test_session)
        await ProductRepository.update(product.id, {"stock": 1}, test_session)
        await test_session.commit()

        with pytest.raises(InsufficientStockException) as exc_info:
            await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)

        assert exc_info.value.details == {"product_id": product.id, "requested": 4, "available": 1}
        assert await ProductRepository.get_stock(product.id, test_session) == 1


class TestConcurrentCheckout:
    """Two carts competing for the last unit of a product."""

    @pytest.mark.asyncio
    async def test_only_one_checkout_wins(self, test_session, customer, other_customer, customer_identity,
                                          other_identity, make_product, monkeypatch):
        product = await make_product(price="10.00", stock=1)
        await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)
        await CartService.add_item(UserOwner(other_customer.id), product.id, 1, test_session)

        first = await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)
        assert first.status == OrderStatus.PENDING

        # The second caller read stock before the first commit: skip the pre-flight
        # check so only the guarded decrement decides.
        monkeypatch.setattr(OrderService, "_verify_stock", staticmethod(lambda cart: None))

        with pytest.raises(InsufficientStockException):
            await OrderService.create_order(other_identity, ADDRESS, PHONE, None, None, test_session)

        orders, total = await OrderRepository.search(OrderQueryDTO(), test_session)
        assert total == 1
        assert orders[0].id == first.id
        assert await ProductRepository.get_stock(product.id, test_session) == 0

        # The loser keeps their cart line
        cart = await CartService.get_cart(UserOwner(other_customer.id), test_session)
        assert len(cart.items) == 1

    @pytest.mark.asyncio
    async def test_unexpected_failure_rolls_back_everything(self, test_session, customer, customer_identity,
                                                            make_product, monkeypatch):
        first = await make_product(stock=5)
        second = await make_product(stock=5)
        owner = UserOwner(customer.id)
        await CartService.add_item(owner, first.id, 1, test_session)
        await CartService.add_item(owner, second.id, 1, test_session)

        calls = {"n": 0}
        original_create = OrderItemRepository.create

        async def failing_create(order_item_dto, session):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("disk full")
            return await original_create(order_item_dto, session)

        monkeypatch.setattr(OrderItemRepository, "create", staticmethod(failing_create))

        with pytest.raises(OrderCreationFailedException):
            await OrderService.create_order(customer_identity, ADDRESS, PHONE, None, None, test_session)

        _, total = await OrderRepository.search(OrderQueryDTO(), test_session)
        assert total == 0
        assert await ProductRepository.get_stock(first.id, test_session) == 5
        cart = await CartService.get_cart(owner, test_session)
        assert len(cart.items) == 2
