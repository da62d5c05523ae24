"""
Unit Tests: CartService

Tests for services/cart.py covering:
- add_item() for users, guests and anonymous callers
- get_cart() ownership resolution and computed totals
- update_item() / remove_item() / clear() with ownership checks
- merge_guest_into_user() summing and moving lines, all or nothing
- add_item() recovering from concurrent inserts
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from exceptions.cart import (
    CartConflictException,
    CartItemNotFoundException,
    CartNotFoundException,
    CartOwnerRequiredException,
    CartOwnershipException,
)
from exceptions.order import InsufficientStockException
from exceptions.product import ProductNotFoundException
from models.cart import Cart, GuestOwner, UserOwner
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from services.cart import CartService


class TestResolveOwner:

    def test_identity_wins_over_guest_token(self, customer_identity):
        owner = CartService.resolve_owner(customer_identity, "some-guest-token")
        assert owner == UserOwner(customer_identity.user_id)

    def test_guest_token_only(self):
        assert CartService.resolve_owner(None, "abc") == GuestOwner("abc")

    def test_no_credentials(self):
        assert CartService.resolve_owner(None, None) is None


class TestAddItem:

    @pytest.mark.asyncio
    async def test_user_cart_created_lazily(self, test_session, customer, make_product):
        product = await make_product(price="10.00", stock=5)

        cart = await CartService.add_item(UserOwner(customer.id), product.id, 2, test_session)

        assert cart.user_id == customer.id
        assert cart.guest_token is None
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.total_amount == Decimal("20.00")
        assert cart.total_items == 2

    @pytest.mark.asyncio
    async def test_same_product_increments_line(self, test_session, customer, make_product):
        product = await make_product(stock=10)
        owner = UserOwner(customer.id)

        await CartService.add_item(owner, product.id, 2, test_session)
        cart = await CartService.add_item(owner, product.id, 3, test_session)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    @pytest.mark.asyncio
    async def test_anonymous_add_creates_guest_cart(self, test_session, make_product):
        product = await make_product()

        cart = await CartService.add_item(None, product.id, 1, test_session)

        assert cart.user_id is None
        assert cart.guest_token
        again = await CartService.get_cart(GuestOwner(cart.guest_token), test_session)
        assert again.id == cart.id

    @pytest.mark.asyncio
    async def test_unknown_guest_token(self, test_session, make_product):
        product = await make_product()
        with pytest.raises(CartNotFoundException):
            await CartService.add_item(GuestOwner("does-not-exist"), product.id, 1, test_session)

    @pytest.mark.asyncio
    async def test_unknown_product(self, test_session, customer):
        with pytest.raises(ProductNotFoundException):
            await CartService.add_item(UserOwner(customer.id), 9999, 1, test_session)

    @pytest.mark.asyncio
    async def test_quantity_above_stock(self, test_session, customer, make_product):
        product = await make_product(stock=2)
        with pytest.raises(InsufficientStockException) as exc_info:
            await CartService.add_item(UserOwner(customer.id), product.id, 3, test_session)
        assert exc_info.value.details["available"] == 2

    @pytest.mark.asyncio
    async def test_rejected_add_leaves_existing_line_unchanged(self, test_session, customer, make_product):
        product = await make_product(stock=3)
        owner = UserOwner(customer.id)
        cart = await CartService.add_item(owner, product.id, 2, test_session)
        line_id = cart.items[0].id

        with pytest.raises(InsufficientStockException):
            await CartService.add_item(owner, product.id, 4, test_session)

        cart = await CartService.get_cart(owner, test_session)
        assert [(line.id, line.quantity) for line in cart.items] == [(line_id, 2)]

    @pytest.mark.asyncio
    async def test_rejected_add_creates_no_cart(self, test_session, customer, make_product):
        product = await make_product(stock=2)

        with pytest.raises(InsufficientStockException):
            await CartService.add_item(UserOwner(customer.id), product.id, 3, test_session)
        with pytest.raises(InsufficientStockException):
            await CartService.add_item(None, product.id, 3, test_session)

        assert await CartRepository.get_by_owner(UserOwner(customer.id), test_session) is None
        cart_count = await test_session.execute(select(func.count(Cart.id)))
        assert cart_count.scalar_one() == 0


class TestConcurrentAdd:

    @pytest.mark.asyncio
    async def test_line_inserted_concurrently_is_incremented(self, test_session, customer, make_product):
        product = await make_product(stock=10)
        owner = UserOwner(customer.id)
        await CartService.add_item(owner, product.id, 2, test_session)

        real_lookup = CartItemRepository.get_by_cart_and_product
        lookups = []

        async def stale_first_lookup(cart_id, product_id, session):
            lookups.append(cart_id)
            if len(lookups) == 1:
                return None
            return await real_lookup(cart_id, product_id, session)

        with patch.object(CartItemRepository, "get_by_cart_and_product", new=stale_first_lookup):
            cart = await CartService.add_item(owner, product.id, 3, test_session)

        assert len(lookups) == 2
        assert [(line.product_id, line.quantity) for line in cart.items] == [(product.id, 5)]

    @pytest.mark.asyncio
    async def test_user_cart_created_concurrently_is_reused(self, test_session, customer, make_product):
        first = await make_product(stock=10)
        second = await make_product(stock=10)
        owner = UserOwner(customer.id)
        existing = await CartService.add_item(owner, first.id, 1, test_session)

        real_get_by_owner = CartRepository.get_by_owner
        lookups = []

        async def stale_first_owner_lookup(cart_owner, session):
            lookups.append(cart_owner)
            if len(lookups) == 1:
                return None
            return await real_get_by_owner(cart_owner, session)

        with patch.object(CartRepository, "get_by_owner", new=stale_first_owner_lookup):
            cart = await CartService.add_item(owner, second.id, 2, test_session)

        assert cart.id == existing.id
        assert {line.product_id: line.quantity for line in cart.items} == {first.id: 1, second.id: 2}

    @pytest.mark.asyncio
    async def test_persistent_collision_is_a_conflict(self, test_session, customer, make_product):
        product = await make_product(stock=10)
        owner = UserOwner(customer.id)
        await CartService.add_item(owner, product.id, 2, test_session)

        async def always_stale_lookup(cart_id, product_id, session):
            return None

        with patch.object(CartItemRepository, "get_by_cart_and_product", new=always_stale_lookup):
            with pytest.raises(CartConflictException) as exc_info:
                await CartService.add_item(owner, product.id, 3, test_session)
        assert exc_info.value.product_id == product.id

        # Session rolled back and still usable, the line is untouched
        cart = await CartService.get_cart(owner, test_session)
        assert [line.quantity for line in cart.items] == [2]


class TestGetCart:

    @pytest.mark.asyncio
    async def test_no_owner(self, test_session):
        with pytest.raises(CartOwnerRequiredException):
            await CartService.get_cart(None, test_session)

    @pytest.mark.asyncio
    async def test_user_without_cart(self, test_session, customer):
        with pytest.raises(CartNotFoundException):
            await CartService.get_cart(UserOwner(customer.id), test_session)

    @pytest.mark.asyncio
    async def test_totals_follow_current_price(self, test_session, customer, make_product):
        from repositories.product import ProductRepository
        product = await make_product(price="10.00", stock=5)
        await CartService.add_item(UserOwner(customer.id), product.id, 2, test_session)

        await ProductRepository.update(product.id, {"price": Decimal("12.50")}, test_session)
        await test_session.commit()

        cart = await CartService.get_cart(UserOwner(customer.id), test_session)
        assert cart.total_amount == Decimal("25.00")
        assert cart.items[0].subtotal == Decimal("25.00")


class TestUpdateAndRemove:

    @pytest.mark.asyncio
    async def test_update_to_zero_removes_line(self, test_session, customer, make_product):
        first = await make_product()
        second = await make_product()
        owner = UserOwner(customer.id)
        await CartService.add_item(owner, first.id, 1, test_session)
        cart = await CartService.add_item(owner, second.id, 2, test_session)
        line_id = cart.items[0].id

        cart = await CartService.update_item(line_id, 0, owner, test_session)

        assert [line.product_id for line in cart.items] == [second.id]

    @pytest.mark.asyncio
    async def test_increase_checks_only_additional_quantity(self, test_session, customer, make_product):
        product = await make_product(stock=3)
        owner = UserOwner(customer.id)
        cart = await CartService.add_item(owner, product.id, 2, test_session)
        line_id = cart.items[0].id

        cart = await CartService.update_item(line_id, 4, owner, test_session)
        assert cart.items[0].quantity == 4

        with pytest.raises(InsufficientStockException):
            await CartService.update_item(line_id, 8, owner, test_session)

    @pytest.mark.asyncio
    async def test_update_foreign_line_rejected(self, test_session, customer, other_customer, make_product):
        product = await make_product()
        cart = await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)

        with pytest.raises(CartOwnershipException):
            await CartService.update_item(cart.items[0].id, 2, UserOwner(other_customer.id), test_session)

    @pytest.mark.asyncio
    async def test_guest_token_does_not_match_user_cart(self, test_session, customer, make_product):
        product = await make_product()
        cart = await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)

        with pytest.raises(CartOwnershipException):
            await CartService.remove_item(cart.items[0].id, GuestOwner("any-token"), test_session)

    @pytest.mark.asyncio
    async def test_anonymous_caller_rejected(self, test_session, make_product):
        product = await make_product()
        cart = await CartService.add_item(None, product.id, 1, test_session)

        with pytest.raises(CartOwnershipException):
            await CartService.update_item(cart.items[0].id, 2, None, test_session)

    @pytest.mark.asyncio
    async def test_unknown_line(self, test_session, customer):
        with pytest.raises(CartItemNotFoundException):
            await CartService.remove_item(12345, UserOwner(customer.id), test_session)

    @pytest.mark.asyncio
    async def test_remove_item(self, test_session, make_product):
        product = await make_product()
        cart = await CartService.add_item(None, product.id, 1, test_session)
        owner = GuestOwner(cart.guest_token)

        cart = await CartService.remove_item(cart.items[0].id, owner, test_session)

        assert cart.items == []
        assert cart.total_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_clear_keeps_cart(self, test_session, customer, make_product):
        owner = UserOwner(customer.id)
        for _ in range(3):
            product = await make_product()
            await CartService.add_item(owner, product.id, 1, test_session)

        removed = await CartService.clear(owner, test_session)

        assert removed == 3
        cart = await CartService.get_cart(owner, test_session)
        assert cart.items == []


class TestMergeGuestCart:

    @pytest.mark.asyncio
    async def test_matching_lines_are_summed(self, test_session, customer, make_product):
        product = await make_product(stock=10)
        guest_cart = await CartService.add_item(None, product.id, 2, test_session)
        await CartService.add_item(UserOwner(customer.id), product.id, 3, test_session)

        cart_id = await CartService.merge_guest_into_user(guest_cart.guest_token, customer.id, test_session)

        cart = await CartRepository.get_detail(cart_id, test_session)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5
        assert await CartRepository.get_by_owner(GuestOwner(guest_cart.guest_token), test_session) is None
        assert await CartRepository.get_by_id(guest_cart.id, test_session) is None

    @pytest.mark.asyncio
    async def test_other_lines_are_moved(self, test_session, customer, make_product):
        shared = await make_product(stock=10)
        guest_only = await make_product(stock=10)
        guest_cart = await CartService.add_item(None, shared.id, 1, test_session)
        await CartService.add_item(GuestOwner(guest_cart.guest_token), guest_only.id, 4, test_session)
        await CartService.add_item(UserOwner(customer.id), shared.id, 1, test_session)

        cart_id = await CartService.merge_guest_into_user(guest_cart.guest_token, customer.id, test_session)

        cart = await CartRepository.get_detail(cart_id, test_session)
        quantities = {line.product_id: line.quantity for line in cart.items}
        assert quantities == {shared.id: 2, guest_only.id: 4}

    @pytest.mark.asyncio
    async def test_user_without_cart_takes_over_guest_cart(self, test_session, customer, make_product):
        product = await make_product()
        guest_cart = await CartService.add_item(None, product.id, 1, test_session)

        cart_id = await CartService.merge_guest_into_user(guest_cart.guest_token, customer.id, test_session)

        assert cart_id == guest_cart.id
        cart = await CartRepository.get_by_id(cart_id, test_session)
        assert cart.user_id == customer.id
        assert cart.guest_token is None

    @pytest.mark.asyncio
    async def test_unknown_guest_token(self, test_session, customer):
        with pytest.raises(CartNotFoundException):
            await CartService.merge_guest_into_user("missing", customer.id, test_session)

    @pytest.mark.asyncio
    async def test_failure_midway_changes_nothing(self, test_session, customer, make_product):
        shared = await make_product(stock=10)
        first_only = await make_product(stock=10)
        second_only = await make_product(stock=10)
        guest_cart = await CartService.add_item(None, shared.id, 2, test_session)
        guest_owner = GuestOwner(guest_cart.guest_token)
        await CartService.add_item(guest_owner, first_only.id, 1, test_session)
        await CartService.add_item(guest_owner, second_only.id, 4, test_session)
        user_owner = UserOwner(customer.id)
        await CartService.add_item(user_owner, shared.id, 3, test_session)

        real_move = CartItemRepository.move_to_cart
        moves = []

        async def fail_on_second_move(cart_item_id, cart_id, session):
            moves.append(cart_item_id)
            if len(moves) == 2:
                raise RuntimeError("connection lost")
            await real_move(cart_item_id, cart_id, session)

        with patch.object(CartItemRepository, "move_to_cart", new=fail_on_second_move):
            with pytest.raises(RuntimeError):
                await CartService.merge_guest_into_user(guest_cart.guest_token, customer.id, test_session)

        # Summed line, first move and cart deletion were all rolled back
        guest_after = await CartService.get_cart(guest_owner, test_session)
        assert guest_after.id == guest_cart.id
        assert {line.product_id: line.quantity for line in guest_after.items} == {
            shared.id: 2, first_only.id: 1, second_only.id: 4,
        }
        user_after = await CartService.get_cart(user_owner, test_session)
        assert {line.product_id: line.quantity for line in user_after.items} == {shared.id: 3}
