"""
Unit Tests: ProductService

Covers catalog CRUD, filtering/sorting/pagination, stock corrections and
image handling against the in-memory FakeImageStorage.
"""

import threading
from decimal import Decimal

import pytest

from enums.product_sort import ProductSortField, SortOrder
from exceptions.product import (
    InvalidImageException,
    InvalidProductDataException,
    ProductConflictException,
    ProductImageNotFoundException,
    ProductNotFoundException,
)
from exceptions.user import PermissionDeniedException
from models.cart import UserOwner
from models.product import ProductQueryDTO
from services.cart import CartService
from services.order import OrderService
from services.product import ProductService
from storage import ImageUpload

PNG = ImageUpload(filename="photo.png", content_type="image/png", content=b"\x89PNG fake image bytes")


class TestCreateProduct:

    @pytest.mark.asyncio
    async def test_create_with_slug_and_category(self, test_session, admin_identity, category):
        product = await ProductService.create("Wireless Mouse", "2.4 GHz", Decimal("24.99"), 10, category.id,
                                              admin_identity, test_session)

        assert product.slug == "wireless-mouse"
        assert product.price == Decimal("24.99")
        assert product.category.name == "Electronics"
        assert product.image_urls == []

    @pytest.mark.asyncio
    async def test_duplicate_names_get_unique_slugs(self, test_session, admin_identity, category):
        first = await ProductService.create("Mug", None, Decimal("5"), 1, category.id, admin_identity, test_session)
        second = await ProductService.create("Mug", None, Decimal("6"), 1, category.id, admin_identity, test_session)
        assert (first.slug, second.slug) == ("mug", "mug-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price,stock", [(Decimal("0"), 1), (Decimal("-1"), 1), (Decimal("1"), -1)])
    async def test_invalid_values(self, test_session, admin_identity, category, price, stock):
        with pytest.raises(InvalidProductDataException):
            await ProductService.create("Thing", None, price, stock, category.id, admin_identity, test_session)

    @pytest.mark.asyncio
    async def test_unknown_category(self, test_session, admin_identity):
        with pytest.raises(InvalidProductDataException):
            await ProductService.create("Thing", None, Decimal("1"), 1, 999, admin_identity, test_session)

    @pytest.mark.asyncio
    async def test_customer_cannot_create(self, test_session, customer_identity, category):
        with pytest.raises(PermissionDeniedException):
            await ProductService.create("Thing", None, Decimal("1"), 1, category.id, customer_identity,
                                        test_session)


class TestListProducts:

    @pytest.mark.asyncio
    async def test_filters_and_sorting(self, test_session, make_product):
        await make_product(name="Cheap Cable", price="3.00")
        await make_product(name="Fancy Cable", price="30.00")
        await make_product(name="Laptop Stand", price="45.00")

        page = await ProductService.list_products(ProductQueryDTO(
            min_price=Decimal("2"), max_price=Decimal("40"),
            sort_by=ProductSortField.PRICE, sort_order=SortOrder.ASC,
        ), test_session)

        assert [p.name for p in page.data] == ["Cheap Cable", "Fancy Cable"]
        assert page.meta.total == 2

    @pytest.mark.asyncio
    async def test_search_matches_name_case_insensitive(self, test_session, make_product):
        await make_product(name="USB Cable")
        await make_product(name="Keyboard")

        page = await ProductService.search("cable", ProductQueryDTO(), test_session)

        assert [p.name for p in page.data] == ["USB Cable"]

    @pytest.mark.asyncio
    async def test_pagination(self, test_session, make_product):
        for i in range(5):
            await make_product(name=f"Item {i}")

        page = await ProductService.list_products(ProductQueryDTO(page=2, limit=2, sort_by=ProductSortField.NAME,
                                                                  sort_order=SortOrder.ASC), test_session)

        assert [p.name for p in page.data] == ["Item 2", "Item 3"]
        assert page.meta.total_pages == 3
        assert page.meta.has_next_page and page.meta.has_prev_page

    @pytest.mark.asyncio
    async def test_inverted_price_range(self, test_session):
        with pytest.raises(InvalidProductDataException):
            await ProductService.list_products(ProductQueryDTO(min_price=Decimal("10"), max_price=Decimal("1")),
                                               test_session)

    @pytest.mark.asyncio
    async def test_lookup_by_slug_and_id(self, test_session, make_product):
        product = await make_product()
        assert (await ProductService.get_by_slug(product.slug, test_session)).id == product.id
        with pytest.raises(ProductNotFoundException):
            await ProductService.get_by_slug("nope", test_session)
        with pytest.raises(ProductNotFoundException):
            await ProductService.get(9999, test_session)


class TestUpdateProduct:

    @pytest.mark.asyncio
    async def test_partial_update(self, test_session, admin_identity, make_product):
        product = await make_product(name="Old Name", price="10.00", stock=5)

        updated = await ProductService.update(product.id, {"name": "New Name", "price": Decimal("12.00")},
                                              admin_identity, test_session)

        assert updated.name == "New Name"
        assert updated.slug == "new-name"
        assert updated.price == Decimal("12.00")
        assert updated.stock == 5

    @pytest.mark.asyncio
    async def test_empty_changes(self, test_session, admin_identity, make_product):
        product = await make_product()
        with pytest.raises(InvalidProductDataException):
            await ProductService.update(product.id, {}, admin_identity, test_session)

    @pytest.mark.asyncio
    async def test_missing_product(self, test_session, admin_identity):
        with pytest.raises(ProductNotFoundException):
            await ProductService.update(404, {"stock": 1}, admin_identity, test_session)


class TestDeleteProduct:

    @pytest.mark.asyncio
    async def test_delete_removes_images(self, test_session, admin_identity, make_product, fake_storage):
        product = await make_product()
        product = await ProductService.add_images(product.id, [PNG], admin_identity, test_session)
        url = product.image_urls[0]

        await ProductService.delete(product.id, admin_identity, test_session)

        assert url not in fake_storage.files
        with pytest.raises(ProductNotFoundException):
            await ProductService.get(product.id, test_session)

    @pytest.mark.asyncio
    async def test_ordered_product_cannot_be_deleted(self, test_session, admin_identity, customer,
                                                     customer_identity, make_product):
        product = await make_product()
        await CartService.add_item(UserOwner(customer.id), product.id, 1, test_session)
        await OrderService.create_order(customer_identity, "Main Street 1, Berlin", "+49 30 1234567", None, None,
                                        test_session)

        with pytest.raises(ProductConflictException):
            await ProductService.delete(product.id, admin_identity, test_session)


class TestAdjustStock:

    @pytest.mark.asyncio
    async def test_positive_and_negative_delta(self, test_session, admin_identity, make_product):
        product = await make_product(stock=5)

        assert (await ProductService.adjust_stock(product.id, 3, admin_identity, test_session)).stock == 8
        assert (await ProductService.adjust_stock(product.id, -8, admin_identity, test_session)).stock == 0

    @pytest.mark.asyncio
    async def test_cannot_go_negative(self, test_session, admin_identity, make_product):
        product = await make_product(stock=2)
        with pytest.raises(InvalidProductDataException):
            await ProductService.adjust_stock(product.id, -3, admin_identity, test_session)
        assert (await ProductService.get(product.id, test_session)).stock == 2


class TestImages:

    @pytest.mark.asyncio
    async def test_upload_appends_urls(self, test_session, admin_identity, make_product, fake_storage):
        product = await make_product()

        product = await ProductService.add_images(product.id, [PNG, PNG], admin_identity, test_session)

        assert len(product.image_urls) == 2
        assert all(url in fake_storage.files for url in product.image_urls)

    @pytest.mark.asyncio
    async def test_rejects_unsupported_type(self, test_session, admin_identity, make_product, fake_storage):
        product = await make_product()
        gif = ImageUpload(filename="a.gif", content_type="image/gif", content=b"GIF89a")

        with pytest.raises(InvalidImageException):
            await ProductService.add_images(product.id, [PNG, gif], admin_identity, test_session)
        # Nothing uploaded when any file is invalid
        assert fake_storage.calls == []

    @pytest.mark.asyncio
    async def test_storage_failure(self, test_session, admin_identity, make_product, fake_storage):
        product = await make_product()
        fake_storage.configure(fail_uploads=True)

        with pytest.raises(InvalidImageException):
            await ProductService.add_images(product.id, [PNG], admin_identity, test_session)
        assert (await ProductService.get(product.id, test_session)).image_urls == []

    @pytest.mark.asyncio
    async def test_remove_image(self, test_session, admin_identity, make_product, fake_storage):
        product = await make_product()
        product = await ProductService.add_images(product.id, [PNG, PNG], admin_identity, test_session)
        removed, kept = product.image_urls

        product = await ProductService.remove_image(product.id, removed, admin_identity, test_session)

        assert product.image_urls == [kept]
        assert removed not in fake_storage.files

    @pytest.mark.asyncio
    async def test_remove_unknown_image(self, test_session, admin_identity, make_product, fake_storage):
        product = await make_product()
        with pytest.raises(ProductImageNotFoundException):
            await ProductService.remove_image(product.id, "https://cdn.test/other.png", admin_identity,
                                              test_session)

    @pytest.mark.asyncio
    async def test_storage_io_runs_off_the_event_loop(self, test_session, admin_identity, make_product,
                                                      fake_storage):
        product = await make_product()
        product = await ProductService.add_images(product.id, [PNG], admin_identity, test_session)
        await ProductService.remove_image(product.id, product.image_urls[0], admin_identity, test_session)

        loop_thread = threading.get_ident()
        assert [call["method"] for call in fake_storage.calls] == ["upload", "delete"]
        assert all(call["thread"] != loop_thread for call in fake_storage.calls)
