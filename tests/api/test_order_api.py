"""
API Tests: /api/orders

Checkout, listing, statistics and the admin status endpoint.
"""

from decimal import Decimal

import pytest

CHECKOUT = {"shipping_address": "Main Street 1, 10115 Berlin", "phone_number": "+49 30 1234567"}


async def fill_cart(client, headers, product_id, quantity=1):
    response = await client.post("/api/cart/add", json={"product_id": product_id, "quantity": quantity},
                                 headers=headers)
    assert response.status_code == 200
    return response.json()


class TestCheckoutApi:

    @pytest.mark.asyncio
    async def test_checkout(self, client, make_product, customer_headers):
        product = await make_product(price="10.00", stock=5)
        await fill_cart(client, customer_headers, product.id, 2)

        response = await client.post("/api/orders", json=CHECKOUT, headers=customer_headers)

        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "PENDING"
        assert Decimal(order["total_amount"]) == Decimal("20.00")
        assert order["items"][0]["product"]["id"] == product.id

        product_response = await client.get(f"/api/products/{product.id}")
        assert product_response.json()["stock"] == 3

    @pytest.mark.asyncio
    async def test_checkout_merges_guest_cart(self, client, make_product, customer_headers):
        product = await make_product(price="4.00", stock=10)
        guest_cart = await fill_cart(client, {}, product.id, 2)

        headers = {**customer_headers, "X-Guest-Token": guest_cart["guest_token"]}
        response = await client.post("/api/orders", json=CHECKOUT, headers=headers)

        assert response.status_code == 201
        assert Decimal(response.json()["total_amount"]) == Decimal("8.00")

    @pytest.mark.asyncio
    async def test_checkout_requires_token(self, client):
        response = await client.post("/api/orders", json=CHECKOUT)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.post("/api/orders", json=CHECKOUT, headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_empty_cart(self, client, make_product, customer_headers):
        product = await make_product()
        await fill_cart(client, customer_headers, product.id)
        await client.delete("/api/cart/clear", headers=customer_headers)

        response = await client.post("/api/orders", json=CHECKOUT, headers=customer_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "EmptyCartException"

    @pytest.mark.asyncio
    async def test_invalid_phone_is_422(self, client, customer_headers):
        payload = {**CHECKOUT, "phone_number": "call me"}
        response = await client.post("/api/orders", json=payload, headers=customer_headers)
        assert response.status_code == 422


class TestOrderReadApi:

    @pytest.mark.asyncio
    async def test_list_and_get_own_orders(self, client, make_product, customer_headers, auth, other_customer):
        product = await make_product(stock=10)
        await fill_cart(client, customer_headers, product.id)
        order = (await client.post("/api/orders", json=CHECKOUT, headers=customer_headers)).json()

        response = await client.get("/api/orders", headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["meta"]["total"] == 1

        response = await client.get(f"/api/orders/{order['id']}", headers=customer_headers)
        assert response.status_code == 200

        response = await client.get(f"/api/orders/{order['id']}", headers=auth(other_customer.id))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_stats(self, client, make_product, customer_headers, admin_headers):
        product = await make_product(price="10.00", stock=10)
        await fill_cart(client, customer_headers, product.id, 3)
        await client.post("/api/orders", json=CHECKOUT, headers=customer_headers)

        user_stats = (await client.get("/api/orders/stats", headers=customer_headers)).json()
        assert user_stats["total_orders"] == 1
        assert Decimal(user_stats["total_spent"]) == Decimal("30.00")

        admin_stats = (await client.get("/api/orders/stats", headers=admin_headers)).json()
        assert admin_stats["pending_orders"] == 1
        assert Decimal(admin_stats["total_revenue"]) == Decimal("30.00")


class TestOrderStatusApi:

    @pytest.mark.asyncio
    async def test_admin_status_flow(self, client, make_product, customer_headers, admin_headers):
        product = await make_product(stock=5)
        await fill_cart(client, customer_headers, product.id, 2)
        order = (await client.post("/api/orders", json=CHECKOUT, headers=customer_headers)).json()
        url = f"/api/orders/{order['id']}/status"

        response = await client.patch(url, json={"status": "SHIPPED"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "SHIPPED"

        response = await client.patch(url, json={"status": "PENDING"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidStatusTransitionException"

        response = await client.patch(url, json={"status": "CANCELLED", "notes": "Lost in transit"},
                                      headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["notes"] == "Lost in transit"
        assert (await client.get(f"/api/products/{product.id}")).json()["stock"] == 5

    @pytest.mark.asyncio
    async def test_customer_cannot_update_status(self, client, make_product, customer_headers):
        product = await make_product()
        await fill_cart(client, customer_headers, product.id)
        order = (await client.post("/api/orders", json=CHECKOUT, headers=customer_headers)).json()

        response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "APPROVED"},
                                      headers=customer_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_status_value(self, client, admin_headers):
        response = await client.patch("/api/orders/1/status", json={"status": "LOST"}, headers=admin_headers)
        assert response.status_code == 422
