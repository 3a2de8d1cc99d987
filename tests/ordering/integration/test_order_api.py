"""Integration tests for Order API endpoints via TestClient."""

import pytest
from ordering.order.order import Order, OrderState
from protean import current_domain

CONTACT = {"name": "Asha Rao", "email": "asha@example.com", "phone": "9876543210"}
ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "pincode": "560001"}


@pytest.fixture()
def placed_order(client, fill_cart):
    fill_cart("cust-api")
    response = client.post("/orders", json={"customer_id": "cust-api", "contact": CONTACT, "payment_method": "cod"})
    assert response.status_code == 201
    return response.json()["order_id"]


class TestCheckoutEndpoint:
    def test_checkout(self, client, placed_order, catalogue):
        order = current_domain.repository_for(Order).get(placed_order)
        assert order.pricing.total == 1312.16
        assert catalogue.find_product("prod-tee").stock_quantity == 8

        cart = client.get("/carts/cust-api").json()
        assert cart["items"] == []

    def test_checkout_without_cart(self, client):
        response = client.post("/orders", json={"customer_id": "nobody", "contact": CONTACT, "payment_method": "cod"})

        assert response.status_code == 404

    def test_checkout_with_empty_cart(self, client):
        client.put("/carts/cust-api/address", json={"address": ADDRESS})
        response = client.post("/orders", json={"customer_id": "cust-api", "contact": CONTACT, "payment_method": "cod"})

        assert response.status_code == 400

    def test_checkout_with_bad_contact(self, client, fill_cart):
        fill_cart("cust-api")
        contact = {**CONTACT, "email": "not-an-email"}
        response = client.post("/orders", json={"customer_id": "cust-api", "contact": contact, "payment_method": "cod"})

        assert response.status_code == 422


class TestOrderEndpoints:
    def test_get_order(self, client, placed_order):
        response = client.get(f"/orders/{placed_order}")

        assert response.status_code == 200
        body = response.json()
        assert body["order_id"] == placed_order
        assert body["status"] == "pending"
        assert body["payment_method"] == "cod"
        assert len(body["items"]) == 2
        assert body["status_history"][0]["state"] == "pending"

    def test_get_unknown_order(self, client):
        assert client.get("/orders/missing").status_code == 404

    def test_status_updates(self, client, placed_order):
        response = client.put(f"/orders/{placed_order}/status", json={"status": "confirmed", "note": "Verified"})
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        response = client.put(f"/orders/{placed_order}/status", json={"status": "delivered"})
        assert response.status_code == 400

        assert current_domain.repository_for(Order).get(placed_order).state == OrderState.CONFIRMED

    def test_cancel(self, client, placed_order, catalogue):
        response = client.put(f"/orders/{placed_order}/cancel", json={"reason": "Changed my mind"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert catalogue.find_product("prod-tee").stock_quantity == 10

        assert client.put(f"/orders/{placed_order}/cancel", json={}).status_code == 400

    def test_return(self, client, placed_order):
        for status in ("confirmed", "processing", "shipped"):
            client.put(f"/orders/{placed_order}/status", json={"status": status})

        response = client.put(f"/orders/{placed_order}/return", json={"reason": "Refused at door"})

        assert response.status_code == 200
        assert current_domain.repository_for(Order).get(placed_order).state == OrderState.RETURNED

    def test_delivered_order_cannot_be_returned(self, client, placed_order):
        for status in ("confirmed", "processing", "shipped", "delivered"):
            client.put(f"/orders/{placed_order}/status", json={"status": status})

        response = client.put(f"/orders/{placed_order}/return", json={"reason": "Wrong size"})

        assert response.status_code == 400
        assert current_domain.repository_for(Order).get(placed_order).state == OrderState.DELIVERED
