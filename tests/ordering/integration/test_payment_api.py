"""Integration tests for Payment API endpoints via TestClient."""

import pytest
from ordering.order.order import Order, OrderState, PaymentState
from protean import current_domain


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


@pytest.fixture(autouse=True)
def _reconciler(reconciler):
    return reconciler


class TestInitiateEndpoint:
    def test_initiate(self, client, phonepe_order):
        response = client.post("/payments/initiate", json={"order_id": phonepe_order})

        assert response.status_code == 200
        body = response.json()
        assert body["order_id"] == phonepe_order
        assert body["payment_url"].startswith("https://pay.example.test/")
        assert _order(phonepe_order).payment.status == PaymentState.PROCESSING.value

    def test_gateway_down_is_a_bad_gateway(self, client, phonepe_order, gateway):
        gateway.configure(should_succeed=False, failure_reason="secret upstream detail")

        response = client.post("/payments/initiate", json={"order_id": phonepe_order})

        assert response.status_code == 502
        assert "secret upstream detail" not in response.text
        assert _order(phonepe_order).payment.status == PaymentState.PENDING.value

    def test_cod_order_is_rejected(self, client, cod_order):
        assert client.post("/payments/initiate", json={"order_id": cod_order}).status_code == 400


class TestCallbackEndpoint:
    def test_valid_callback_confirms_order(self, client, phonepe_order, signed_callback, email):
        response = client.post("/payments/callback", json=signed_callback(phonepe_order))

        assert response.status_code == 200
        assert response.json() == {
            "outcome": "applied",
            "order_id": phonepe_order,
            "payment_status": "completed",
            "order_status": "confirmed",
        }
        assert len(email.sent_emails) == 2

    def test_repeated_callback_is_acknowledged(self, client, phonepe_order, signed_callback, email):
        payload = signed_callback(phonepe_order)
        client.post("/payments/callback", json=payload)
        response = client.post("/payments/callback", json=payload)

        assert response.status_code == 200
        assert response.json()["outcome"] == "duplicate"
        assert len(email.sent_emails) == 2

    def test_tampered_callback_gets_generic_rejection(self, client, phonepe_order, signed_callback):
        payload = signed_callback(phonepe_order)
        payload["amount"] = 1

        response = client.post("/payments/callback", json=payload)

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid callback"}
        assert payload["checksum"] not in response.text
        assert _order(phonepe_order).state == OrderState.PENDING

    def test_wrong_merchant_gets_same_rejection(self, client, phonepe_order, signed_callback):
        response = client.post("/payments/callback", json=signed_callback(phonepe_order, merchant_id="OTHER"))

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid callback"}

    def test_unknown_order(self, client, signed_callback):
        assert client.post("/payments/callback", json=signed_callback("no-such-order")).status_code == 404


class TestVerifyAndRefundEndpoints:
    def test_verify(self, client, phonepe_order, gateway):
        gateway.set_status(phonepe_order, "PAYMENT_ERROR")

        response = client.post("/payments/verify", json={"order_id": phonepe_order})

        assert response.status_code == 200
        assert response.json()["order_status"] == "cancelled"

    def test_refund(self, client, phonepe_order, signed_callback):
        client.post("/payments/callback", json=signed_callback(phonepe_order))

        response = client.post("/payments/refund", json={"order_id": phonepe_order, "amount": 112.0})

        assert response.status_code == 200
        assert response.json()["refund_id"].startswith("fake_ref_")
        assert _order(phonepe_order).payment.refund_amount == 112.0

    def test_refund_over_paid_amount(self, client, phonepe_order, signed_callback):
        client.post("/payments/callback", json=signed_callback(phonepe_order))

        response = client.post("/payments/refund", json={"order_id": phonepe_order, "amount": 5000})

        assert response.status_code == 400

    def test_status_mapping(self, client):
        response = client.get("/payments/status-mapping")

        assert response.status_code == 200
        mapping = response.json()
        assert mapping["PAYMENT_SUCCESS"] == "completed"
        assert mapping["PAYMENT_DECLINED"] == "failed"
        assert mapping["PAYMENT_PENDING"] == "pending"
