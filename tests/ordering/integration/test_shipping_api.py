"""Integration tests for Shipping API endpoints via TestClient."""

import asyncio
import time

import httpx
import pytest
from fastapi import FastAPI
from ordering.api import payment_router, shipping_router
from ordering.config import StoreConfig, set_store_config
from ordering.order.order import Order, OrderState
from protean import current_domain


def _shipment(number, **overrides):
    return {
        "order_number": number,
        "customer_name": "Asha Rao",
        "phone": "9876543210",
        "email": "asha@example.com",
        "address": {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "pincode": "560001"},
        "items": [{"name": "Cotton Tee", "quantity": 1}],
        **overrides,
    }


class TestShipOrderEndpoint:
    def test_ship_confirmed_order(self, client, cod_order):
        client.put(f"/orders/{cod_order}/status", json={"status": "confirmed"})

        response = client.post(f"/shipping/orders/{cod_order}", json={"weight": 1.2})

        assert response.status_code == 200
        waybill = response.json()["waybill"]
        order = current_domain.repository_for(Order).get(cod_order)
        assert order.state == OrderState.SHIPPED
        assert order.tracking.number == waybill

        tracking = client.get(f"/orders/{cod_order}").json()["tracking"]
        assert tracking["number"] == waybill

    def test_carrier_down(self, client, cod_order, carrier):
        client.put(f"/orders/{cod_order}/status", json={"status": "confirmed"})
        carrier.configure(should_succeed=False)

        response = client.post(f"/shipping/orders/{cod_order}")

        assert response.status_code == 502
        assert current_domain.repository_for(Order).get(cod_order).state == OrderState.CONFIRMED

    def test_pending_order_cannot_ship(self, client, cod_order):
        assert client.post(f"/shipping/orders/{cod_order}").status_code == 400


class TestBulkCreateEndpoint:
    def test_bulk_create_reports_each_shipment(self, client, carrier):
        carrier.fail_orders = {"ORD-2"}
        shipments = [_shipment(f"ORD-{n}") for n in range(1, 4)]

        response = client.post("/shipping/bulk-create", json={"shipments": shipments})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["successful"] == 2
        assert body["failed"] == 1
        assert body["errors"][0]["order_number"] == "ORD-2"

    def test_bulk_limits(self, client):
        assert client.post("/shipping/bulk-create", json={"shipments": []}).status_code == 422

        shipments = [_shipment(f"ORD-{n}") for n in range(101)]
        assert client.post("/shipping/bulk-create", json={"shipments": shipments}).status_code == 422

    def test_bulk_schema_validation(self, client):
        response = client.post("/shipping/bulk-create", json={"shipments": [_shipment("ORD-1", items=[])]})

        assert response.status_code == 422

    @pytest.mark.slow
    def test_bulk_create_does_not_hold_up_other_requests(self):
        set_store_config(StoreConfig(bulk_shipment_batch_size=1, bulk_shipment_batch_delay=0.3))
        app = FastAPI()
        app.include_router(payment_router)
        app.include_router(shipping_router)
        shipments = [_shipment(f"ORD-{n}") for n in range(1, 4)]
        observed = {}

        async def _bulk(client):
            response = await client.post("/shipping/bulk-create", json={"shipments": shipments})
            observed["bulk_status"] = response.status_code

        async def _other(client):
            await asyncio.sleep(0.05)
            started = time.monotonic()
            await client.get("/payments/status-mapping")
            observed["other_seconds"] = time.monotonic() - started

        async def _run():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                await asyncio.gather(_bulk(client), _other(client))

        asyncio.run(_run())

        assert observed["bulk_status"] == 200
        assert observed["other_seconds"] < 0.25


class TestTrackingEndpoints:
    def test_track_and_cancel(self, client, carrier):
        response = client.post("/shipping/bulk-create", json={"shipments": [_shipment("ORD-1")]})
        waybill = response.json()["results"][0]["waybill"]

        assert client.get(f"/shipping/track/{waybill}").json()["status"] == "in_transit"

        response = client.post("/shipping/cancel", json={"waybill": waybill})
        assert response.status_code == 200
        assert client.get(f"/shipping/track/{waybill}").json()["status"] == "cancelled"

    def test_unknown_waybill(self, client):
        assert client.get("/shipping/track/WB-NOPE").status_code == 502

    def test_pincode(self, client, carrier):
        carrier.unserviceable = {"799999"}

        assert client.get("/shipping/pincode/560001").json()["serviceable"] is True
        assert client.get("/shipping/pincode/799999").json()["serviceable"] is False
        assert client.get("/shipping/pincode/56000").status_code == 400
