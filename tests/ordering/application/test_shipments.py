"""Tests for booking, tracking and bulk-creating shipments."""

import pytest
from ordering.carrier.port import ShipmentRequest
from ordering.errors import UpstreamProviderError
from ordering.fulfillment.shipments import (
    MAX_BULK_SHIPMENTS,
    cancel_shipment,
    check_serviceability,
    create_shipment_for_order,
    create_shipments_in_bulk,
    shipment_request_for,
    track_shipment,
)
from ordering.order.order import Order, OrderState
from ordering.order.status import UpdateOrderStatus
from protean import current_domain
from protean.exceptions import ValidationError


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _confirm(order_id):
    current_domain.process(UpdateOrderStatus(order_id=order_id, status="confirmed"), asynchronous=False)


def _request(number, **overrides):
    data = {
        "order_number": number,
        "customer_name": "Asha Rao",
        "phone": "9876543210",
        "email": "asha@example.com",
        "address": {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "pincode": "560001"},
        "items": [{"name": "Cotton Tee", "quantity": 1}],
    }
    data.update(overrides)
    return ShipmentRequest.from_dict(data)


class TestShipOrder:
    def test_confirmed_order_is_shipped_with_tracking(self, cod_order, carrier):
        _confirm(cod_order)

        result = create_shipment_for_order(cod_order)

        order = _order(cod_order)
        assert order.state == OrderState.SHIPPED
        assert order.tracking.number == result.waybill
        assert order.tracking.carrier == "Fake Carrier"
        assert order.tracking.estimated_delivery is not None
        assert [change.state for change in order.history][-2:] == ["processing", "shipped"]
        assert carrier.shipments[result.waybill].order_number == order.order_number

    def test_cod_request_collects_total(self, cod_order):
        request = shipment_request_for(_order(cod_order))

        assert request.cod_amount == 1312.16
        assert request.declared_value == 1312.16
        assert sorted(request.items, key=lambda item: item["name"]) == [
            {"name": "Coffee Mug", "quantity": 1},
            {"name": "Cotton Tee", "quantity": 2},
        ]

    def test_prepaid_request_collects_nothing(self, phonepe_order):
        assert shipment_request_for(_order(phonepe_order)).cod_amount == 0.0

    def test_carrier_failure_leaves_order_unchanged(self, cod_order, carrier):
        _confirm(cod_order)
        carrier.configure(should_succeed=False)

        with pytest.raises(UpstreamProviderError):
            create_shipment_for_order(cod_order)

        order = _order(cod_order)
        assert order.state == OrderState.CONFIRMED
        assert order.tracking is None

    def test_pending_order_cannot_be_shipped(self, cod_order, carrier):
        with pytest.raises(ValidationError):
            create_shipment_for_order(cod_order)
        assert carrier.calls == []


class TestBulkShipments:
    def test_batches_with_delay_and_collected_failures(self, carrier):
        carrier.fail_orders = {"ORD-3"}
        delays = []
        requests = [_request(f"ORD-{n}") for n in range(1, 8)]

        report = create_shipments_in_bulk(requests, batch_size=3, batch_delay=0.5, sleep=delays.append)

        assert report.total == 7
        assert report.successful == 6
        assert report.failed == 1
        assert report.errors[0]["order_number"] == "ORD-3"
        assert delays == [0.5, 0.5]
        assert len(carrier.calls) == 7

    def test_invalid_request_is_reported_without_calling_carrier(self, carrier):
        requests = [_request("ORD-1"), _request("ORD-2", phone="12345")]

        report = create_shipments_in_bulk(requests, sleep=lambda _: None)

        assert report.successful == 1
        assert report.errors[0]["order_number"] == "ORD-2"
        assert "phone" in report.errors[0]["error"]
        assert len(carrier.calls) == 1

    def test_store_defaults_are_used(self, store_config):
        delays = []
        requests = [_request(f"ORD-{n}") for n in range(1, 12)]

        report = create_shipments_in_bulk(requests, sleep=delays.append)

        assert report.successful == 11
        assert delays == [store_config.bulk_shipment_batch_delay] * 2

    def test_empty_and_oversized_requests(self):
        with pytest.raises(ValidationError):
            create_shipments_in_bulk([])
        with pytest.raises(ValidationError):
            create_shipments_in_bulk([_request(f"ORD-{n}") for n in range(MAX_BULK_SHIPMENTS + 1)])

    def test_report_dict(self):
        report = create_shipments_in_bulk([_request("ORD-1")], sleep=lambda _: None).to_dict()

        assert report["total"] == 1
        assert report["results"][0]["order_number"] == "ORD-1"
        assert report["results"][0]["waybill"].startswith("WB")


class TestTrackingAndServiceability:
    def test_track_and_cancel(self, carrier):
        waybill = carrier.create_shipment(_request("ORD-1")).waybill

        assert track_shipment(waybill).status == "in_transit"
        cancel_shipment(waybill, reason="Address change")
        assert track_shipment(waybill).status == "cancelled"
        assert carrier.cancelled[waybill] == "Address change"

    def test_waybill_required(self):
        with pytest.raises(ValidationError):
            track_shipment("")
        with pytest.raises(ValidationError):
            cancel_shipment("")

    def test_serviceability(self, carrier):
        carrier.unserviceable = {"799999"}

        assert check_serviceability("560001").serviceable is True
        assert check_serviceability("799999").serviceable is False

    @pytest.mark.parametrize("pincode", ["", "12345", "56000A", "5600011"])
    def test_pincode_must_have_six_digits(self, pincode, carrier):
        with pytest.raises(ValidationError):
            check_serviceability(pincode)
        assert carrier.calls == []
