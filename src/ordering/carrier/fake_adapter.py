"""Configurable fake carrier for development and testing."""

import threading
from uuid import uuid4

from ordering.carrier.port import (
    CarrierService,
    Serviceability,
    ShipmentRequest,
    ShipmentResult,
    TrackingInfo,
)
from ordering.errors import UpstreamProviderError

TRACKING_URL = "https://www.delhivery.com/track/{waybill}"


class FakeCarrier(CarrierService):
    """Books shipments in memory.

    ``fail_orders`` makes individual order numbers fail, so batch behaviour
    can be exercised with a mix of outcomes.
    """

    name = "Fake Carrier"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Carrier unavailable"
        self.fail_orders: set[str] = set()
        self.unserviceable: set[str] = set()
        self.shipments: dict[str, ShipmentRequest] = {}
        self.cancelled: dict[str, str] = {}
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def configure(self, should_succeed: bool, failure_reason: str = "Carrier unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _record(self, call: dict) -> None:
        with self._lock:
            self.calls.append(call)

    def create_shipment(self, request: ShipmentRequest) -> ShipmentResult:
        self._record({"method": "create_shipment", "order_number": request.order_number})
        if not self.should_succeed or request.order_number in self.fail_orders:
            raise UpstreamProviderError("fake-carrier", self.failure_reason)

        waybill = f"WB{uuid4().hex[:12].upper()}"
        with self._lock:
            self.shipments[waybill] = request
        return ShipmentResult(
            waybill=waybill,
            order_number=request.order_number,
            tracking_url=TRACKING_URL.format(waybill=waybill),
        )

    def track(self, waybill: str) -> TrackingInfo:
        self._record({"method": "track", "waybill": waybill})
        if not self.should_succeed or waybill not in self.shipments:
            raise UpstreamProviderError("fake-carrier", f"Unknown waybill {waybill}", status_code=404)
        status = "cancelled" if waybill in self.cancelled else "in_transit"
        return TrackingInfo(waybill=waybill, status=status, current_location="Sorting hub")

    def check_serviceability(self, pincode: str) -> Serviceability:
        self._record({"method": "check_serviceability", "pincode": pincode})
        if not self.should_succeed:
            raise UpstreamProviderError("fake-carrier", self.failure_reason)
        serviceable = pincode not in self.unserviceable
        return Serviceability(
            pincode=pincode,
            serviceable=serviceable,
            delivery_days=3 if serviceable else None,
            cash_on_delivery=serviceable,
        )

    def cancel_shipment(self, waybill: str, reason: str) -> None:
        self._record({"method": "cancel_shipment", "waybill": waybill, "reason": reason})
        if not self.should_succeed or waybill not in self.shipments:
            raise UpstreamProviderError("fake-carrier", f"Unknown waybill {waybill}", status_code=404)
        self.cancelled[waybill] = reason
