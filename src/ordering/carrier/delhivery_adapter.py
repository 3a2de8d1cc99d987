"""Delhivery carrier adapter.

Talks to the Delhivery express API with ``requests``. Every response is
expected to carry ``success``; anything else is an upstream failure.
"""

from datetime import UTC, datetime

import requests
import structlog

from ordering.carrier.port import (
    CarrierService,
    Serviceability,
    ShipmentRequest,
    ShipmentResult,
    TrackingInfo,
    map_tracking_status,
    validate_shipment_request,
)
from ordering.config import CarrierConfig
from ordering.errors import UpstreamProviderError

logger = structlog.get_logger(__name__)

PROVIDER = "delhivery"
TRACKING_URL = "https://www.delhivery.com/track/{waybill}"


class DelhiveryCarrier(CarrierService):
    name = "Delhivery"

    def __init__(self, config: CarrierConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Token {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _call(self, method: str, endpoint: str, **kwargs) -> dict:
        url = f"{self.config.base_url}{endpoint}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.config.timeout_seconds, **kwargs
            )
        except requests.Timeout as exc:
            logger.warning("Carrier timed out", endpoint=endpoint)
            raise UpstreamProviderError(PROVIDER, "Request timed out") from exc
        except requests.RequestException as exc:
            logger.warning("Carrier unreachable", endpoint=endpoint, error=str(exc))
            raise UpstreamProviderError(PROVIDER, "Carrier unreachable") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or not body.get("success"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning("Carrier rejected request", endpoint=endpoint, status_code=response.status_code)
            raise UpstreamProviderError(PROVIDER, message, status_code=response.status_code)
        return body

    def build_payload(self, request: ShipmentRequest) -> dict:
        pickup = self.config.pickup
        address = request.address
        return {
            "shipment_details": {
                "waybill": None,
                "order": request.order_number,
                "order_date": datetime.now(UTC).date().isoformat(),
                "total_amount": request.declared_value,
                "cod_amount": request.cod_amount,
                "order_type": "COD" if request.cod_amount > 0 else "Prepaid",
                "shipment_weight": request.weight,
                "dimension": {
                    "length": request.dimensions.length,
                    "breadth": request.dimensions.width,
                    "height": request.dimensions.height,
                },
            },
            "pickup_location": {
                "name": pickup.name,
                "address": pickup.address,
                "city": pickup.city,
                "state": pickup.state,
                "pincode": pickup.pincode,
                "phone": pickup.phone,
                "email": pickup.email,
            },
            "delivery_details": {
                "name": request.customer_name,
                "address": address.get("street"),
                "city": address.get("city"),
                "state": address.get("state"),
                "pincode": address.get("pincode"),
                "phone": request.phone,
                "email": request.email,
            },
            "package_details": {
                "name": ", ".join(item["name"] for item in request.items),
                "quantity": sum(item["quantity"] for item in request.items),
                "description": ", ".join(f"{item['name']} ({item['quantity']})" for item in request.items),
            },
        }

    def create_shipment(self, request: ShipmentRequest) -> ShipmentResult:
        validate_shipment_request(request)
        body = self._call("POST", "/api/pin/create-order/", json=self.build_payload(request))
        waybill = body.get("waybill")
        if not waybill:
            raise UpstreamProviderError(PROVIDER, "Response did not include a waybill")

        logger.info("Shipment booked", order_number=request.order_number, waybill=waybill)
        return ShipmentResult(
            waybill=waybill,
            order_number=request.order_number,
            tracking_url=TRACKING_URL.format(waybill=waybill),
        )

    def track(self, waybill: str) -> TrackingInfo:
        data = self._call("GET", f"/api/pin/track/{waybill}/").get("data") or {}
        return TrackingInfo(
            waybill=waybill,
            status=map_tracking_status(data.get("status")),
            current_location=data.get("current_location"),
            estimated_delivery=data.get("estimated_delivery"),
            delivered_at=data.get("delivered_at"),
            timeline=data.get("timeline") or [],
        )

    def check_serviceability(self, pincode: str) -> Serviceability:
        data = self._call("GET", f"/api/pin/serviceability/{pincode}/").get("data") or {}
        return Serviceability(
            pincode=pincode,
            serviceable=bool(data.get("serviceable")),
            city=data.get("city"),
            state=data.get("state"),
            delivery_days=data.get("delivery_time"),
            cash_on_delivery=bool(data.get("cod")),
        )

    def cancel_shipment(self, waybill: str, reason: str) -> None:
        self._call("POST", "/api/pin/cancel-order/", json={"waybill": waybill, "reason": reason})
        logger.info("Shipment cancelled", waybill=waybill)
