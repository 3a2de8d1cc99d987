"""Shipment booking, tracking and bulk creation through the carrier.

Booking a shipment for an order is a remote call followed by a local
commit: the carrier is asked first and the order is moved to shipped only
when a waybill comes back. A failed booking leaves the order untouched.
"""

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.carrier import get_carrier
from ordering.carrier.port import (
    CarrierService,
    Serviceability,
    ShipmentRequest,
    ShipmentResult,
    TrackingInfo,
    validate_shipment_request,
)
from ordering.config import CarrierConfig, PickupLocation, get_store_config
from ordering.errors import UpstreamProviderError
from ordering.locking import order_locks
from ordering.order.order import Order, OrderState, PaymentMethod
from ordering.order.status import ShipOrder

logger = structlog.get_logger(__name__)

MAX_BULK_SHIPMENTS = 100
BASE_DELIVERY_DAYS = 3
INTERSTATE_EXTRA_DAYS = 2

# First two pincode digits to region; coarse, for delivery estimates only
_PINCODE_REGIONS = {
    "11": "Delhi",
    "12": "Haryana",
    "13": "Punjab",
    "20": "Uttar Pradesh",
    "30": "Rajasthan",
    "40": "Gujarat",
    "50": "Maharashtra",
    "60": "Tamil Nadu",
    "70": "Karnataka",
    "80": "Andhra Pradesh",
}

SHIPPABLE_STATES = frozenset({OrderState.CONFIRMED, OrderState.PROCESSING})


@dataclass
class BulkShipmentReport:
    total: int
    successful: int = 0
    failed: int = 0
    results: list[ShipmentResult] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": [
                {"waybill": r.waybill, "order_number": r.order_number, "tracking_url": r.tracking_url}
                for r in self.results
            ],
            "errors": list(self.errors),
        }


def region_for_pincode(pincode: str) -> str:
    return _PINCODE_REGIONS.get(str(pincode)[:2], "Other")


def estimate_delivery_days(from_pincode: str, to_pincode: str) -> int:
    if region_for_pincode(from_pincode) == region_for_pincode(to_pincode):
        return BASE_DELIVERY_DAYS
    return BASE_DELIVERY_DAYS + INTERSTATE_EXTRA_DAYS


def shipment_request_for(order, weight: float = 0.5) -> ShipmentRequest:
    """Build the carrier request for an order; COD orders collect the total."""
    cod = order.payment.method == PaymentMethod.COD.value
    return ShipmentRequest(
        order_number=order.order_number,
        customer_name=order.contact.name,
        phone=order.contact.phone or "",
        email=order.contact.email,
        address=order.shipping_address.to_dict() if order.shipping_address else {},
        items=[{"name": item.name, "quantity": item.quantity} for item in order.items],
        weight=weight,
        cod_amount=order.pricing.total if cod else 0.0,
        declared_value=order.pricing.total,
    )


def create_shipment_for_order(
    order_id,
    carrier: CarrierService | None = None,
    weight: float = 0.5,
    pickup: PickupLocation | None = None,
) -> ShipmentResult:
    """Book a shipment for a confirmed or processing order and mark it shipped."""
    carrier = carrier or get_carrier()
    pickup = pickup or CarrierConfig.from_env().pickup
    repo = current_domain.repository_for(Order)

    with order_locks.hold(order_id):
        order = repo.get(order_id)
        if order.state not in SHIPPABLE_STATES:
            raise ValidationError({"status": [f"Cannot ship an order that is {order.status}"]})

        request = shipment_request_for(order, weight=weight)
        validate_shipment_request(request)
        result = carrier.create_shipment(request)

        days = estimate_delivery_days(pickup.pincode, request.address.get("pincode", ""))
        current_domain.process(
            ShipOrder(
                order_id=str(order.id),
                tracking_number=result.waybill,
                carrier=carrier.name,
                tracking_url=result.tracking_url,
                estimated_delivery=datetime.now(UTC) + timedelta(days=days),
            ),
            asynchronous=False,
        )

    logger.info("Order shipped", order_id=str(order_id), waybill=result.waybill, carrier=carrier.name)
    return result


def _book(carrier: CarrierService, request: ShipmentRequest) -> ShipmentResult:
    validate_shipment_request(request)
    return carrier.create_shipment(request)


def create_shipments_in_bulk(
    requests: list[ShipmentRequest],
    carrier: CarrierService | None = None,
    batch_size: int | None = None,
    batch_delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BulkShipmentReport:
    """Book many shipments in fixed-size concurrent batches.

    A shipment that fails is reported in ``errors`` and does not stop the
    rest. The carrier is given ``batch_delay`` seconds between batches.
    """
    if not requests:
        raise ValidationError({"shipments": ["At least one shipment is required"]})
    if len(requests) > MAX_BULK_SHIPMENTS:
        raise ValidationError({"shipments": [f"At most {MAX_BULK_SHIPMENTS} shipments per request"]})

    store = get_store_config()
    carrier = carrier or get_carrier()
    batch_size = batch_size or store.bulk_shipment_batch_size
    batch_delay = store.bulk_shipment_batch_delay if batch_delay is None else batch_delay

    report = BulkShipmentReport(total=len(requests))
    with ThreadPoolExecutor(max_workers=batch_size) as pool:
        for start in range(0, len(requests), batch_size):
            batch = requests[start : start + batch_size]
            futures = [(request, pool.submit(_book, carrier, request)) for request in batch]
            for request, future in futures:
                try:
                    report.results.append(future.result())
                except (ValidationError, UpstreamProviderError) as exc:
                    message = exc.messages if isinstance(exc, ValidationError) else str(exc)
                    report.errors.append({"order_number": request.order_number, "error": message})

            if start + batch_size < len(requests):
                sleep(batch_delay)

    report.successful = len(report.results)
    report.failed = len(report.errors)
    logger.info(
        "Bulk shipment run finished",
        total=report.total,
        successful=report.successful,
        failed=report.failed,
    )
    return report


def track_shipment(waybill: str, carrier: CarrierService | None = None) -> TrackingInfo:
    if not waybill:
        raise ValidationError({"waybill": ["Waybill number is required"]})
    return (carrier or get_carrier()).track(waybill)


def check_serviceability(pincode: str, carrier: CarrierService | None = None) -> Serviceability:
    if not pincode or len(pincode) != 6 or not pincode.isdigit():
        raise ValidationError({"pincode": ["Please provide a valid 6-digit pincode"]})
    return (carrier or get_carrier()).check_serviceability(pincode)


def cancel_shipment(waybill: str, reason: str = "Customer requested cancellation", carrier=None) -> None:
    if not waybill:
        raise ValidationError({"waybill": ["Waybill number is required"]})
    (carrier or get_carrier()).cancel_shipment(waybill, reason)
    logger.info("Shipment cancellation requested", waybill=waybill)
