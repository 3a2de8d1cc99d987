"""Shipping carrier port (abstract interface) and shipment request shapes."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from protean.exceptions import ValidationError

_PINCODE = re.compile(r"^[0-9]{6}$")
_PHONE = re.compile(r"^[0-9]{10}$")
_DIMENSIONS = ("length", "width", "height")

_TRACKING_STATUSES = {
    "In Transit": "in_transit",
    "Delivered": "delivered",
    "Out for Delivery": "out_for_delivery",
    "Picked Up": "picked_up",
    "In Transit - Out for Delivery": "out_for_delivery",
    "Delivered - Signed by": "delivered",
    "Exception": "exception",
    "Returned": "returned",
}


@dataclass(frozen=True)
class Dimensions:
    """Package dimensions in centimetres."""

    length: float = 10.0
    width: float = 10.0
    height: float = 10.0


@dataclass(frozen=True)
class ShipmentRequest:
    """Everything the carrier needs to pick up and deliver one order.

    ``address`` carries ``street``, ``city``, ``state`` and ``pincode``;
    each item carries ``name`` and ``quantity``. Weight is in kilograms.
    """

    order_number: str
    customer_name: str
    phone: str
    email: str
    address: dict
    items: list[dict]
    weight: float = 0.5
    dimensions: Dimensions = field(default_factory=Dimensions)
    cod_amount: float = 0.0
    declared_value: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ShipmentRequest":
        dimensions = {key: value for key, value in (data.get("dimensions") or {}).items() if key in _DIMENSIONS and value}
        return cls(
            order_number=data.get("order_number") or "",
            customer_name=data.get("customer_name") or "",
            phone=data.get("phone") or "",
            email=data.get("email") or "",
            address=data.get("address") or {},
            items=list(data.get("items") or []),
            weight=data.get("weight") or 0.5,
            dimensions=Dimensions(**dimensions),
            cod_amount=data.get("cod_amount") or 0.0,
            declared_value=data.get("declared_value") or 0.0,
        )


@dataclass(frozen=True)
class ShipmentResult:
    waybill: str
    order_number: str
    tracking_url: str


@dataclass(frozen=True)
class TrackingInfo:
    waybill: str
    status: str
    current_location: str | None = None
    estimated_delivery: str | None = None
    delivered_at: str | None = None
    timeline: list = field(default_factory=list)


@dataclass(frozen=True)
class Serviceability:
    pincode: str
    serviceable: bool
    city: str | None = None
    state: str | None = None
    delivery_days: int | None = None
    cash_on_delivery: bool = False


def validate_shipment_request(request: ShipmentRequest) -> None:
    """Raise ``ValidationError`` listing every problem with ``request``."""
    errors: dict[str, list[str]] = {}
    required = {
        "order_number": request.order_number,
        "customer_name": request.customer_name,
        "phone": request.phone,
        "email": request.email,
        "address": request.address,
        "items": request.items,
    }
    for name, value in required.items():
        if not value:
            errors.setdefault(name, []).append("is required")

    pincode = str((request.address or {}).get("pincode") or "")
    if request.address and not _PINCODE.match(pincode):
        errors.setdefault("pincode", []).append("Invalid pincode format")
    if request.phone and not _PHONE.match(request.phone):
        errors.setdefault("phone", []).append("Invalid customer phone number")
    if request.email and "@" not in request.email:
        errors.setdefault("email", []).append("Invalid customer email")
    if request.weight < 0.1:
        errors.setdefault("weight", []).append("Weight must be at least 0.1 kg")
    if request.cod_amount < 0 or request.declared_value < 0:
        errors.setdefault("amount", []).append("Amounts cannot be negative")

    if errors:
        raise ValidationError(errors)


def map_tracking_status(status: str | None) -> str:
    """Normalize a carrier tracking state to a snake_case code."""
    if not status:
        return "unknown"
    mapped = _TRACKING_STATUSES.get(status)
    if mapped is not None:
        return mapped
    return re.sub(r"\s+", "_", status.strip().lower())


class CarrierService(ABC):
    """Abstract shipping carrier interface.

    Calls block until the carrier answers or the adapter's timeout expires,
    and raise ``UpstreamProviderError`` on any failure.
    """

    name: str = "carrier"

    @abstractmethod
    def create_shipment(self, request: ShipmentRequest) -> ShipmentResult:
        """Book a pickup for a validated shipment request."""
        ...

    @abstractmethod
    def track(self, waybill: str) -> TrackingInfo:
        ...

    @abstractmethod
    def check_serviceability(self, pincode: str) -> Serviceability:
        ...

    @abstractmethod
    def cancel_shipment(self, waybill: str, reason: str) -> None:
        ...
