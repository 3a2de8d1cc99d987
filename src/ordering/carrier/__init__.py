"""Shipping carrier factory.

Provides get_carrier() / set_carrier() to swap implementations:
- FakeCarrier for development and testing
- DelhiveryCarrier when SHIPPING_CARRIER=delhivery
"""

import os

from ordering.carrier.fake_adapter import FakeCarrier
from ordering.carrier.port import CarrierService

_current_carrier: CarrierService | None = None


def get_carrier() -> CarrierService:
    """Return the current carrier. Defaults to FakeCarrier."""
    global _current_carrier
    if _current_carrier is None:
        adapter = os.environ.get("SHIPPING_CARRIER", "fake")
        if adapter == "fake":
            _current_carrier = FakeCarrier()
        elif adapter == "delhivery":
            from ordering.carrier.delhivery_adapter import DelhiveryCarrier
            from ordering.config import CarrierConfig

            _current_carrier = DelhiveryCarrier(CarrierConfig.from_env())
        else:
            raise ValueError(f"Unknown shipping carrier: {adapter}")
    return _current_carrier


def set_carrier(carrier: CarrierService) -> None:
    """Override the active carrier (useful for tests)."""
    global _current_carrier
    _current_carrier = carrier


def reset_carrier() -> None:
    global _current_carrier
    _current_carrier = None
