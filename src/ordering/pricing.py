"""Totals engine shared by carts and orders.

Totals are a pure function of line items and the pricing policy (discount,
tax rate, shipping cost). Carts and orders store the result only as a cache
that can always be re-derived and compared.

    subtotal  = sum(quantity * unit_price)
    discount  = percentage of subtotal, or a fixed amount, capped at subtotal
    tax       = (subtotal - discount) * tax_rate_percent / 100
    total     = subtotal - discount + tax + shipping_cost
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import structlog

from ordering.errors import InvariantViolation

logger = structlog.get_logger(__name__)

_CENT = 0.01


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PricedLine(Protocol):
    quantity: int
    unit_price: float


@dataclass(frozen=True)
class Line:
    quantity: int
    unit_price: float


@dataclass(frozen=True)
class Discount:
    value: float = 0.0
    type: DiscountType = DiscountType.FIXED
    code: str | None = None


NO_DISCOUNT = Discount()


@dataclass(frozen=True)
class Totals:
    item_count: int
    subtotal: float
    discount_amount: float
    tax_amount: float
    shipping_cost: float
    total: float

    def is_balanced(self) -> bool:
        expected = self.subtotal - self.discount_amount + self.tax_amount + self.shipping_cost
        return abs(expected - self.total) < _CENT / 2

    def to_dict(self) -> dict:
        return {
            "item_count": self.item_count,
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "shipping_cost": self.shipping_cost,
            "total": self.total,
        }


def money(amount: float) -> float:
    return round(amount, 2)


def line_total(quantity: int, unit_price: float) -> float:
    return money(quantity * unit_price)


def discount_amount_for(subtotal: float, discount: Discount) -> float:
    """Resolve a discount policy against a subtotal.

    A zero discount value means no discount. The result never exceeds the
    subtotal, so the taxable base cannot go negative.
    """
    if not discount or discount.value <= 0:
        return 0.0

    if discount.type == DiscountType.PERCENTAGE:
        amount = subtotal * discount.value / 100
    else:
        amount = discount.value

    return money(min(amount, subtotal))


def compute_totals(
    items: Iterable[PricedLine],
    discount: Discount = NO_DISCOUNT,
    tax_rate_percent: float = 0.0,
    shipping_cost: float = 0.0,
) -> Totals:
    items = list(items)
    item_count = sum(item.quantity for item in items)
    subtotal = money(sum(line_total(item.quantity, item.unit_price) for item in items))
    discount_amount = discount_amount_for(subtotal, discount)
    tax_amount = money((subtotal - discount_amount) * tax_rate_percent / 100)
    shipping_cost = money(shipping_cost)
    total = money(subtotal - discount_amount + tax_amount + shipping_cost)

    totals = Totals(
        item_count=item_count,
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        shipping_cost=shipping_cost,
        total=total,
    )
    _check(totals)
    return totals


def _check(totals: Totals) -> None:
    negative = [name for name, value in totals.to_dict().items() if value < 0]
    if negative:
        logger.error("Negative totals computed", fields=negative, **totals.to_dict())
        raise InvariantViolation(f"Computed totals must not be negative: {', '.join(negative)}")
    if not totals.is_balanced():
        logger.error("Unbalanced totals computed", **totals.to_dict())
        raise InvariantViolation("Computed total does not balance")


def to_minor_units(amount: float) -> int:
    """Convert rupees to paise for the provider wire format."""
    return int(round(amount * 100))


def from_minor_units(minor: int | float) -> float:
    """Convert paise from the provider wire format back to rupees."""
    return money(minor / 100)
