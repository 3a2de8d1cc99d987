"""Shopping Cart aggregate (CQRS) — one mutable cart per customer.

Every mutation ends by re-running the totals engine, so the stored
``totals`` value object is always a cache of ``compute_totals`` over the
current items and pricing policy. Lines are identified by the pair
(product, normalized variant), never by product alone.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.events import (
    CartCleared,
    CartDiscountApplied,
    CartDiscountRemoved,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartShippingUpdated,
)
from ordering.domain import ordering
from ordering.pricing import Discount, DiscountType, Totals, compute_totals
from ordering.shared.address import Address
from ordering.shared.variant import Variant, to_variant, variant_key


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"


@ordering.value_object(part_of="ShoppingCart")
class CartTotals:
    """Cached result of the totals engine for the cart's current contents."""

    item_count = Integer(default=0, min_value=0)
    subtotal = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant = ValueObject(Variant)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    added_at = DateTime()

    @property
    def total(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    @property
    def line_key(self) -> tuple:
        return (str(self.product_id), variant_key(self.variant))


def _variant_fields(variant) -> dict:
    return {
        "variant_name": variant.name if variant else None,
        "variant_option": variant.option if variant else None,
    }


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    discount_code = String(max_length=50)
    discount_value = Float(default=0.0, min_value=0.0)
    discount_type = String(choices=DiscountType, default=DiscountType.FIXED.value)
    tax_rate = Float(default=18.0, min_value=0.0)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    shipping_cost = Float(default=0.0, min_value=0.0)
    shipping_address = ValueObject(Address)
    totals = ValueObject(CartTotals)
    created_at = DateTime()
    last_updated = DateTime()

    @invariant.post
    def totals_must_balance(self):
        if self.totals is None:
            return
        t = self.totals
        expected = round(t.subtotal - t.discount_amount + t.tax_amount + t.shipping_cost, 2)
        if abs(expected - t.total) >= 0.005:
            raise ValidationError({"totals": ["Cart total must equal subtotal - discount + tax + shipping"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id, tax_rate=18.0):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            tax_rate=tax_rate,
            totals=CartTotals(),
            created_at=now,
            last_updated=now,
        )

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    @property
    def discount(self) -> Discount:
        return Discount(
            value=self.discount_value or 0.0,
            type=DiscountType(self.discount_type),
            code=self.discount_code,
        )

    def compute_totals(self) -> Totals:
        return compute_totals(self.items, self.discount, self.tax_rate, self.shipping_cost)

    def recalculate(self):
        """Re-derive the cached totals. Safe to call any number of times."""
        self.totals = CartTotals(**self.compute_totals().to_dict())
        self.last_updated = datetime.now(UTC)

    def summary(self) -> dict:
        t = self.totals or CartTotals()
        return {
            "item_count": t.item_count,
            "subtotal": t.subtotal,
            "discount": t.discount_amount,
            "tax": t.tax_amount,
            "shipping": t.shipping_cost,
            "total": t.total,
        }

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def find_item(self, product_id, variant=None):
        key = (str(product_id), variant_key(variant))
        return next((item for item in self.items if item.line_key == key), None)

    def add_item(self, product_id, quantity, unit_price, variant=None):
        """Add a line, or merge the quantity into the line with the same identity."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if unit_price is None or unit_price < 0:
            raise ValidationError({"unit_price": ["Unit price cannot be negative"]})

        variant = to_variant(variant)
        now = datetime.now(UTC)
        existing = self.find_item(product_id, variant)

        if existing:
            existing.quantity += quantity
            existing.added_at = now
            line_quantity = existing.quantity
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    variant=variant,
                    quantity=quantity,
                    unit_price=unit_price,
                    added_at=now,
                )
            )
            line_quantity = quantity

        self.recalculate()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=line_quantity,
                unit_price=existing.unit_price if existing else unit_price,
                cart_total=self.totals.total,
                **_variant_fields(variant),
            )
        )

    def update_item_quantity(self, product_id, quantity, variant=None):
        """Set a line's quantity. A quantity of zero or less removes the line."""
        if quantity is None:
            raise ValidationError({"quantity": ["Quantity is required"]})
        if quantity <= 0:
            self.remove_item(product_id, variant)
            return

        variant = to_variant(variant)
        item = self.find_item(product_id, variant)
        if item is None:
            return

        previous_quantity = item.quantity
        item.quantity = quantity
        item.added_at = datetime.now(UTC)
        self.recalculate()

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
                cart_total=self.totals.total,
                **_variant_fields(variant),
            )
        )

    def remove_item(self, product_id, variant=None):
        """Remove the line with this identity. Removing an absent line is a no-op."""
        variant = to_variant(variant)
        item = self.find_item(product_id, variant)
        if item is None:
            self.recalculate()
            return

        self.remove_items(item)
        self.recalculate()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
                cart_total=self.totals.total,
                **_variant_fields(variant),
            )
        )

    def clear(self):
        """Empty the cart. Discount and shipping policy are kept."""
        removed = list(self.items)
        for item in removed:
            self.remove_items(item)
        self.recalculate()

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                removed_count=len(removed),
            )
        )

    # -------------------------------------------------------------------
    # Pricing policy
    # -------------------------------------------------------------------
    def apply_discount(self, code, amount, discount_type=DiscountType.FIXED.value):
        if amount is None or amount < 0:
            raise ValidationError({"amount": ["Discount amount cannot be negative"]})
        try:
            discount_type = DiscountType(discount_type).value
        except ValueError:
            raise ValidationError({"discount_type": [f"Unknown discount type: {discount_type}"]}) from None

        self.discount_code = code
        self.discount_type = discount_type
        self.discount_value = amount
        self.recalculate()

        self.raise_(
            CartDiscountApplied(
                cart_id=str(self.id),
                code=code,
                discount_type=discount_type,
                value=amount,
                discount_amount=self.totals.discount_amount,
            )
        )

    def remove_discount(self):
        code = self.discount_code
        self.discount_code = None
        self.discount_value = 0.0
        self.discount_type = DiscountType.FIXED.value
        self.recalculate()

        self.raise_(CartDiscountRemoved(cart_id=str(self.id), code=code))

    def set_shipping(self, method, cost):
        if cost is None or cost < 0:
            raise ValidationError({"shipping_cost": ["Shipping cost cannot be negative"]})
        try:
            method = ShippingMethod(method).value
        except ValueError:
            raise ValidationError({"shipping_method": [f"Unknown shipping method: {method}"]}) from None

        self.shipping_method = method
        self.shipping_cost = cost
        self.recalculate()
        self._shipping_updated()

    def set_shipping_address(self, address):
        if isinstance(address, dict):
            address = Address(**address)
        self.shipping_address = address
        self.last_updated = datetime.now(UTC)
        self._shipping_updated()

    def _shipping_updated(self):
        self.raise_(
            CartShippingUpdated(
                cart_id=str(self.id),
                shipping_method=self.shipping_method,
                shipping_cost=self.shipping_cost,
                pincode=self.shipping_address.pincode if self.shipping_address else None,
            )
        )
