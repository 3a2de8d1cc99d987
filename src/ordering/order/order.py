"""Order aggregate (CQRS) — an immutable snapshot of a cart plus its lifecycle.

Line items and prices are copied from the cart at checkout and never
re-read from the catalogue. After placement only the lifecycle state,
payment, tracking and notes change.

Lifecycle:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED and RETURNED are reachable from any non-terminal state.
    DELIVERED, CANCELLED and RETURNED are terminal.

``transition()`` records every move in the append-only status history and
does not itself refuse any move; callers check the allowed moves with the
guards in ``ordering.order.lifecycle`` first.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.cart.cart import ShippingMethod
from ordering.domain import ordering
from ordering.errors import InvariantViolation
from ordering.order.events import (
    InventoryCommitted,
    OrderCancelled,
    OrderPlaced,
    OrderReturned,
    OrderStatusChanged,
    PaymentCompleted,
    PaymentFailed,
    PaymentInitiated,
    RefundRecorded,
    TrackingAdded,
)
from ordering.order.numbering import generate_order_number
from ordering.pricing import Discount, DiscountType, Totals, compute_totals
from ordering.shared.address import Address
from ordering.shared.variant import Variant, to_variant

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderState(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


TERMINAL_STATES = frozenset({OrderState.DELIVERED, OrderState.CANCELLED, OrderState.RETURNED})


class PaymentMethod(Enum):
    PHONEPE = "phonepe"
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"


class PaymentState(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PAYMENT_STATES = frozenset({PaymentState.COMPLETED, PaymentState.FAILED})


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Contact:
    """Customer contact details captured at checkout."""

    name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)
    phone = String(max_length=20)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Totals locked at checkout, together with the policy that produced them.

    Keeping the policy next to the amounts lets the totals be re-derived
    from the frozen items at any time.
    """

    item_count = Integer(default=0, min_value=0)
    subtotal = Float(default=0.0, min_value=0.0)
    discount_code = String(max_length=50)
    discount_type = String(choices=DiscountType, default=DiscountType.FIXED.value)
    discount_value = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    tax_rate = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="INR")


@ordering.value_object(part_of="Order")
class PaymentDetails:
    """Payment record for the order.

    Once ``status`` is completed or failed, only the refund fields change.
    """

    method = String(required=True, choices=PaymentMethod)
    status = String(choices=PaymentState, default=PaymentState.PENDING.value)
    transaction_id = String(max_length=255)
    gateway_transaction_id = String(max_length=255)
    gateway_amount = Float()
    response_code = String(max_length=100)
    response_message = String(max_length=500)
    paid_at = DateTime()
    refund_id = String(max_length=255)
    refund_amount = Float()
    refund_state = String(max_length=50)
    refund_reason = String(max_length=500)
    refunded_at = DateTime()


_PAYMENT_FIELDS = (
    "method",
    "status",
    "transaction_id",
    "gateway_transaction_id",
    "gateway_amount",
    "response_code",
    "response_message",
    "paid_at",
    "refund_id",
    "refund_amount",
    "refund_state",
    "refund_reason",
    "refunded_at",
)


@ordering.value_object(part_of="Order")
class Tracking:
    number = String(required=True, max_length=100)
    carrier = String(required=True, max_length=100)
    status = String(max_length=50)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A frozen copy of a cart line, priced from the catalogue at checkout."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    variant = ValueObject(Variant)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)

    @property
    def total(self) -> float:
        return round(self.quantity * self.unit_price, 2)


@ordering.entity(part_of="Order")
class StatusChange:
    """One entry of the append-only status history."""

    sequence = Integer(required=True, min_value=1)
    state = String(required=True, choices=OrderState)
    occurred_at = DateTime(required=True)
    note = String(max_length=500)
    actor = String(max_length=100)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=40)
    customer_id = Identifier(required=True)
    contact = ValueObject(Contact)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    status = String(choices=OrderState, default=OrderState.PENDING.value)
    status_history = HasMany(StatusChange)
    payment = ValueObject(PaymentDetails)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    shipping_address = ValueObject(Address)
    tracking = ValueObject(Tracking)
    actual_delivery = DateTime()
    inventory_committed = Boolean(default=False)
    customer_notes = Text()
    internal_notes = Text()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=100)
    cancelled_at = DateTime()
    return_reason = String(max_length=500)
    returned_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def history_must_end_in_current_status(self):
        history = self.history
        if history and history[-1].state != self.status:
            raise ValidationError(
                {"status_history": [f"Last history entry is {history[-1].state} but status is {self.status}"]}
            )

    @invariant.post
    def pricing_must_balance(self):
        if self.pricing is None:
            return
        p = self.pricing
        expected = round(p.subtotal - p.discount_amount + p.tax_amount + p.shipping_cost, 2)
        if abs(expected - p.total) >= 0.005:
            raise ValidationError({"pricing": ["Order total must equal subtotal - discount + tax + shipping"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        contact,
        items_data,
        discount,
        tax_rate,
        shipping_cost,
        payment_method,
        shipping_address,
        shipping_method=ShippingMethod.STANDARD.value,
        currency="INR",
        customer_notes=None,
        actor="customer",
    ):
        """Create an order from repriced cart lines.

        Totals are computed here from ``items_data`` and the pricing policy;
        nothing computed by the cart is trusted.

        Args:
            items_data: List of dicts with product_id, name, quantity,
                        unit_price and optional variant dict.
            discount: ``pricing.Discount`` carried over from the cart.
        """
        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=item["product_id"],
                name=item["name"],
                variant=to_variant(item.get("variant")),
                quantity=item["quantity"],
                unit_price=item["unit_price"],
            )
            for item in items_data
        ]
        totals = compute_totals(items, discount, tax_rate, shipping_cost)

        if isinstance(contact, dict):
            contact = Contact(**contact)
        if isinstance(shipping_address, dict):
            shipping_address = Address(**shipping_address)

        order = cls(
            order_number=generate_order_number(now),
            customer_id=customer_id,
            contact=contact,
            items=items,
            pricing=_pricing_from(totals, discount, tax_rate, currency),
            status=OrderState.PENDING.value,
            status_history=[
                StatusChange(
                    sequence=1,
                    state=OrderState.PENDING.value,
                    occurred_at=now,
                    note="Order placed",
                    actor=actor,
                )
            ],
            payment=PaymentDetails(method=PaymentMethod(payment_method).value),
            shipping_method=shipping_method,
            shipping_address=shipping_address,
            customer_notes=customer_notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                item_count=totals.item_count,
                total=totals.total,
                currency=currency,
                payment_method=order.payment.method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def history(self) -> list:
        return sorted(self.status_history or [], key=lambda change: change.sequence)

    @property
    def state(self) -> OrderState:
        return OrderState(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def payment_state(self) -> PaymentState:
        return PaymentState(self.payment.status)

    def summary(self) -> dict:
        return {
            "order_number": self.order_number,
            "item_count": self.pricing.item_count,
            "subtotal": self.pricing.subtotal,
            "discount": self.pricing.discount_amount,
            "tax": self.pricing.tax_amount,
            "shipping": self.pricing.shipping_cost,
            "total": self.pricing.total,
            "status": self.status,
            "payment_status": self.payment.status,
        }

    # -------------------------------------------------------------------
    # Totals audit
    # -------------------------------------------------------------------
    def recompute_totals(self) -> Totals:
        """Re-derive totals from the frozen items and the stored policy."""
        p = self.pricing
        discount = Discount(
            value=p.discount_value or 0.0,
            type=DiscountType(p.discount_type),
            code=p.discount_code,
        )
        return compute_totals(self.items, discount, p.tax_rate, p.shipping_cost)

    def audit_totals(self) -> Totals:
        """Compare stored totals with a fresh computation.

        Raises:
            InvariantViolation: if any stored amount disagrees.
        """
        expected = self.recompute_totals()
        stored = {
            "item_count": self.pricing.item_count,
            "subtotal": self.pricing.subtotal,
            "discount_amount": self.pricing.discount_amount,
            "tax_amount": self.pricing.tax_amount,
            "shipping_cost": self.pricing.shipping_cost,
            "total": self.pricing.total,
        }
        mismatched = [name for name, value in expected.to_dict().items() if abs(stored[name] - value) >= 0.005]
        if mismatched:
            logger.error(
                "Stored order totals do not match recomputation",
                order_id=str(self.id),
                fields=mismatched,
            )
            raise InvariantViolation(f"Order {self.order_number} totals disagree on: {', '.join(mismatched)}")
        return expected

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition(self, new_state, note=None, actor="system"):
        """Move to ``new_state`` and append the move to the status history.

        Sets ``actual_delivery`` when entering DELIVERED. No guard is applied.
        """
        new_state = OrderState(new_state)
        previous = self.status
        now = datetime.now(UTC)
        history = self.history
        sequence = history[-1].sequence + 1 if history else 1

        with atomic_change(self):
            self.add_status_history(
                StatusChange(
                    sequence=sequence,
                    state=new_state.value,
                    occurred_at=now,
                    note=note,
                    actor=actor,
                )
            )
            self.status = new_state.value
            if new_state == OrderState.DELIVERED:
                self.actual_delivery = now
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                new_status=new_state.value,
                note=note,
                actor=actor,
                changed_at=now,
            )
        )

    def cancel(self, reason, cancelled_by="customer"):
        now = datetime.now(UTC)
        self.transition(OrderState.CANCELLED, note=reason, actor=cancelled_by)
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                cancelled_by=cancelled_by,
                inventory_committed=bool(self.inventory_committed),
                cancelled_at=now,
            )
        )

    def mark_returned(self, reason, actor="admin"):
        now = datetime.now(UTC)
        self.transition(OrderState.RETURNED, note=reason, actor=actor)
        self.return_reason = reason
        self.returned_at = now

        self.raise_(
            OrderReturned(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                returned_at=now,
            )
        )

    def add_tracking(self, number, carrier, tracking_url=None, estimated_delivery=None):
        self.tracking = Tracking(
            number=number,
            carrier=carrier,
            status="shipped",
            tracking_url=tracking_url,
            estimated_delivery=estimated_delivery,
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            TrackingAdded(
                order_id=str(self.id),
                tracking_number=number,
                carrier=carrier,
                tracking_url=tracking_url,
                estimated_delivery=estimated_delivery,
            )
        )

    def mark_inventory_committed(self):
        self.inventory_committed = True
        self.updated_at = datetime.now(UTC)
        self.raise_(InventoryCommitted(order_id=str(self.id), line_count=len(self.items)))

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def _with_payment(self, **changes):
        values = {name: getattr(self.payment, name) for name in _PAYMENT_FIELDS}
        values.update(changes)
        self.payment = PaymentDetails(**values)
        self.updated_at = datetime.now(UTC)

    def record_payment_initiated(self, transaction_id):
        self._with_payment(status=PaymentState.PROCESSING.value, transaction_id=transaction_id)

        self.raise_(
            PaymentInitiated(
                order_id=str(self.id),
                transaction_id=transaction_id,
                amount=self.pricing.total,
                payment_method=self.payment.method,
            )
        )

    def record_payment_result(
        self,
        status,
        gateway_transaction_id=None,
        amount=None,
        response_code=None,
        response_message=None,
    ):
        """Record the first terminal payment outcome reported by the gateway.

        ``amount`` is in major currency units.
        """
        status = PaymentState(status)
        if status not in TERMINAL_PAYMENT_STATES:
            raise ValidationError({"payment": [f"{status.value} is not a final payment state"]})
        if self.payment_state in TERMINAL_PAYMENT_STATES:
            raise ValidationError({"payment": [f"Payment is already {self.payment.status}"]})

        now = datetime.now(UTC)
        self._with_payment(
            status=status.value,
            gateway_transaction_id=gateway_transaction_id,
            gateway_amount=amount,
            response_code=response_code,
            response_message=response_message,
            paid_at=now if status == PaymentState.COMPLETED else None,
        )

        if status == PaymentState.COMPLETED:
            self.raise_(
                PaymentCompleted(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    gateway_transaction_id=gateway_transaction_id,
                    amount=amount if amount is not None else self.pricing.total,
                    paid_at=now,
                )
            )
        else:
            self.raise_(
                PaymentFailed(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    gateway_transaction_id=gateway_transaction_id,
                    response_code=response_code,
                    reason=response_message,
                )
            )

    def record_refund(self, refund_id, amount, refund_state, reason=None):
        now = datetime.now(UTC)
        self._with_payment(
            refund_id=refund_id,
            refund_amount=round((self.payment.refund_amount or 0.0) + amount, 2),
            refund_state=refund_state,
            refund_reason=reason,
            refunded_at=now,
        )

        self.raise_(
            RefundRecorded(
                order_id=str(self.id),
                refund_id=refund_id,
                amount=amount,
                refund_state=refund_state,
                reason=reason,
            )
        )


def _pricing_from(totals: Totals, discount: Discount, tax_rate, currency) -> OrderPricing:
    return OrderPricing(
        item_count=totals.item_count,
        subtotal=totals.subtotal,
        discount_code=discount.code,
        discount_type=discount.type.value,
        discount_value=discount.value,
        discount_amount=totals.discount_amount,
        tax_rate=tax_rate,
        tax_amount=totals.tax_amount,
        shipping_cost=totals.shipping_cost,
        total=totals.total,
        currency=currency,
    )
