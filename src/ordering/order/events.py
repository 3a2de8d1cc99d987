"""Domain events for the Order aggregate.

Every status, payment and shipment change raises one of these, giving each
order an audit trail alongside its status history.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was created from a customer's cart at checkout."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String(default="INR")
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new lifecycle state."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    actor = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by a customer, an admin or the system."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    inventory_committed = Boolean(default=False)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReturned:
    """A delivered or in-flight order was marked as returned."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    returned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class TrackingAdded:
    """A carrier waybill was attached to the order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    carrier = String(required=True)
    tracking_url = String()
    estimated_delivery = DateTime()


@ordering.event(part_of="Order")
class PaymentInitiated:
    """A payment session was opened with the gateway."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)


@ordering.event(part_of="Order")
class PaymentCompleted:
    """The gateway confirmed the payment."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    gateway_transaction_id = String()
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentFailed:
    """The gateway reported the payment as failed or declined."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    gateway_transaction_id = String()
    response_code = String()
    reason = String()


@ordering.event(part_of="Order")
class RefundRecorded:
    """A refund was issued through the gateway."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    refund_id = String(required=True)
    amount = Float(required=True)
    refund_state = String(required=True)
    reason = String()


@ordering.event(part_of="Order")
class InventoryCommitted:
    """Stock for every line of the order has been taken from the catalogue."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    line_count = Integer(required=True)
