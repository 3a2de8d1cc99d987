"""Order payment: commands and handler.

These commands are issued by the payment reconciler while it holds the
order's lock. ``ReconcilePayment`` is idempotent: once the payment has a
final status, repeating or contradicting it changes nothing.
"""

from dataclasses import dataclass, field
from enum import Enum

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import TERMINAL_PAYMENT_STATES, Order, OrderState, PaymentState

logger = structlog.get_logger(__name__)


class Outcome(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    PENDING = "pending"


@dataclass(frozen=True)
class ReconciliationOutcome:
    """What a reconciliation did, and what the caller must do after commit."""

    outcome: Outcome
    order_id: str
    payment_status: str
    order_status: str
    confirmed: bool = False
    cancelled: bool = False
    amount_mismatch: bool = False
    lines: list[dict] = field(default_factory=list)
    customer_id: str | None = None


@ordering.command(part_of="Order")
class RecordPaymentInitiated:
    order_id = Identifier(required=True)
    transaction_id = String(required=True, max_length=255)


@ordering.command(part_of="Order")
class ReconcilePayment:
    order_id = Identifier(required=True)
    status = String(required=True, choices=PaymentState)
    gateway_transaction_id = String(max_length=255)
    amount = Float()  # major currency units
    response_code = String(max_length=100)
    response_message = String(max_length=500)


@ordering.command(part_of="Order")
class MarkInventoryCommitted:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RecordRefund:
    order_id = Identifier(required=True)
    refund_id = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.0)
    refund_state = String(required=True, max_length=50)
    reason = String(max_length=500)


def _outcome(order, outcome, **kwargs) -> ReconciliationOutcome:
    return ReconciliationOutcome(
        outcome=outcome,
        order_id=str(order.id),
        payment_status=order.payment.status,
        order_status=order.status,
        customer_id=str(order.customer_id),
        **kwargs,
    )


@ordering.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(RecordPaymentInitiated)
    def record_payment_initiated(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_initiated(transaction_id=command.transaction_id)
        repo.add(order)

    @handle(ReconcilePayment)
    def reconcile_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        incoming = PaymentState(command.status)

        if incoming not in TERMINAL_PAYMENT_STATES:
            return _outcome(order, Outcome.PENDING)

        current = order.payment_state
        if current in TERMINAL_PAYMENT_STATES:
            if current == incoming:
                logger.info("Duplicate payment notification", order_id=str(order.id), status=incoming.value)
                return _outcome(order, Outcome.DUPLICATE)
            logger.warning(
                "Conflicting payment notification ignored",
                order_id=str(order.id),
                recorded_status=current.value,
                incoming_status=incoming.value,
            )
            return _outcome(order, Outcome.IGNORED)

        order.record_payment_result(
            status=incoming,
            gateway_transaction_id=command.gateway_transaction_id,
            amount=command.amount,
            response_code=command.response_code,
            response_message=command.response_message,
        )

        confirmed = cancelled = False
        amount_mismatch = (
            incoming == PaymentState.COMPLETED
            and command.amount is not None
            and round(command.amount, 2) != round(order.pricing.total, 2)
        )
        if amount_mismatch:
            logger.warning(
                "Paid amount differs from order total, review required",
                order_id=str(order.id),
                paid=command.amount,
                order_total=order.pricing.total,
            )

        if order.state != OrderState.PENDING:
            # Payment is recorded but the lifecycle has already moved on
            logger.warning(
                "Payment result for an order that is no longer pending",
                order_id=str(order.id),
                order_status=order.status,
                payment_status=incoming.value,
                refund_required=incoming == PaymentState.COMPLETED,
            )
        elif incoming == PaymentState.COMPLETED:
            note = "Payment completed"
            if amount_mismatch:
                note = (
                    f"Payment completed with {command.amount:.2f} against a total of "
                    f"{order.pricing.total:.2f}; review required"
                )
            order.transition(OrderState.CONFIRMED, note=note, actor="payment-gateway")
            confirmed = True
        else:
            order.cancel(
                reason=f"Payment failed: {command.response_message or command.response_code or 'declined'}",
                cancelled_by="payment-gateway",
            )
            cancelled = True

        repo.add(order)
        return _outcome(
            order,
            Outcome.APPLIED,
            confirmed=confirmed,
            cancelled=cancelled,
            amount_mismatch=amount_mismatch,
            lines=[{"product_id": str(item.product_id), "quantity": item.quantity} for item in order.items],
        )

    @handle(MarkInventoryCommitted)
    def mark_inventory_committed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.inventory_committed:
            return
        order.mark_inventory_committed()
        repo.add(order)

    @handle(RecordRefund)
    def record_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_refund(
            refund_id=command.refund_id,
            amount=command.amount,
            refund_state=command.refund_state,
            reason=command.reason,
        )
        repo.add(order)
