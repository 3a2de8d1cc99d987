"""Payment reconciliation: initiation, webhooks, verification and refunds.

The gateway reports payment outcomes asynchronously and may deliver the
same callback several times, concurrently, or out of order. Every outcome
is therefore applied through ``ReconcilePayment`` under the order's lock,
and side effects (emails, stock, cart) are dispatched only by the caller
that actually applied the outcome.

Amounts cross the gateway boundary in paise and are converted to rupees
here; nothing below this module sees minor units.
"""

from dataclasses import replace
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.cart.management import ClearCart
from ordering.catalogue import get_catalogue
from ordering.catalogue.port import CatalogueService
from ordering.catalogue.stock import take_stock
from ordering.config import GatewayConfig
from ordering.errors import AuthenticationFailed
from ordering.gateway import get_gateway
from ordering.gateway.port import InitiationResult, PaymentGateway, RefundResult
from ordering.locking import cart_locks, order_locks, process_serialized
from ordering.notifications import get_notifier
from ordering.notifications.service import NotificationService
from ordering.order.order import (
    TERMINAL_PAYMENT_STATES,
    Order,
    OrderState,
    PaymentMethod,
    PaymentState,
)
from ordering.order.payment import (
    MarkInventoryCommitted,
    Outcome,
    ReconcilePayment,
    ReconciliationOutcome,
    RecordPaymentInitiated,
    RecordRefund,
)
from ordering.payment.checksum import CHECKSUM_FIELD, verify_checksum
from ordering.pricing import from_minor_units, to_minor_units

logger = structlog.get_logger(__name__)

PAYMENT_STATUS_MAPPING = {
    "COMPLETED": PaymentState.COMPLETED,
    "SUCCESS": PaymentState.COMPLETED,
    "PAYMENT_SUCCESS": PaymentState.COMPLETED,
    "FAILED": PaymentState.FAILED,
    "DECLINED": PaymentState.FAILED,
    "PAYMENT_ERROR": PaymentState.FAILED,
    "PAYMENT_DECLINED": PaymentState.FAILED,
    "PAYMENT_CANCELLED": PaymentState.FAILED,
    "PENDING": PaymentState.PENDING,
    "PAYMENT_PENDING": PaymentState.PENDING,
}

# Returned to untrusted callers instead of the real reason
AUTHENTICATION_FAILED_MESSAGE = "Invalid callback"


def map_gateway_state(state: str | None) -> PaymentState:
    """Translate a gateway state code into a payment state.

    Unknown codes are treated as pending so they never finalize a payment.
    """
    mapped = PAYMENT_STATUS_MAPPING.get((state or "").upper())
    if mapped is None:
        logger.warning("Unknown gateway payment state", state=state)
        return PaymentState.PENDING
    return mapped


class PaymentReconciler:
    def __init__(
        self,
        config: GatewayConfig,
        gateway: PaymentGateway | None = None,
        catalogue: CatalogueService | None = None,
        notifier: NotificationService | None = None,
    ) -> None:
        self.config = config
        self.gateway = gateway or get_gateway()
        self.catalogue = catalogue or get_catalogue()
        self.notifier = notifier or get_notifier()

    # -------------------------------------------------------------------
    # Initiation
    # -------------------------------------------------------------------
    def build_pay_request(self, order, redirect_url: str | None = None) -> dict:
        """Shape the gateway's pay request for ``order``."""
        payload = {
            "merchantId": self.config.merchant_id,
            "merchantTransactionId": str(order.id),
            "merchantUserId": order.contact.email,
            "amount": to_minor_units(order.pricing.total),
            "redirectUrl": redirect_url or self.config.redirect_url,
            "redirectMode": "POST",
            "callbackUrl": self.config.callback_url,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        if order.contact.phone:
            payload["mobileNumber"] = order.contact.phone
        return payload

    def initiate_payment(self, order_id, redirect_url: str | None = None) -> InitiationResult:
        """Open a payment page for a pending order.

        The payment is marked as processing only after the gateway has
        answered; if the gateway call fails the order is left untouched.
        """
        repo = current_domain.repository_for(Order)
        with order_locks.hold(order_id):
            order = repo.get(order_id)
            _check_payable(order)

            result = self.gateway.initiate(self.build_pay_request(order, redirect_url))
            current_domain.process(
                RecordPaymentInitiated(
                    order_id=str(order.id),
                    transaction_id=result.transaction_id or result.merchant_transaction_id,
                ),
                asynchronous=False,
            )

        logger.info(
            "Payment initiated",
            order_id=str(order_id),
            merchant_transaction_id=result.merchant_transaction_id,
            amount=order.pricing.total,
        )
        return result

    # -------------------------------------------------------------------
    # Webhooks and verification
    # -------------------------------------------------------------------
    def authenticate(self, payload: dict) -> None:
        """Reject callbacks that were not signed by the gateway for this merchant.

        Without merchant credentials nothing can be verified, so every
        callback is rejected.
        """
        if not self.config.is_configured:
            logger.error(
                "Payment callback rejected: gateway credentials are not configured",
                merchant_transaction_id=payload.get("merchantTransactionId"),
            )
            raise AuthenticationFailed(AUTHENTICATION_FAILED_MESSAGE)

        checksum = payload.get(CHECKSUM_FIELD)
        if not checksum or not verify_checksum(payload, checksum, self.config.salt_key, self.config.salt_index):
            logger.warning(
                "Payment callback rejected: checksum mismatch",
                merchant_transaction_id=payload.get("merchantTransactionId"),
            )
            raise AuthenticationFailed(AUTHENTICATION_FAILED_MESSAGE)

        if payload.get("merchantId") != self.config.merchant_id:
            logger.warning(
                "Payment callback rejected: merchant mismatch",
                merchant_transaction_id=payload.get("merchantTransactionId"),
            )
            raise AuthenticationFailed(AUTHENTICATION_FAILED_MESSAGE)

    def handle_webhook(self, payload: dict) -> ReconciliationOutcome:
        self.authenticate(payload)

        merchant_transaction_id = payload.get("merchantTransactionId")
        if not merchant_transaction_id:
            raise ValidationError({"merchantTransactionId": ["is required"]})

        amount = payload.get("amount")
        return self.reconcile(
            merchant_transaction_id,
            state=payload.get("paymentState") or payload.get("state"),
            amount=from_minor_units(amount) if amount is not None else None,
            gateway_transaction_id=payload.get("transactionId"),
            response_code=payload.get("responseCode"),
            response_message=payload.get("responseMessage"),
        )

    def verify_payment(self, order_id) -> ReconciliationOutcome:
        """Ask the gateway for the payment's state and apply it."""
        # Unknown orders fail before the gateway is asked
        current_domain.repository_for(Order).get(order_id)

        status = self.gateway.verify_status(str(order_id))
        return self.reconcile(
            str(order_id),
            state=status.state,
            amount=status.amount,
            gateway_transaction_id=status.transaction_id,
            response_code=status.response_code,
            response_message=status.response_message,
        )

    def reconcile(
        self,
        merchant_transaction_id: str,
        state: str | None,
        amount: float | None = None,
        gateway_transaction_id: str | None = None,
        response_code: str | None = None,
        response_message: str | None = None,
    ) -> ReconciliationOutcome:
        """Apply a gateway-reported outcome to the order, then dispatch its side effects."""
        status = map_gateway_state(state)
        outcome = process_serialized(
            order_locks,
            merchant_transaction_id,
            ReconcilePayment(
                order_id=merchant_transaction_id,
                status=status.value,
                gateway_transaction_id=gateway_transaction_id,
                amount=amount,
                response_code=response_code,
                response_message=response_message,
            ),
        )

        logger.info(
            "Payment reconciled",
            order_id=outcome.order_id,
            outcome=outcome.outcome.value,
            payment_status=outcome.payment_status,
            order_status=outcome.order_status,
        )
        if outcome.outcome == Outcome.APPLIED:
            self._dispatch(outcome)
        return outcome

    def _dispatch(self, outcome: ReconciliationOutcome) -> None:
        order = current_domain.repository_for(Order).get(outcome.order_id)

        if outcome.payment_status == PaymentState.COMPLETED.value:
            self._notify(self.notifier.notify_payment_success, order)
        else:
            self._notify(self.notifier.notify_payment_failure, order)

        if not outcome.confirmed:
            return

        try:
            take_stock(outcome.lines, self.catalogue)
        except Exception as exc:
            logger.error(
                "Stock could not be taken for a paid order; manual intervention required",
                order_id=outcome.order_id,
                error=str(exc),
            )
        else:
            process_serialized(order_locks, outcome.order_id, MarkInventoryCommitted(order_id=outcome.order_id))

        try:
            process_serialized(cart_locks, outcome.customer_id, ClearCart(customer_id=outcome.customer_id))
        except Exception as exc:
            logger.error("Cart could not be cleared after payment", customer_id=outcome.customer_id, error=str(exc))

    def _notify(self, send, order) -> None:
        try:
            send(order)
        except Exception as exc:
            logger.error(
                "Payment notification failed",
                order_id=str(order.id),
                notification=send.__name__,
                error=str(exc),
            )

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    def refund(self, order_id, amount: float, reason: str = "Customer requested refund") -> RefundResult:
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than zero"]})

        repo = current_domain.repository_for(Order)
        with order_locks.hold(order_id):
            order = repo.get(order_id)
            if order.payment_state != PaymentState.COMPLETED:
                raise ValidationError({"payment": ["Only completed payments can be refunded"]})

            paid = order.payment.gateway_amount
            if paid is None:
                paid = order.pricing.total
            refundable = round(paid - (order.payment.refund_amount or 0.0), 2)
            if round(amount, 2) > refundable:
                raise ValidationError({"amount": [f"Refund amount exceeds the refundable {refundable:.2f}"]})

            result = self.gateway.refund(str(order.id), amount, reason)
            # The money has moved; from here on nothing may raise.
            if not result.refund_id:
                result = replace(result, refund_id=f"REF-{uuid4().hex[:16].upper()}")
                logger.warning(
                    "Gateway did not return a refund id",
                    order_id=str(order.id),
                    refund_id=result.refund_id,
                )
            try:
                current_domain.process(
                    RecordRefund(
                        order_id=str(order.id),
                        refund_id=result.refund_id,
                        amount=amount,
                        refund_state=result.status or "PENDING",
                        reason=reason[:500] if reason else reason,
                    ),
                    asynchronous=False,
                )
            except Exception as exc:
                logger.error(
                    "Refund issued but not recorded, reconcile manually",
                    order_id=str(order.id),
                    refund_id=result.refund_id,
                    amount=amount,
                    error=str(exc),
                )
                return result

        logger.info("Refund recorded", order_id=str(order_id), refund_id=result.refund_id, amount=amount)
        return result


def _check_payable(order) -> None:
    if order.payment.method != PaymentMethod.PHONEPE.value:
        raise ValidationError({"payment_method": [f"Order is paid by {order.payment.method}"]})
    if order.state != OrderState.PENDING:
        raise ValidationError({"status": [f"Cannot pay for an order that is {order.status}"]})
    if order.payment_state in TERMINAL_PAYMENT_STATES:
        raise ValidationError({"payment": [f"Payment is already {order.payment.status}"]})
    if order.pricing.total <= 0:
        raise ValidationError({"amount": ["Order total must be greater than zero"]})


_current_reconciler: PaymentReconciler | None = None


def get_reconciler() -> PaymentReconciler:
    """Return the reconciler built from the environment (singleton)."""
    global _current_reconciler
    if _current_reconciler is None:
        _current_reconciler = PaymentReconciler(GatewayConfig.from_env())
    return _current_reconciler


def set_reconciler(reconciler: PaymentReconciler) -> None:
    global _current_reconciler
    _current_reconciler = reconciler


def reset_reconciler() -> None:
    global _current_reconciler
    _current_reconciler = None
