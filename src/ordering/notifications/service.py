"""Payment notifications sent to customers and the store admin.

Notifications are fire-and-forget: a delivery failure is logged and never
propagated to the payment flow that triggered it.
"""

from abc import ABC, abstractmethod

import structlog

from ordering.notifications.email_port import EmailPort

logger = structlog.get_logger(__name__)


class NotificationService(ABC):
    @abstractmethod
    def notify_payment_success(self, order) -> None: ...

    @abstractmethod
    def notify_payment_failure(self, order) -> None: ...


def _order_lines(order) -> str:
    return "\n".join(f"  {item.name} x {item.quantity} @ {item.unit_price:.2f}" for item in order.items)


class EmailNotificationService(NotificationService):
    def __init__(self, email: EmailPort, admin_email: str) -> None:
        self.email = email
        self.admin_email = admin_email

    def _send(self, to: str, subject: str, body: str, order) -> None:
        result = self.email.send(to=to, subject=subject, body=body)
        if result.get("status") != "sent":
            logger.error(
                "Notification email not delivered",
                order_id=str(order.id),
                subject=subject,
                error=result.get("error"),
            )
            return
        logger.info("Notification email sent", order_id=str(order.id), subject=subject)

    def notify_payment_success(self, order) -> None:
        number = order.order_number
        total = f"{order.pricing.total:.2f} {order.pricing.currency}"

        self._send(
            order.contact.email,
            f"Payment Confirmation - Order {number}",
            (
                f"Hi {order.contact.name},\n\n"
                f"We have received your payment of {total} for order {number}.\n\n"
                f"{_order_lines(order)}\n\n"
                "We will let you know as soon as it ships."
            ),
            order,
        )
        self._send(
            self.admin_email,
            f"New Payment Received - Order {number}",
            (
                f"Order {number} has been paid.\n\n"
                f"Customer: {order.contact.name} <{order.contact.email}>\n"
                f"Amount: {total}\n"
                f"Transaction: {order.payment.gateway_transaction_id or '-'}\n\n"
                f"{_order_lines(order)}"
            ),
            order,
        )

    def notify_payment_failure(self, order) -> None:
        number = order.order_number
        self._send(
            order.contact.email,
            f"Payment Failed - Order {number}",
            (
                f"Hi {order.contact.name},\n\n"
                f"Your payment for order {number} could not be completed"
                f" ({order.payment.response_message or 'declined by the payment provider'}).\n"
                "No amount has been charged. You can place the order again at any time."
            ),
            order,
        )
