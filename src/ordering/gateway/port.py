"""Payment gateway port (abstract interface).

Adapters talk to the gateway in its wire format (amounts in paise) and
hand results back in rupees, so minor units never reach the order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class InitiationResult:
    """A payment page opened with the gateway."""

    payment_url: str
    transaction_id: str
    merchant_transaction_id: str


@dataclass(frozen=True)
class GatewayStatus:
    """The gateway's view of a payment. ``amount`` is in rupees."""

    merchant_transaction_id: str
    state: str
    amount: float | None = None
    transaction_id: str | None = None
    response_code: str | None = None
    response_message: str | None = None


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    status: str
    message: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface.

    Every method blocks until the gateway answers or the adapter's timeout
    expires, and raises ``UpstreamProviderError`` on any failure.
    """

    @abstractmethod
    def initiate(self, payload: dict) -> InitiationResult:
        """Open a payment page for a prepared pay request body."""
        ...

    @abstractmethod
    def verify_status(self, merchant_transaction_id: str) -> GatewayStatus:
        """Ask the gateway for the current state of a payment."""
        ...

    @abstractmethod
    def refund(self, merchant_transaction_id: str, amount: float, reason: str) -> RefundResult:
        """Refund ``amount`` rupees of a completed payment."""
        ...
