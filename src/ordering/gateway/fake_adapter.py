"""Configurable fake payment gateway for development and testing.

Simulates the gateway without network calls. It can be told to fail, and
``set_status`` controls what ``verify_status`` reports for a transaction.
"""

from uuid import uuid4

from ordering.errors import UpstreamProviderError
from ordering.gateway.port import GatewayStatus, InitiationResult, PaymentGateway, RefundResult
from ordering.pricing import from_minor_units


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.statuses: dict[str, GatewayStatus] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def set_status(
        self,
        merchant_transaction_id: str,
        state: str,
        amount_minor: int | None = None,
        response_code: str | None = None,
    ) -> None:
        self.statuses[str(merchant_transaction_id)] = GatewayStatus(
            merchant_transaction_id=str(merchant_transaction_id),
            state=state,
            amount=from_minor_units(amount_minor) if amount_minor is not None else None,
            transaction_id=f"T{uuid4().hex[:16].upper()}",
            response_code=response_code or state,
            response_message=state.replace("_", " ").title(),
        )

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise UpstreamProviderError("fake-gateway", self.failure_reason)

    def initiate(self, payload: dict) -> InitiationResult:
        self.calls.append({"method": "initiate", "payload": payload})
        self._fail_if_configured()

        merchant_transaction_id = str(payload["merchantTransactionId"])
        return InitiationResult(
            payment_url=f"https://pay.example.test/{merchant_transaction_id}",
            transaction_id=f"T{uuid4().hex[:16].upper()}",
            merchant_transaction_id=merchant_transaction_id,
        )

    def verify_status(self, merchant_transaction_id: str) -> GatewayStatus:
        self.calls.append({"method": "verify_status", "merchant_transaction_id": merchant_transaction_id})
        self._fail_if_configured()

        status = self.statuses.get(str(merchant_transaction_id))
        if status is None:
            return GatewayStatus(merchant_transaction_id=str(merchant_transaction_id), state="PAYMENT_PENDING")
        return status

    def refund(self, merchant_transaction_id: str, amount: float, reason: str) -> RefundResult:
        self.calls.append(
            {
                "method": "refund",
                "merchant_transaction_id": merchant_transaction_id,
                "amount": amount,
                "reason": reason,
            }
        )
        self._fail_if_configured()

        return RefundResult(refund_id=f"fake_ref_{uuid4().hex[:12]}", status="PENDING")
