"""PhonePe payment gateway adapter.

Speaks the PhonePe PG v1 HTTP API with ``requests``. Request bodies are
sent as ``{"request": <base64 JSON>}`` and signed in the ``X-VERIFY``
header; see ``ordering.payment.checksum`` for the signing scheme.
"""

import requests
import structlog

from ordering.config import GatewayConfig
from ordering.errors import UpstreamProviderError
from ordering.gateway.port import GatewayStatus, InitiationResult, PaymentGateway, RefundResult
from ordering.payment.checksum import (
    PAY_ENDPOINT,
    REFUND_ENDPOINT,
    encode_payload,
    path_checksum,
    request_checksum,
)
from ordering.pricing import from_minor_units, to_minor_units

logger = structlog.get_logger(__name__)

PROVIDER = "phonepe"


class PhonePeGateway(PaymentGateway):
    def __init__(self, config: GatewayConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session or requests.Session()

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    def _post_signed(self, endpoint: str, payload: dict) -> dict:
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": request_checksum(payload, endpoint, self.config.salt_key, self.config.salt_index),
        }
        return self._send("POST", endpoint, headers=headers, json={"request": encode_payload(payload)})

    def _send(self, method: str, endpoint: str, **kwargs) -> dict:
        url = f"{self.config.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, timeout=self.config.timeout_seconds, **kwargs)
        except requests.Timeout as exc:
            logger.warning("Payment gateway timed out", endpoint=endpoint)
            raise UpstreamProviderError(PROVIDER, "Request timed out") from exc
        except requests.RequestException as exc:
            logger.warning("Payment gateway unreachable", endpoint=endpoint, error=str(exc))
            raise UpstreamProviderError(PROVIDER, "Gateway unreachable") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or not body.get("success"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning(
                "Payment gateway rejected request",
                endpoint=endpoint,
                status_code=response.status_code,
                code=body.get("code"),
            )
            raise UpstreamProviderError(PROVIDER, message, status_code=response.status_code)

        return body.get("data") or {}

    # -------------------------------------------------------------------
    # PaymentGateway
    # -------------------------------------------------------------------
    def initiate(self, payload: dict) -> InitiationResult:
        data = self._post_signed(PAY_ENDPOINT, payload)
        try:
            payment_url = data["instrumentResponse"]["redirectInfo"]["url"]
        except (KeyError, TypeError) as exc:
            raise UpstreamProviderError(PROVIDER, "Response did not include a payment URL") from exc

        return InitiationResult(
            payment_url=payment_url,
            transaction_id=data.get("transactionId") or "",
            merchant_transaction_id=data.get("merchantTransactionId") or payload["merchantTransactionId"],
        )

    def verify_status(self, merchant_transaction_id: str) -> GatewayStatus:
        path = f"/pg/v1/status/{self.config.merchant_id}/{merchant_transaction_id}"
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": path_checksum(path, self.config.salt_key, self.config.salt_index),
            "X-MERCHANT-ID": self.config.merchant_id,
        }
        data = self._send("GET", path, headers=headers)
        amount = data.get("amount")

        return GatewayStatus(
            merchant_transaction_id=data.get("merchantTransactionId") or merchant_transaction_id,
            state=data.get("paymentState") or data.get("state") or "PAYMENT_PENDING",
            amount=from_minor_units(amount) if amount is not None else None,
            transaction_id=data.get("transactionId"),
            response_code=data.get("responseCode"),
            response_message=data.get("responseMessage"),
        )

    def refund(self, merchant_transaction_id: str, amount: float, reason: str) -> RefundResult:
        payload = {
            "merchantId": self.config.merchant_id,
            "merchantTransactionId": merchant_transaction_id,
            "amount": to_minor_units(amount),
            "refundNote": reason,
        }
        data = self._post_signed(REFUND_ENDPOINT, payload)
        return RefundResult(
            refund_id=data.get("refundId") or data.get("transactionId") or "",
            status=data.get("refundState") or "PENDING",
            message=data.get("message"),
        )
