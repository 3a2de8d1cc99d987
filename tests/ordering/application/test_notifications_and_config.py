"""Tests for payment emails, the SMTP adapter and environment configuration."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest
from ordering.config import CarrierConfig, GatewayConfig, GatewayEnvironment, StoreConfig
from ordering.notifications.fake_email import FakeEmailAdapter
from ordering.notifications.service import EmailNotificationService
from ordering.notifications.smtp_email import SmtpEmailAdapter
from ordering.order.order import Order
from protean import current_domain


class TestEmailNotifications:
    def test_success_emails_go_to_customer_and_admin(self, cod_order):
        email = FakeEmailAdapter()
        order = current_domain.repository_for(Order).get(cod_order)

        EmailNotificationService(email, "ops@shop.test").notify_payment_success(order)

        customer, admin = email.sent_emails
        assert customer["to"] == "asha@example.com"
        assert customer["subject"] == f"Payment Confirmation - Order {order.order_number}"
        assert "1312.16 INR" in customer["body"]
        assert "Cotton Tee x 2" in customer["body"]
        assert admin["to"] == "ops@shop.test"
        assert admin["subject"] == f"New Payment Received - Order {order.order_number}"

    def test_delivery_failure_is_not_raised(self, cod_order):
        email = FakeEmailAdapter()
        email.configure(should_succeed=False)
        order = current_domain.repository_for(Order).get(cod_order)

        EmailNotificationService(email, "ops@shop.test").notify_payment_failure(order)

        assert email.sent_emails == []


class TestSmtpEmailAdapter:
    def test_send(self):
        with patch("ordering.notifications.smtp_email.smtplib.SMTP") as smtp_class:
            smtp = smtp_class.return_value.__enter__.return_value
            adapter = SmtpEmailAdapter("smtp.test", username="user", password="pw", sender="shop@shop.test")

            result = adapter.send("asha@example.com", "Hello", "Body")

        assert result["status"] == "sent"
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "pw")
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "asha@example.com"
        assert message["Subject"] == "Hello"

    def test_failure_is_reported(self):
        with patch("ordering.notifications.smtp_email.smtplib.SMTP") as smtp_class:
            smtp_class.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("nope")

            result = SmtpEmailAdapter("smtp.test").send("asha@example.com", "Hello", "Body")

        assert result["status"] == "failed"
        assert result["message_id"] is None


class TestConfigFromEnv:
    def test_gateway_config(self, monkeypatch):
        monkeypatch.setenv("PHONEPE_MERCHANT_ID", "M1")
        monkeypatch.setenv("PHONEPE_SALT_KEY", "k")
        monkeypatch.setenv("PHONEPE_SALT_INDEX", "2")
        monkeypatch.setenv("PHONEPE_ENVIRONMENT", "prod")

        config = GatewayConfig.from_env()

        assert config.merchant_id == "M1"
        assert config.salt_index == 2
        assert config.environment == GatewayEnvironment.PROD
        assert config.timeout_seconds == 10.0

    def test_unknown_gateway_environment(self, monkeypatch):
        monkeypatch.setenv("PHONEPE_ENVIRONMENT", "staging")
        with pytest.raises(ValueError):
            GatewayConfig.from_env()

    def test_carrier_config_defaults(self, monkeypatch):
        for name in ("DELHIVERY_BASE_URL", "COMPANY_PINCODE"):
            monkeypatch.delenv(name, raising=False)

        config = CarrierConfig.from_env()

        assert config.base_url == "https://staging-express.delhivery.com"
        assert config.pickup.pincode == "400001"

    def test_store_config(self, monkeypatch):
        monkeypatch.setenv("STORE_TAX_RATE_PERCENT", "12")
        monkeypatch.setenv("BULK_SHIPMENT_BATCH_SIZE", "10")

        config = StoreConfig.from_env()

        assert config.tax_rate_percent == 12.0
        assert config.bulk_shipment_batch_size == 10
        assert config.bulk_shipment_batch_delay == 1.0

    def test_store_tax_rate_applies_to_new_carts(self, store_config):
        from ordering.cart.management import load_or_create_cart
        from ordering.config import set_store_config

        set_store_config(StoreConfig(tax_rate_percent=5.0))

        assert load_or_create_cart("cust-new").tax_rate == 5.0


def test_mock_notifier_is_called_with_the_order(gateway_config, gateway, catalogue, phonepe_order, signed_callback):
    from ordering.payment.reconciliation import PaymentReconciler

    notifier = MagicMock()
    PaymentReconciler(gateway_config, gateway=gateway, catalogue=catalogue, notifier=notifier).handle_webhook(
        signed_callback(phonepe_order)
    )

    (order,) = notifier.notify_payment_success.call_args.args
    assert str(order.id) == phonepe_order
