import json

import pytest
from ordering.carrier import reset_carrier, set_carrier
from ordering.carrier.fake_adapter import FakeCarrier
from ordering.cart.items import AddToCart
from ordering.cart.shipping import SetCartShippingAddress
from ordering.catalogue import reset_catalogue, set_catalogue
from ordering.catalogue.memory_adapter import InMemoryCatalogue
from ordering.config import GatewayConfig, StoreConfig, reset_store_config, set_store_config
from ordering.gateway import reset_gateway, set_gateway
from ordering.gateway.fake_adapter import FakeGateway
from ordering.notifications import reset_notifier, set_notifier
from ordering.notifications.fake_email import FakeEmailAdapter
from ordering.notifications.service import EmailNotificationService
from ordering.order.checkout import place_order
from ordering.payment.checksum import response_checksum
from ordering.payment.reconciliation import PaymentReconciler, reset_reconciler, set_reconciler
from protean import current_domain
from protean.integrations.pytest import DomainFixture

MERCHANT_ID = "MERCHANTUAT"
SALT_KEY = "099eb0cd-02cf-4e2a-8aca-3e6c6aff0399"
SALT_INDEX = 1

ADDRESS = {
    "label": "home",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
    "country": "India",
}

CONTACT = {"name": "Asha Rao", "email": "asha@example.com", "phone": "9876543210"}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def store_config():
    config = StoreConfig(tax_rate_percent=18.0, admin_email="admin@shop.test", bulk_shipment_batch_delay=0.0)
    set_store_config(config)
    yield config
    reset_store_config()


@pytest.fixture(autouse=True)
def catalogue():
    catalogue = InMemoryCatalogue()
    catalogue.add_product("prod-tee", "Cotton Tee", 500.0, stock_quantity=10)
    catalogue.add_product("prod-mug", "Coffee Mug", 112.0, stock_quantity=5)
    set_catalogue(catalogue)
    yield catalogue
    reset_catalogue()


@pytest.fixture(autouse=True)
def gateway():
    gateway = FakeGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture(autouse=True)
def carrier():
    carrier = FakeCarrier()
    set_carrier(carrier)
    yield carrier
    reset_carrier()


@pytest.fixture(autouse=True)
def email():
    email = FakeEmailAdapter()
    set_notifier(EmailNotificationService(email, "admin@shop.test"))
    yield email
    reset_notifier()


@pytest.fixture()
def gateway_config():
    return GatewayConfig(
        merchant_id=MERCHANT_ID,
        salt_key=SALT_KEY,
        salt_index=SALT_INDEX,
        redirect_url="https://shop.test/payment/return",
        callback_url="https://shop.test/payments/callback",
    )


@pytest.fixture()
def reconciler(gateway_config, gateway, catalogue, email):
    from ordering.notifications import get_notifier

    reconciler = PaymentReconciler(gateway_config, gateway=gateway, catalogue=catalogue, notifier=get_notifier())
    set_reconciler(reconciler)
    yield reconciler
    reset_reconciler()


def _fill_cart(customer_id, items=(("prod-tee", 2, 500.0), ("prod-mug", 1, 112.0)), address=ADDRESS):
    for product_id, quantity, price in items:
        current_domain.process(
            AddToCart(customer_id=customer_id, product_id=product_id, quantity=quantity, unit_price=price),
            asynchronous=False,
        )
    if address:
        current_domain.process(
            SetCartShippingAddress(customer_id=customer_id, address=json.dumps(address)),
            asynchronous=False,
        )


@pytest.fixture()
def fill_cart():
    """Add catalogue products to a customer's cart and set a shipping address."""
    return _fill_cart


@pytest.fixture()
def cod_order():
    """A pending cash-on-delivery order for two tees and a mug (total 1312.16)."""
    _fill_cart("cust-cod")
    return place_order("cust-cod", CONTACT, "cod")


@pytest.fixture()
def phonepe_order():
    """A pending gateway-paid order for two tees and a mug (total 1312.16)."""
    _fill_cart("cust-pay")
    return place_order("cust-pay", CONTACT, "phonepe")


@pytest.fixture()
def signed_callback():
    """Build a gateway callback body signed with the test salt."""

    def _build(order_id, state="COMPLETED", amount=131216, merchant_id=MERCHANT_ID, **extra):
        payload = {
            "merchantId": merchant_id,
            "merchantTransactionId": str(order_id),
            "transactionId": f"T-{order_id}",
            "amount": amount,
            "paymentState": state,
            "responseCode": "SUCCESS" if state == "COMPLETED" else state,
            "responseMessage": "Payment processed",
            **extra,
        }
        payload["checksum"] = response_checksum(payload, SALT_KEY, SALT_INDEX)
        return payload

    return _build
