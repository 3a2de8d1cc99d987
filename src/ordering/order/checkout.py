"""Checkout: converts a customer's cart into an order.

The cart only says *what* the customer wants. Prices, availability and
totals are read again from the catalogue and recomputed, so a stale or
tampered cart cannot set the price of an order.

Cash-on-delivery and bank-transfer orders take stock at placement with a
conditional decrement and clear the cart straight away. Gateway-paid
orders keep the cart and take stock only once the payment is confirmed.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShippingMethod
from ordering.cart.management import ClearCart, find_cart_for_customer
from ordering.catalogue import get_catalogue
from ordering.catalogue.stock import restore_stock, take_stock
from ordering.config import get_store_config
from ordering.domain import ordering
from ordering.locking import cart_locks
from ordering.order.order import Order, PaymentMethod
from ordering.pricing import Discount, DiscountType

logger = structlog.get_logger(__name__)

STOCK_AT_PLACEMENT = frozenset({PaymentMethod.COD, PaymentMethod.BANK_TRANSFER})


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    contact = Text(required=True)  # JSON: {name, email, phone}
    items = Text(required=True)  # JSON: list of repriced line dicts
    shipping_address = Text(required=True)  # JSON: address dict
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    shipping_cost = Float(default=0.0, min_value=0.0)
    tax_rate = Float(required=True, min_value=0.0)
    discount_code = String(max_length=50)
    discount_type = String(choices=DiscountType, default=DiscountType.FIXED.value)
    discount_value = Float(default=0.0, min_value=0.0)
    payment_method = String(required=True, choices=PaymentMethod)
    currency = String(max_length=3, default="INR")
    customer_notes = Text()
    inventory_committed = Boolean(default=False)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.place(
            customer_id=command.customer_id,
            contact=json.loads(command.contact),
            items_data=json.loads(command.items),
            discount=Discount(
                value=command.discount_value or 0.0,
                type=DiscountType(command.discount_type),
                code=command.discount_code,
            ),
            tax_rate=command.tax_rate,
            shipping_cost=command.shipping_cost or 0.0,
            payment_method=command.payment_method,
            shipping_address=json.loads(command.shipping_address),
            shipping_method=command.shipping_method,
            currency=command.currency or "INR",
            customer_notes=command.customer_notes,
        )
        if command.inventory_committed:
            order.mark_inventory_committed()

        current_domain.repository_for(Order).add(order)
        return str(order.id)


def reprice_lines(cart_items, catalogue) -> list[dict]:
    """Build order lines from cart lines using current catalogue data.

    Raises:
        ObjectNotFoundError: if a product no longer exists.
        ValidationError: if a product is inactive or short of stock.
    """
    lines = []
    for item in cart_items:
        product = catalogue.find_product(str(item.product_id))
        if not product.is_active:
            raise ValidationError({"items": [f"{product.name} is no longer available"]})
        if product.stock_quantity < item.quantity:
            raise ValidationError(
                {"items": [f"Insufficient stock for {product.name}: {product.stock_quantity} available"]}
            )
        lines.append(
            {
                "product_id": product.product_id,
                "name": product.name,
                "quantity": item.quantity,
                "unit_price": product.price,
                "variant": item.variant.to_dict() if item.variant else None,
            }
        )
    return lines


def place_order(
    customer_id,
    contact: dict,
    payment_method: str,
    shipping_address: dict | None = None,
    customer_notes: str | None = None,
    catalogue=None,
) -> str:
    """Place an order from the customer's cart and return the new order id."""
    catalogue = catalogue or get_catalogue()
    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unknown payment method: {payment_method}"]}) from None

    with cart_locks.hold(customer_id):
        cart = find_cart_for_customer(customer_id)
        if cart is None:
            raise ObjectNotFoundError(f"Customer `{customer_id}` has no cart")
        if not cart.items:
            raise ValidationError({"cart": ["Cannot place an order from an empty cart"]})

        if shipping_address is None and cart.shipping_address is not None:
            shipping_address = cart.shipping_address.to_dict()
        if not shipping_address:
            raise ValidationError({"shipping_address": ["A shipping address is required"]})

        lines = reprice_lines(cart.items, catalogue)
        commit_stock = method in STOCK_AT_PLACEMENT
        if commit_stock:
            take_stock(lines, catalogue)

        command = PlaceOrder(
            customer_id=customer_id,
            contact=json.dumps(contact),
            items=json.dumps(lines),
            shipping_address=json.dumps(shipping_address),
            shipping_method=cart.shipping_method,
            shipping_cost=cart.shipping_cost or 0.0,
            tax_rate=cart.tax_rate,
            discount_code=cart.discount_code,
            discount_type=cart.discount_type,
            discount_value=cart.discount_value or 0.0,
            payment_method=method.value,
            currency=get_store_config().currency,
            customer_notes=customer_notes,
            inventory_committed=commit_stock,
        )
        try:
            order_id = current_domain.process(command, asynchronous=False)
        except Exception:
            if commit_stock:
                restore_stock(lines, catalogue)
            raise

        if commit_stock:
            current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)

    logger.info(
        "Order placed",
        order_id=order_id,
        customer_id=str(customer_id),
        payment_method=method.value,
        inventory_committed=commit_stock,
    )
    return order_id
