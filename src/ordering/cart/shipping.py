"""Cart shipping method and address: commands and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShippingMethod, ShoppingCart
from ordering.cart.management import load_or_create_cart
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class SetCartShipping:
    customer_id = Identifier(required=True)
    method = String(required=True, choices=ShippingMethod)
    cost = Float(required=True, min_value=0.0)


@ordering.command(part_of="ShoppingCart")
class SetCartShippingAddress:
    customer_id = Identifier(required=True)
    address = Text(required=True)  # JSON: address dict


@ordering.command_handler(part_of=ShoppingCart)
class CartShippingHandler:
    @handle(SetCartShipping)
    def set_shipping(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.set_shipping(method=command.method, cost=command.cost)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(SetCartShippingAddress)
    def set_shipping_address(self, command):
        address = json.loads(command.address) if isinstance(command.address, str) else command.address
        cart = load_or_create_cart(command.customer_id)
        cart.set_shipping_address(address)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)
