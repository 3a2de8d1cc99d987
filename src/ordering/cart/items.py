"""Cart item management: commands and handler.

Lines are addressed by product and optional variant, so every command
carries the variant fields alongside the product id.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import load_or_create_cart
from ordering.domain import ordering


def _variant(command) -> dict | None:
    if not command.variant_name and not command.variant_option:
        return None
    return {"name": command.variant_name, "option": command.variant_option}


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)


@ordering.command(part_of="ShoppingCart")
class UpdateCartItemQuantity:
    """Set a line's quantity; zero or less removes the line."""

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            unit_price=command.unit_price,
            variant=_variant(command),
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_cart_item_quantity(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.update_item_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            variant=_variant(command),
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.remove_item(product_id=command.product_id, variant=_variant(command))
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)
