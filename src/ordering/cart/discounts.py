"""Cart discount policy: commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import load_or_create_cart
from ordering.domain import ordering
from ordering.pricing import DiscountType


@ordering.command(part_of="ShoppingCart")
class ApplyCartDiscount:
    """Set a percentage or fixed discount on the customer's cart."""

    customer_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    amount = Float(required=True, min_value=0.0)
    discount_type = String(choices=DiscountType, default=DiscountType.FIXED.value)


@ordering.command(part_of="ShoppingCart")
class RemoveCartDiscount:
    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class CartDiscountHandler:
    @handle(ApplyCartDiscount)
    def apply_discount(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.apply_discount(
            code=command.code,
            amount=command.amount,
            discount_type=command.discount_type,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(RemoveCartDiscount)
    def remove_discount(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.remove_discount()
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)
