"""Cart lookup and lifecycle: customer-keyed access, get-or-create, clear."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.config import get_store_config
from ordering.domain import ordering


def find_cart_for_customer(customer_id) -> ShoppingCart | None:
    """Return the customer's cart, or ``None`` if they have never used one."""
    repo = current_domain.repository_for(ShoppingCart)
    matches = repo._dao.query.filter(customer_id=str(customer_id)).all().items
    if not matches:
        return None
    return repo.get(matches[0].id)


def load_or_create_cart(customer_id) -> ShoppingCart:
    """Fetch the customer's cart, creating an empty one on first use."""
    cart = find_cart_for_customer(customer_id)
    if cart is None:
        cart = ShoppingCart.create(
            customer_id=customer_id,
            tax_rate=get_store_config().tax_rate_percent,
        )
    return cart


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    """Remove every line from the customer's cart."""

    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_or_create_cart(command.customer_id)
        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)
