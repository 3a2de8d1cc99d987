"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or merged into an existing line."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String()
    variant_option = String()
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)
    unit_price = Float(required=True)
    cart_total = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String()
    variant_option = String()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    cart_total = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String()
    variant_option = String()
    cart_total = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """All lines were removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    removed_count = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartDiscountApplied:
    """A discount policy was set on the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    value = Float(required=True)
    discount_amount = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartDiscountRemoved:
    """The discount policy was cleared from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    code = String()


@ordering.event(part_of="ShoppingCart")
class CartShippingUpdated:
    """The shipping method, cost or address of the cart changed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    shipping_method = String(required=True)
    shipping_cost = Float(required=True)
    pincode = String()
