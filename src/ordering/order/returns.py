"""Order returns: command and handler.

Marking an order returned does not refund it; refunds are issued
separately through the payment reconciler.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.lifecycle import assert_can_transition
from ordering.order.order import Order, OrderState


@ordering.command(part_of="Order")
class ReturnOrder:
    """Record that the customer has sent the order back."""

    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    actor = String(max_length=100, default="admin")


@ordering.command_handler(part_of=Order)
class ReturnOrderHandler:
    @handle(ReturnOrder)
    def return_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        assert_can_transition(order, OrderState.RETURNED)
        order.mark_returned(reason=command.reason, actor=command.actor or "admin")
        repo.add(order)
