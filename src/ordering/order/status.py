"""Order status and tracking: commands and handler.

Forward lifecycle moves (confirm, process, ship, deliver) go through
``UpdateOrderStatus``; cancellation and returns have their own commands.
"""

from datetime import datetime

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.lifecycle import assert_can_transition
from ordering.order.order import Order, OrderState


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderState)
    note = String(max_length=500)
    actor = String(max_length=100, default="admin")


@ordering.command(part_of="Order")
class AddTracking:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=100)
    carrier = String(required=True, max_length=100)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()


@ordering.command(part_of="Order")
class ShipOrder:
    """Record a booked shipment and move the order to shipped in one step."""

    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=100)
    carrier = String(required=True, max_length=100)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()
    actor = String(max_length=100, default="fulfillment")


def find_order_by_number(order_number) -> Order | None:
    repo = current_domain.repository_for(Order)
    matches = repo._dao.query.filter(order_number=order_number).all().items
    if not matches:
        return None
    return repo.get(matches[0].id)


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = OrderState(command.status)
        if target in (OrderState.CANCELLED, OrderState.RETURNED):
            raise ValidationError({"status": [f"Use the {target.value} operation to move an order to {target.value}"]})

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        assert_can_transition(order, target)
        order.transition(target, note=command.note, actor=command.actor or "admin")
        repo.add(order)
        return order.status

    @handle(AddTracking)
    def add_tracking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.is_terminal:
            raise ValidationError({"status": [f"Cannot add tracking to a {order.status} order"]})
        estimated = command.estimated_delivery
        if isinstance(estimated, str):
            estimated = datetime.fromisoformat(estimated)
        order.add_tracking(
            number=command.tracking_number,
            carrier=command.carrier,
            tracking_url=command.tracking_url,
            estimated_delivery=estimated,
        )
        repo.add(order)

    @handle(ShipOrder)
    def ship_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.state == OrderState.CONFIRMED:
            order.transition(OrderState.PROCESSING, note="Preparing shipment", actor=command.actor)
        assert_can_transition(order, OrderState.SHIPPED)

        order.add_tracking(
            number=command.tracking_number,
            carrier=command.carrier,
            tracking_url=command.tracking_url,
            estimated_delivery=command.estimated_delivery,
        )
        order.transition(
            OrderState.SHIPPED,
            note=f"Shipped with {command.carrier} ({command.tracking_number})",
            actor=command.actor,
        )
        repo.add(order)
        return order.status
