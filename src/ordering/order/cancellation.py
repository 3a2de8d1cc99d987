"""Order cancellation: command, handler and stock restoration.

Stock is returned to the catalogue only after the cancellation has been
committed, and only for orders whose stock had actually been taken.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.catalogue import get_catalogue
from ordering.catalogue.stock import restore_stock
from ordering.domain import ordering
from ordering.locking import order_locks, process_serialized
from ordering.order.lifecycle import assert_can_cancel
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(required=True, max_length=100)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        assert_can_cancel(order)
        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by)
        repo.add(order)
        return {
            "order_id": str(order.id),
            "restock": bool(order.inventory_committed),
            "lines": [{"product_id": str(item.product_id), "quantity": item.quantity} for item in order.items],
        }


def cancel_order(order_id, reason, cancelled_by="customer", catalogue=None) -> dict:
    """Cancel an order and give its stock back if it had been taken."""
    catalogue = catalogue or get_catalogue()
    result = process_serialized(
        order_locks,
        order_id,
        CancelOrder(order_id=order_id, reason=reason, cancelled_by=cancelled_by),
    )

    if result["restock"]:
        restore_stock(result["lines"], catalogue, order_id=order_id)

    logger.info("Order cancelled", order_id=str(order_id), cancelled_by=cancelled_by, restocked=result["restock"])
    return result

