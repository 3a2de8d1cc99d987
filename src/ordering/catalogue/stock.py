"""Stock movements for order lines against the catalogue."""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.catalogue.port import CatalogueService

logger = structlog.get_logger(__name__)


def take_stock(lines: list[dict], catalogue: CatalogueService) -> None:
    """Decrement stock for every line, or for none of them.

    Each decrement is conditional; if one line is short, the lines already
    taken are given back and the error is re-raised.
    """
    taken = []
    try:
        for line in lines:
            catalogue.adjust_stock(line["product_id"], -line["quantity"])
            taken.append(line)
    except (ValidationError, ObjectNotFoundError):
        restore_stock(taken, catalogue)
        raise


def restore_stock(lines: list[dict], catalogue: CatalogueService, order_id=None) -> None:
    """Return each line's quantity to stock, logging products that have disappeared."""
    for line in lines:
        try:
            catalogue.adjust_stock(line["product_id"], line["quantity"])
        except ObjectNotFoundError:
            logger.error(
                "Could not restore stock for missing product",
                order_id=str(order_id) if order_id else None,
                product_id=line["product_id"],
                quantity=line["quantity"],
            )
