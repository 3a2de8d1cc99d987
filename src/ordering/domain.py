"""Ordering bounded context — shopping carts, orders and payment reconciliation.

Carts are priced on every mutation, converted into immutable orders at
checkout, and orders are moved through their lifecycle by status, payment
and shipment commands.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
