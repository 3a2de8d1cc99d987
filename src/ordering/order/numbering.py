"""Order number generation.

Numbers look like ``ORD-1718000000000-3FA85F64``: the creation time in epoch
milliseconds followed by eight hex characters of a random UUID, so two
orders created in the same millisecond still differ.
"""

from datetime import UTC, datetime
from uuid import uuid4

ORDER_NUMBER_PREFIX = "ORD"


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    millis = int(now.timestamp() * 1000)
    suffix = uuid4().hex[:8].upper()
    return f"{ORDER_NUMBER_PREFIX}-{millis}-{suffix}"
