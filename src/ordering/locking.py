"""Per-key mutual exclusion for cart and order mutations.

A cart is serialized per customer and an order per order id. Each lock is
held across the whole load-decide-persist cycle of a command, so the unit
of work commits before the next caller reads the aggregate.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLock:
    """Hands out one re-entrant lock per key.

    A key's lock lives only while some thread holds or waits for it, so
    the table does not grow with every customer and order ever seen.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: dict[str, _Entry] = {}

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key) -> Iterator[None]:
        key = str(key)
        entry = self._checkout(key)
        try:
            with entry.lock:
                logger.debug("Lock acquired", lock=self.name, key=key)
                yield
        finally:
            self._checkin(key, entry)

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        return len(self._locks)


cart_locks = KeyedLock("cart")
order_locks = KeyedLock("order")


def process_serialized(locks: KeyedLock, key, command):
    """Process a command while holding the lock for ``key``.

    The command handler's unit of work commits inside the lock.
    """
    with locks.hold(key):
        return current_domain.process(command, asynchronous=False)
