"""Catalogue port: the product lookups and stock adjustments ordering depends on."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


@dataclass(frozen=True)
class ProductSnapshot:
    """Price and availability of a product at the moment it was read."""

    product_id: str
    name: str
    price: float
    status: ProductStatus = ProductStatus.ACTIVE
    stock_quantity: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE


class CatalogueService(ABC):
    """Abstract catalogue interface."""

    @abstractmethod
    def find_product(self, product_id: str) -> ProductSnapshot:
        """Return the product's current snapshot.

        Raises:
            ObjectNotFoundError: if the product does not exist.
        """
        ...

    @abstractmethod
    def adjust_stock(self, product_id: str, delta: int) -> int:
        """Apply ``delta`` to the product's stock and return the new level.

        A negative delta is a conditional decrement: it is applied only if
        enough stock remains, otherwise ``InsufficientStockError`` is raised
        and stock is left untouched.
        """
        ...
