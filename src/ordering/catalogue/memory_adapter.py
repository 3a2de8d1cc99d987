"""In-memory catalogue for development and testing."""

import threading
from dataclasses import replace

import structlog
from protean.exceptions import ObjectNotFoundError

from ordering.catalogue.port import CatalogueService, ProductSnapshot, ProductStatus
from ordering.errors import InsufficientStockError

logger = structlog.get_logger(__name__)


class InMemoryCatalogue(CatalogueService):
    """Catalogue backed by a dict, with stock changes applied under a lock."""

    def __init__(self) -> None:
        self._products: dict[str, ProductSnapshot] = {}
        self._lock = threading.Lock()
        self.adjustments: list[dict] = []

    def add_product(
        self,
        product_id: str,
        name: str,
        price: float,
        stock_quantity: int = 0,
        status: ProductStatus = ProductStatus.ACTIVE,
    ) -> ProductSnapshot:
        product = ProductSnapshot(
            product_id=str(product_id),
            name=name,
            price=price,
            status=status,
            stock_quantity=stock_quantity,
        )
        with self._lock:
            self._products[product.product_id] = product
        return product

    def find_product(self, product_id: str) -> ProductSnapshot:
        product = self._products.get(str(product_id))
        if product is None:
            raise ObjectNotFoundError(f"Product `{product_id}` does not exist")
        return product

    def adjust_stock(self, product_id: str, delta: int) -> int:
        with self._lock:
            product = self.find_product(product_id)
            new_level = product.stock_quantity + delta
            if new_level < 0:
                raise InsufficientStockError(
                    {"stock_quantity": [f"Insufficient stock for {product.name}: {product.stock_quantity} available"]}
                )
            self._products[product.product_id] = replace(product, stock_quantity=new_level)
            self.adjustments.append({"product_id": product.product_id, "delta": delta})

        logger.info("Stock adjusted", product_id=product.product_id, delta=delta, stock_quantity=new_level)
        return new_level

    def reset(self) -> None:
        with self._lock:
            self._products.clear()
            self.adjustments.clear()
