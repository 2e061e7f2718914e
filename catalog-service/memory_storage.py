"""In-memory catalog used for tests and demos. Nothing is persisted."""

import threading
from typing import List, Optional

from loguru import logger

from errors import NotFoundError
from models import SEED_PRODUCTS, Product
from storage import ProductStorage, sort_by_price


class MemoryProductStorage(ProductStorage):

    def __init__(self, products: Optional[List[Product]] = None):
        self._products: List[Product] = [p.model_copy() for p in products or []]
        self._lock = threading.Lock()

    def initialize(self) -> None:
        with self._lock:
            self._products = [p.model_copy() for p in SEED_PRODUCTS]
        logger.info(f"Loaded {len(SEED_PRODUCTS)} seed products in memory")

    def cleanup(self) -> None:
        logger.info("Cleaning up...")

    def list_products(self) -> List[Product]:
        with self._lock:
            snapshot = [p.model_copy() for p in self._products]
        return sort_by_price(snapshot)

    def add_product(self, product: Product) -> None:
        with self._lock:
            index = self._find(product.id)
            if index is None:
                self._products.append(product.model_copy())
            else:
                logger.warning(f"Product {product.id} already exists, overwriting")
                self._products[index] = product.model_copy()

    def get_product(self, product_id: int) -> Product:
        with self._lock:
            index = self._find(product_id)
            if index is None:
                raise NotFoundError(product_id)
            return self._products[index].model_copy()

    def update_product(self, product: Product) -> None:
        # Unlike DynamoDB, a missing product is not created here
        with self._lock:
            index = self._find(product.id)
            if index is None:
                raise NotFoundError(product.id)
            self._products[index] = product.model_copy()

    def delete_product(self, product: Product) -> None:
        with self._lock:
            index = self._find(product.id)
            if index is None:
                raise NotFoundError(product.id)
            del self._products[index]

    def _find(self, product_id: int) -> Optional[int]:
        for index, existing in enumerate(self._products):
            if existing.id == product_id:
                return index
        return None

    def __len__(self) -> int:
        return len(self._products)
