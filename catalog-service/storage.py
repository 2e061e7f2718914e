"""Storage contract for the product catalog.

Every backend implements ProductStorage so the HTTP layer never depends on a
concrete store. The active backend is chosen once at startup from Settings.
"""

from abc import ABC, abstractmethod
from typing import List

from loguru import logger

from config import Settings
from models import Product


class ProductStorage(ABC):

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the store (connect, create and seed the catalog if needed)."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release resources held by the store."""

    @abstractmethod
    def list_products(self) -> List[Product]:
        """Return every product, most expensive first."""

    @abstractmethod
    def add_product(self, product: Product) -> None:
        """Store a product, replacing any product with the same id."""

    @abstractmethod
    def get_product(self, product_id: int) -> Product:
        """Return the product with this id or raise NotFoundError."""

    @abstractmethod
    def update_product(self, product: Product) -> None:
        """Replace name and price of the product with the same id."""

    @abstractmethod
    def delete_product(self, product: Product) -> None:
        """Remove the product with the same id or raise NotFoundError."""


def sort_by_price(products: List[Product]) -> List[Product]:
    return sorted(products, key=lambda p: p.price, reverse=True)


def create_storage(settings: Settings) -> ProductStorage:
    """Build the backend named by settings.storage_backend."""
    if settings.storage_backend == "memory":
        from memory_storage import MemoryProductStorage

        return MemoryProductStorage()
    if settings.storage_backend == "dynamodb":
        from dynamodb_storage import DynamoProductStorage

        return DynamoProductStorage(
            table_name=settings.table_name,
            region=settings.aws_region,
            endpoint_url=settings.dynamodb_endpoint,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")


def open_storage(settings: Settings) -> ProductStorage:
    """Create and initialize the configured storage.

    A failed initialization is fatal: cleanup is attempted and the original
    error is re-raised. Errors raised by cleanup itself are only logged.
    """
    storage = create_storage(settings)
    logger.info(f"Initializing {settings.storage_backend} storage")
    try:
        storage.initialize()
    except Exception:
        logger.exception("Storage initialization failed")
        try:
            storage.cleanup()
        except Exception as cleanup_error:
            logger.error(f"Cleanup after failed initialization failed: {cleanup_error}")
        raise
    logger.info("Storage ready")
    return storage
