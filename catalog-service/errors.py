"""Storage-level errors shared by every backend.

The HTTP layer maps NotFoundError to 404 and StorageError to 500.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for catalog storage errors."""


class NotFoundError(CatalogError):
    """No product matches the requested id."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product <{product_id}> does not exist")


class StorageError(CatalogError):
    """The underlying store failed; the original exception is kept in `cause`."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
