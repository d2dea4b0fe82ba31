from __future__ import annotations


class InventoryError(Exception):
    """Base class for every error raised by the inventory core."""


class ValidationError(InventoryError):
    """Required input is missing or malformed."""


class AuthError(InventoryError):
    pass


class NotFoundError(InventoryError):
    pass


class ConflictError(InventoryError):
    """A product with the same barcode already exists."""


class UpstreamError(InventoryError):
    pass


class StoreError(InventoryError):
    pass


class CatalogNotFoundError(NotFoundError):
    """The external catalog has no usable record for a barcode."""


class CatalogUnavailableError(UpstreamError):
    """The external catalog could not be reached or answered garbage."""
