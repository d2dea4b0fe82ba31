"""Client for the external product catalog used to enrich scanned barcodes."""

from .client import CatalogClient

__all__ = ["CatalogClient"]
