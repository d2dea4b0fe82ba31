"""
Inventory Tracker – barcode-driven product inventory backend.

Scanned barcodes are enriched from an external catalog, stored in SQLite and
served over a small authenticated JSON API.
"""

__all__ = [
    "catalog",
    "config",
    "inventory",
    "logging",
]
