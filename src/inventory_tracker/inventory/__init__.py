"""Product inventory core.

Modules:
- db: SQLite product store with barcode uniqueness
- models: dataclasses for products and analytics
- schemas: request body/query validation for the API
- service: ingestion, query and analytics services
- api: Starlette application exposing the services
"""

from .db import ProductStore
from .service import AnalyticsService, IngestionService, IngestResult, IngestStatus, ProductQueryService

__all__ = [
    "ProductStore",
    "IngestionService",
    "IngestResult",
    "IngestStatus",
    "ProductQueryService",
    "AnalyticsService",
]
