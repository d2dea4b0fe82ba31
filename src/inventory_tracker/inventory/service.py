from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from ..logging import get_logger
from .constants import (
    ALL_CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_DESCRIPTION,
    DEFAULT_IMAGE_URL,
    DEFAULT_PRICE,
    RECENT_PRODUCTS_LIMIT,
)
from .db import ProductStore
from .errors import ConflictError, NotFoundError, StoreError, ValidationError
from .models import AnalyticsSnapshot, CategoryCount, Number, Product, ProductCandidate, ProductInfo


LOG = get_logger("inventory-service")

# SQLite INTEGER is a signed 64-bit value.
_SQLITE_INT_MIN = -(2**63)
_SQLITE_INT_MAX = 2**63 - 1


class ProductLookup(Protocol):
    def lookup(self, barcode: str) -> ProductInfo: ...


class IngestStatus(str, enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class IngestResult:
    status: IngestStatus
    product: Product

    @property
    def created(self) -> bool:
        return self.status is IngestStatus.CREATED


def _storable_int(value: int) -> Number:
    if _SQLITE_INT_MIN <= value <= _SQLITE_INT_MAX:
        return value
    try:
        return float(value)
    except OverflowError:
        return DEFAULT_PRICE


def _coerce_price(value: Any) -> Number:
    if isinstance(value, bool) or value is None:
        return DEFAULT_PRICE
    if isinstance(value, int):
        return _storable_int(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else DEFAULT_PRICE
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value.strip())
        except ValueError:
            return DEFAULT_PRICE
        if not math.isfinite(parsed):
            return DEFAULT_PRICE
        return _storable_int(int(parsed)) if parsed.is_integer() else parsed
    return DEFAULT_PRICE


def build_candidate(barcode: str, info: ProductInfo) -> ProductCandidate:
    """Normalize catalog metadata into a storable product.

    The requested barcode wins over whatever the catalog echoes back and the
    category always starts as "Uncategorized".
    """
    if info.barcode and info.barcode != barcode:
        LOG.warning(f"Catalog answered barcode {info.barcode!r} for request {barcode!r}; keeping {barcode!r}")
    return ProductCandidate(
        barcode=barcode,
        name=info.name,
        description=info.description or DEFAULT_DESCRIPTION,
        price=_coerce_price(info.price),
        image_url=info.image_url or DEFAULT_IMAGE_URL,
        category=DEFAULT_CATEGORY,
    )


class IngestionService:
    """Get-or-create products by barcode, enriching new ones from the catalog.

    Catalog errors propagate untouched (`CatalogNotFoundError`,
    `CatalogUnavailableError`); nothing is stored in those cases. Two callers
    racing on the same unseen barcode may both reach the catalog; the store's
    uniqueness constraint picks the winner and the loser returns the winner's
    record.
    """

    def __init__(self, store: ProductStore, catalog: ProductLookup) -> None:
        self.store = store
        self.catalog = catalog

    def ingest(self, barcode: str) -> IngestResult:
        if not isinstance(barcode, str) or not barcode.strip():
            raise ValidationError("Barcode is required")
        barcode = barcode.strip()

        existing = self.store.find_by_barcode(barcode)
        if existing is not None:
            LOG.info(f"Barcode {barcode!r} already in inventory as {existing.product_id}")
            return IngestResult(IngestStatus.ALREADY_EXISTS, existing)

        info = self.catalog.lookup(barcode)
        candidate = build_candidate(barcode, info)
        try:
            product = self.store.insert(candidate)
        except ConflictError:
            winner = self.store.find_by_barcode(barcode)
            if winner is None:
                raise StoreError(f"Barcode {barcode!r} conflicted on insert but could not be re-read")
            LOG.info(f"Concurrent ingestion for {barcode!r} resolved to {winner.product_id}")
            return IngestResult(IngestStatus.ALREADY_EXISTS, winner)

        LOG.info(f"Added product {product.product_id} ({product.name!r}) for barcode {barcode!r}")
        return IngestResult(IngestStatus.CREATED, product)


class ProductQueryService:
    def __init__(self, store: ProductStore) -> None:
        self.store = store

    def list_products(self, category: Optional[str] = None, search: Optional[str] = None) -> List[Product]:
        """Return every matching product, newest first.

        `category="All"` and blank values disable the respective filter.
        """
        category = (category or "").strip() or None
        if category == ALL_CATEGORIES:
            category = None
        search = (search or "").strip() or None
        return self.store.list(category=category, search=search)

    def update_category(self, product_id: str, category: str) -> Product:
        if not isinstance(category, str) or not category.strip():
            raise ValidationError("Category is required")
        product = self.store.update_category(product_id, category.strip())
        if product is None:
            raise NotFoundError("Product not found")
        LOG.info(f"Product {product_id} moved to category {product.category!r}")
        return product


class AnalyticsService:
    """Category counts, newest products and the total count.

    The three figures are read independently; a product written in between
    may show up in one and not another.
    """

    def __init__(self, store: ProductStore, recent_limit: int = RECENT_PRODUCTS_LIMIT) -> None:
        self.store = store
        self.recent_limit = recent_limit

    def products_by_category(self) -> List[CategoryCount]:
        counts = self.store.count_by_category()
        ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return [CategoryCount(category=c, count=n) for c, n in ordered]

    def recently_added(self) -> List[Product]:
        return self.store.most_recent(self.recent_limit)

    def total_products(self) -> int:
        return self.store.count_all()

    def snapshot(self) -> AnalyticsSnapshot:
        return AnalyticsSnapshot(
            products_by_category=self.products_by_category(),
            recently_added=self.recently_added(),
            total_products=self.total_products(),
        )
