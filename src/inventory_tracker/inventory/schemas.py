from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import ValidationError


@dataclass(frozen=True)
class IngestRequest:
    barcode: str


@dataclass(frozen=True)
class CategoryUpdate:
    category: str


@dataclass(frozen=True)
class ProductFilter:
    category: Optional[str] = None
    search: Optional[str] = None


def _norm_s(value: Any) -> Optional[str]:
    """Return a stripped non-empty string; scanners may send barcodes as numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        # 0 is falsy, like a missing barcode.
        return str(value) if value else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_ingest_request(payload: Any) -> IngestRequest:
    """Validate a `POST /api/products` body: `{barcode: str}`."""
    body = payload if isinstance(payload, Mapping) else {}
    barcode = _norm_s(body.get("barcode"))
    if barcode is None:
        raise ValidationError("Barcode is required")
    return IngestRequest(barcode=barcode)


def parse_category_update(payload: Any) -> CategoryUpdate:
    """Validate a `PUT /api/products/{id}/category` body: `{category: str}`."""
    body = payload if isinstance(payload, Mapping) else {}
    category = body.get("category")
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("Category is required")
    return CategoryUpdate(category=category.strip())


def parse_product_filter(params: Mapping[str, str]) -> ProductFilter:
    """Build a filter from query parameters; empty values mean "no filter"."""
    category = (params.get("category") or "").strip() or None
    search = (params.get("search") or "").strip() or None
    return ProductFilter(category=category, search=search)
