from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Product:
    product_id: str
    barcode: str
    name: str
    description: str
    price: Number
    image_url: str
    category: str
    created_at: str  # ISO-8601 UTC, e.g. 2024-08-01T12:34:56.789Z

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Product":
        return cls(
            product_id=row["product_id"],
            barcode=row["barcode"],
            name=row["name"],
            description=row["description"],
            price=row["price"],
            image_url=row["image_url"],
            category=row["category"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the JSON keys used by API clients."""
        return {
            "_id": self.product_id,
            "barcode": self.barcode,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "imageUrl": self.image_url,
            "category": self.category,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class ProductCandidate:
    """A normalized product that has not been persisted yet."""

    barcode: str
    name: str
    description: str
    price: Number
    image_url: str
    category: str


@dataclass(frozen=True)
class ProductInfo:
    """Product metadata as reported by the external catalog."""

    name: str
    barcode: Optional[str] = None
    description: Optional[str] = None
    price: Any = None
    image_url: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "count": self.count}


@dataclass(frozen=True)
class AnalyticsSnapshot:
    products_by_category: List[CategoryCount]
    recently_added: List[Product]
    total_products: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productsByCategory": [c.to_dict() for c in self.products_by_category],
            "recentlyAddedProducts": [p.to_dict() for p in self.recently_added],
            "totalProducts": self.total_products,
        }
