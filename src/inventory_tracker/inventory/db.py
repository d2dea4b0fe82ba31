from __future__ import annotations

import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from ..config import default_db_path
from ..logging import get_logger
from .constants import DEFAULT_CATEGORY
from .errors import ConflictError, StoreError
from .models import Product, ProductCandidate


LOG = get_logger("inventory-db")

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS products (
  seq          INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id   TEXT NOT NULL UNIQUE,
  barcode      TEXT NOT NULL UNIQUE,
  name         TEXT NOT NULL,
  description  TEXT NOT NULL,
  price        NUMERIC NOT NULL DEFAULT 0,
  image_url    TEXT NOT NULL,
  category     TEXT NOT NULL DEFAULT '{DEFAULT_CATEGORY}' CHECK(length(category) > 0),
  created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);
CREATE INDEX IF NOT EXISTS idx_products_created  ON products(created_at, seq);
"""

# Newest first; seq breaks ties between identical timestamps.
_ORDER_BY = "ORDER BY created_at DESC, seq DESC"


def _icontains(haystack: Optional[str], needle: Optional[str]) -> int:
    if haystack is None or needle is None:
        return 0
    return 1 if needle.casefold() in haystack.casefold() else 0


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProductStore:
    """SQLite-backed product store.

    - Places the DB under `<repo-root>/var/inventory/inventory.sqlite3` unless
      an explicit path is given.
    - Ensures schema on construction.
    - Opens one connection per operation, so a single store may be shared by
      concurrent worker threads.
    - Barcode uniqueness is enforced by the table constraint; `insert` turns
      a violation into `ConflictError`.
    """

    def __init__(self, db_path: Optional[str] = None, *, root_dir: Optional[str] = None, timeout: float = 5.0) -> None:
        self.db_path = os.path.abspath(db_path) if db_path else default_db_path(root_dir)
        self.timeout = timeout
        folder = os.path.dirname(self.db_path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        LOG.info(f"Inventory DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open inventory DB: {exc}") from exc
        conn.row_factory = sqlite3.Row
        conn.create_function("icontains", 2, _icontains, deterministic=True)
        try:
            yield conn
        except (sqlite3.Error, OverflowError) as exc:
            LOG.error(f"Inventory DB operation failed: {exc}")
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                LOG.warning("Could not enable WAL journal; continuing with defaults")
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            LOG.info("Inventory DB schema ensured.")

    # ---------- reads ----------
    def find_by_barcode(self, barcode: str) -> Optional[Product]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM products WHERE barcode = ?;", (barcode,)).fetchone()
        return Product.from_row(row) if row else None

    def find_by_id(self, product_id: str) -> Optional[Product]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM products WHERE product_id = ?;", (product_id,)).fetchone()
        return Product.from_row(row) if row else None

    def list(self, *, category: Optional[str] = None, search: Optional[str] = None) -> List[Product]:
        """Return products matching every given filter, newest first.

        - `category`: exact match.
        - `search`: case-insensitive substring of name OR barcode, taken
          literally (no wildcard characters).
        """
        clauses: List[str] = []
        params: List[str] = []
        if category is not None:
            clauses.append("category = ?")
            params.append(category)
        if search is not None:
            clauses.append("(icontains(name, ?) OR icontains(barcode, ?))")
            params.extend([search, search])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT * FROM products {where} {_ORDER_BY};"
        with self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Product.from_row(r) for r in rows]

    def most_recent(self, limit: int) -> List[Product]:
        if limit <= 0:
            return []
        with self.connect() as conn:
            rows = conn.execute(f"SELECT * FROM products {_ORDER_BY} LIMIT ?;", (int(limit),)).fetchall()
        return [Product.from_row(r) for r in rows]

    def count_by_category(self) -> Dict[str, int]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT category, COUNT(*) AS n FROM products GROUP BY category;"
            ).fetchall()
        return {r["category"]: int(r["n"]) for r in rows}

    def count_all(self) -> int:
        with self.connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM products;").fetchone()
        return int(row[0]) if row else 0

    # ---------- writes ----------
    def insert(self, candidate: ProductCandidate) -> Product:
        """Persist a new product; raise `ConflictError` if the barcode exists.

        `created_at` never goes below the newest stored stamp, even when the
        clock steps back; the write lock is held from that read to the commit.
        """
        product_id = uuid.uuid4().hex
        with self.connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE;")
                latest = conn.execute("SELECT MAX(created_at) FROM products;").fetchone()[0]
                created_at = _utc_timestamp()
                if latest is not None and latest > created_at:
                    created_at = latest
                conn.execute(
                    """
                    INSERT INTO products (product_id, barcode, name, description, price, image_url, category, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        product_id,
                        candidate.barcode,
                        candidate.name,
                        candidate.description,
                        candidate.price,
                        candidate.image_url,
                        candidate.category or DEFAULT_CATEGORY,
                        created_at,
                    ),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                if "barcode" in str(exc):
                    LOG.info(f"Barcode {candidate.barcode!r} already stored; insert rejected")
                    raise ConflictError(f"Product with barcode {candidate.barcode!r} already exists") from exc
                raise
            except (sqlite3.Error, OverflowError):
                conn.rollback()
                raise
            row = conn.execute("SELECT * FROM products WHERE product_id = ?;", (product_id,)).fetchone()
        LOG.debug(f"Inserted product_id={product_id} barcode={candidate.barcode!r}")
        return Product.from_row(row)

    def update_category(self, product_id: str, category: str) -> Optional[Product]:
        with self.connect() as conn:
            cur = conn.execute(
                "UPDATE products SET category = ? WHERE product_id = ?;",
                (category, product_id),
            )
            conn.commit()
            if cur.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM products WHERE product_id = ?;", (product_id,)).fetchone()
        return Product.from_row(row) if row else None
