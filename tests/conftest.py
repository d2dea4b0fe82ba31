from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from inventory_tracker.config import Settings
from inventory_tracker.inventory import ProductStore
from inventory_tracker.inventory.models import ProductInfo

TEST_API_KEY = "test-key"


class FakeCatalog:
    """In-memory stand-in for CatalogClient.

    Entries map a barcode to either ProductInfo or an exception to raise.
    An optional barrier makes concurrent callers meet inside `lookup`.
    """

    def __init__(self) -> None:
        self.entries: Dict[str, Union[ProductInfo, Exception]] = {}
        self.calls: List[str] = []
        self.barrier: Optional[threading.Barrier] = None
        self._lock = threading.Lock()

    def add(self, barcode: str, name: str = "Widget", **fields) -> None:
        self.entries[barcode] = ProductInfo(name=name, **fields)

    def fail(self, barcode: str, exc: Exception) -> None:
        self.entries[barcode] = exc

    def lookup(self, barcode: str) -> ProductInfo:
        with self._lock:
            self.calls.append(barcode)
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        entry = self.entries[barcode]
        if isinstance(entry, Exception):
            raise entry
        return entry


@pytest.fixture
def store(tmp_path: Path) -> ProductStore:
    return ProductStore(str(tmp_path / "inventory.sqlite3"))


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        host="127.0.0.1",
        port=5000,
        db_path=str(tmp_path / "inventory.sqlite3"),
        api_key=TEST_API_KEY,
        catalog_base_url="http://catalog.test",
        catalog_timeout=5.0,
        cors_origins=("*",),
    )
