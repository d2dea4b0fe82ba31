from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from inventory_tracker.inventory import ProductStore
from inventory_tracker.inventory import db as inventory_db
from inventory_tracker.inventory.errors import ConflictError, StoreError
from inventory_tracker.inventory.models import ProductCandidate


def _candidate(barcode: str, name: str = "Widget", category: str = "Uncategorized") -> ProductCandidate:
    return ProductCandidate(
        barcode=barcode,
        name=name,
        description="desc",
        price=0,
        image_url="http://img.test/x.png",
        category=category,
    )


def _seed(store: ProductStore) -> None:
    store.insert(_candidate("4001", "Bio Milch", "Dairy"))
    store.insert(_candidate("4002", "Vollkornbrot", "Bakery"))
    store.insert(_candidate("7abc9", "Apfelsaft", "Drinks"))
    store.insert(_candidate("4004", "ABC Kekse", "Bakery"))


def test_insert_then_lookup_by_barcode_and_id(store: ProductStore) -> None:
    created = store.insert(_candidate("0001"))
    assert created.product_id
    assert created.created_at.endswith("Z")

    assert store.find_by_barcode("0001") == created
    assert store.find_by_id(created.product_id) == created
    assert store.find_by_barcode("9999") is None
    assert store.find_by_id("missing") is None


def test_duplicate_barcode_is_rejected(store: ProductStore) -> None:
    first = store.insert(_candidate("0001", "First"))
    with pytest.raises(ConflictError):
        store.insert(_candidate("0001", "Second"))

    assert store.count_all() == 1
    assert store.find_by_barcode("0001") == first


def test_list_is_newest_first(store: ProductStore) -> None:
    for code in ("a1", "a2", "a3"):
        store.insert(_candidate(code))

    products = store.list()
    assert [p.barcode for p in products] == ["a3", "a2", "a1"]
    stamps = [p.created_at for p in products]
    assert stamps == sorted(stamps, reverse=True)


def test_created_at_holds_when_clock_steps_back(store: ProductStore, monkeypatch: pytest.MonkeyPatch) -> None:
    stamps = iter(["2024-01-01T00:00:01.000Z", "2024-01-01T00:00:00.500Z"])
    monkeypatch.setattr(inventory_db, "_utc_timestamp", lambda: next(stamps))

    first = store.insert(_candidate("first"))
    second = store.insert(_candidate("second"))

    assert second.created_at == first.created_at == "2024-01-01T00:00:01.000Z"
    assert store.most_recent(1)[0].barcode == "second"
    assert [p.barcode for p in store.list()] == ["second", "first"]


def test_unstorable_price_is_a_store_error(store: ProductStore) -> None:
    with pytest.raises(StoreError):
        store.insert(dataclasses.replace(_candidate("0001"), price=10**20))

    assert store.count_all() == 0


def test_search_matches_name_or_barcode_case_insensitively(store: ProductStore) -> None:
    _seed(store)

    found = store.list(search="abc")
    assert {p.barcode for p in found} == {"7abc9", "4004"}
    for p in found:
        assert "abc" in p.name.lower() or "abc" in p.barcode.lower()

    assert [p.barcode for p in store.list(search="MILCH")] == ["4001"]


def test_search_term_is_literal(store: ProductStore) -> None:
    _seed(store)
    store.insert(_candidate("5000", "100% Saft"))

    assert [p.barcode for p in store.list(search="%")] == ["5000"]
    assert store.list(search="_") == []


def test_category_and_search_filters_combine(store: ProductStore) -> None:
    _seed(store)

    bakery = store.list(category="Bakery")
    assert [p.barcode for p in bakery] == ["4004", "4002"]
    assert [p.barcode for p in store.list(category="Bakery", search="kekse")] == ["4004"]
    assert store.list(category="Dairy", search="kekse") == []


def test_counts_and_most_recent(store: ProductStore) -> None:
    _seed(store)

    assert store.count_all() == 4
    assert store.count_by_category() == {"Dairy": 1, "Bakery": 2, "Drinks": 1}
    assert [p.barcode for p in store.most_recent(2)] == ["4004", "7abc9"]
    assert len(store.most_recent(10)) == 4
    assert store.most_recent(0) == []


def test_update_category_changes_only_category(store: ProductStore) -> None:
    created = store.insert(_candidate("0001"))

    updated = store.update_category(created.product_id, "Snacks")
    assert updated is not None
    assert updated.category == "Snacks"
    assert updated.product_id == created.product_id
    assert updated.created_at == created.created_at
    assert updated.name == created.name

    assert store.update_category("missing", "Snacks") is None


def test_schema_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "inventory.sqlite3"
    ProductStore(str(path)).insert(_candidate("0001"))

    reopened = ProductStore(str(path))
    assert reopened.count_all() == 1
    with pytest.raises(ConflictError):
        reopened.insert(_candidate("0001"))
