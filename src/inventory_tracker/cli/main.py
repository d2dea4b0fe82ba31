from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Sequence

from ..catalog import CatalogClient
from ..config import load_settings
from ..inventory import AnalyticsService, IngestionService, ProductQueryService, ProductStore
from ..inventory.errors import InventoryError
from ..logging import get_logger, set_level

LOG = get_logger("cli-main")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _open_store() -> ProductStore:
    settings = load_settings(os.getcwd())
    return ProductStore(settings.db_path)


def _serve(ns: argparse.Namespace) -> int:
    import uvicorn

    settings = load_settings(os.getcwd())
    host = ns.host or settings.host
    port = ns.port or settings.port
    set_level(ns.log_level.upper())
    LOG.info(f"Starting inventory API on {host}:{port}")
    if ns.reload:
        # Reload needs an import string; the factory re-reads settings in the child.
        uvicorn.run(
            "inventory_tracker.inventory.api:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_level=ns.log_level,
        )
        return 0

    from ..inventory.api import create_app

    uvicorn.run(create_app(settings), host=host, port=port, log_level=ns.log_level)
    return 0


def _init(_: argparse.Namespace) -> int:
    store = _open_store()
    LOG.info(f"Inventory DB ready at: {store.db_path}")
    print(store.db_path)
    return 0


def _ingest(ns: argparse.Namespace) -> int:
    settings = load_settings(os.getcwd())
    store = ProductStore(settings.db_path)
    client = CatalogClient(settings.catalog_base_url, timeout=settings.catalog_timeout)
    try:
        result = IngestionService(store, client).ingest(ns.barcode)
    finally:
        client.close()
    _print_json({"status": result.status.value, "product": result.product.to_dict()})
    return 0


def _products(ns: argparse.Namespace) -> int:
    products = ProductQueryService(_open_store()).list_products(ns.category, ns.search)
    _print_json([p.to_dict() for p in products])
    return 0


def _recategorize(ns: argparse.Namespace) -> int:
    product = ProductQueryService(_open_store()).update_category(ns.product_id, ns.category)
    _print_json(product.to_dict())
    return 0


def _analytics(_: argparse.Namespace) -> int:
    _print_json(AnalyticsService(_open_store()).snapshot().to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inventory-tracker",
        description="Barcode inventory backend: API server and maintenance commands.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the inventory HTTP API.")
    serve.add_argument("--host", help="Listen address (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, help="Listen port (default: PORT or 5000)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve.add_argument("--log-level", default="info")
    serve.set_defaults(handler=_serve)

    init = subparsers.add_parser("init", help="Create/ensure the inventory DB schema exists")
    init.set_defaults(handler=_init)

    ingest = subparsers.add_parser("ingest", help="Look up a barcode and add it to the inventory")
    ingest.add_argument("barcode")
    ingest.set_defaults(handler=_ingest)

    products = subparsers.add_parser("products", help="List products, newest first")
    products.add_argument("--category")
    products.add_argument("--search")
    products.set_defaults(handler=_products)

    recat = subparsers.add_parser("recategorize", help="Move a product to another category")
    recat.add_argument("product_id")
    recat.add_argument("category")
    recat.set_defaults(handler=_recategorize)

    analytics = subparsers.add_parser("analytics", help="Print category counts and recent products")
    analytics.set_defaults(handler=_analytics)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(provided)
    try:
        code = args.handler(args)
    except InventoryError as exc:
        LOG.error(f"{args.command} failed: {exc}")
        code = 1
    LOG.debug(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
