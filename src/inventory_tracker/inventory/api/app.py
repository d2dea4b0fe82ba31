from __future__ import annotations

import asyncio
import functools
import hmac
import json
from typing import Any, Awaitable, Callable, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from ...catalog.client import CatalogClient
from ...config import Settings, load_settings
from ...logging import get_logger
from ..db import ProductStore
from ..errors import AuthError, InventoryError, NotFoundError, ValidationError
from ..schemas import parse_category_update, parse_ingest_request, parse_product_filter
from ..service import AnalyticsService, IngestionService, ProductLookup, ProductQueryService


LOG = get_logger("inventory-api")

API_KEY_HEADER = "x-api-key"
ROOT_MESSAGE = "Inventory Management Backend is running!"

Endpoint = Callable[[Request], Awaitable[Response]]


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"message": message}, status_code=status_code)


async def _validation_error(_: Request, exc: Exception) -> JSONResponse:
    return _error(str(exc), 400)


async def _auth_error(_: Request, exc: Exception) -> JSONResponse:
    return _error(str(exc), 401)


async def _not_found(_: Request, exc: Exception) -> JSONResponse:
    return _error(str(exc), 404)


async def _server_error(request: Request, exc: Exception) -> JSONResponse:
    LOG.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    return JSONResponse({"message": "Server error", "error": str(exc)}, status_code=500)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    LOG.error(f"{request.method} {request.url.path} crashed", exc_info=exc)
    return JSONResponse({"message": "Server error", "error": str(exc)}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[ProductStore] = None,
    catalog: Optional[ProductLookup] = None,
) -> Starlette:
    """Create the Starlette app exposing the inventory API.

    Store and catalog are built from settings unless given explicitly.
    """
    settings = settings or load_settings()
    store = store or ProductStore(settings.db_path)
    catalog = catalog or CatalogClient(settings.catalog_base_url, timeout=settings.catalog_timeout)

    ingestion = IngestionService(store, catalog)
    queries = ProductQueryService(store)
    analytics = AnalyticsService(store)

    def requires_api_key(endpoint: Endpoint) -> Endpoint:
        @functools.wraps(endpoint)
        async def wrapper(request: Request) -> Response:
            supplied = request.headers.get(API_KEY_HEADER) or ""
            if not hmac.compare_digest(supplied.encode(), settings.api_key.encode()):
                LOG.warning(f"Rejected {request.method} {request.url.path}: invalid API key")
                raise AuthError("Unauthorized: Invalid API Key")
            return await endpoint(request)

        return wrapper

    async def root(_: Request) -> PlainTextResponse:
        return PlainTextResponse(ROOT_MESSAGE)

    @requires_api_key
    async def add_product(request: Request) -> JSONResponse:
        body = parse_ingest_request(await _json_body(request))
        result = await run_in_threadpool(ingestion.ingest, body.barcode)
        if result.created:
            return JSONResponse(
                {"message": "Product added successfully", "product": result.product.to_dict()},
                status_code=201,
            )
        return JSONResponse({"message": "Product already exists in inventory", "product": result.product.to_dict()})

    @requires_api_key
    async def list_products(request: Request) -> JSONResponse:
        flt = parse_product_filter(request.query_params)
        products = await run_in_threadpool(queries.list_products, flt.category, flt.search)
        return JSONResponse([p.to_dict() for p in products])

    @requires_api_key
    async def update_category(request: Request) -> JSONResponse:
        product_id = request.path_params["product_id"]
        body = parse_category_update(await _json_body(request))
        product = await run_in_threadpool(queries.update_category, product_id, body.category)
        return JSONResponse({"message": "Product category updated successfully", "product": product.to_dict()})

    @requires_api_key
    async def get_analytics(_: Request) -> JSONResponse:
        by_category, recent, total = await asyncio.gather(
            run_in_threadpool(analytics.products_by_category),
            run_in_threadpool(analytics.recently_added),
            run_in_threadpool(analytics.total_products),
        )
        return JSONResponse(
            {
                "productsByCategory": [c.to_dict() for c in by_category],
                "recentlyAddedProducts": [p.to_dict() for p in recent],
                "totalProducts": total,
            }
        )

    routes = [
        Route("/", root, methods=["GET"]),
        Route("/api/products", add_product, methods=["POST"]),
        Route("/api/products", list_products, methods=["GET"]),
        Route("/api/products/{product_id:str}/category", update_category, methods=["PUT"]),
        Route("/api/analytics", get_analytics, methods=["GET"]),
    ]

    # Most specific class wins: CatalogNotFoundError -> 404, CatalogUnavailableError -> 500.
    exception_handlers = {
        ValidationError: _validation_error,
        AuthError: _auth_error,
        NotFoundError: _not_found,
        InventoryError: _server_error,
        Exception: _unhandled_error,
    }

    app = Starlette(debug=False, routes=routes, exception_handlers=exception_handlers)

    origins = list(settings.cors_origins) or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    LOG.info(f"Inventory API ready (db={store.db_path})")
    return app


__all__ = ["create_app"]
