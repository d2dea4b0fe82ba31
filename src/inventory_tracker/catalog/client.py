from typing import Any, Dict, Optional

import requests

from ..config import DEFAULT_CATALOG_BASE_URL, DEFAULT_CATALOG_TIMEOUT
from ..inventory.errors import CatalogNotFoundError, CatalogUnavailableError
from ..inventory.models import ProductInfo
from ..logging import get_logger


NOT_FOUND_MESSAGE = "Product not found with this barcode on external API"
NO_DETAILS_MESSAGE = "Product details not found from external API"


class CatalogClient:
    """Thin client for the external product catalog.

    One GET per lookup, no retries. A 404 or a payload without a usable
    `name` raises `CatalogNotFoundError`; every other failure raises
    `CatalogUnavailableError`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CATALOG_BASE_URL,
        *,
        timeout: float = DEFAULT_CATALOG_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.log = get_logger("catalog-client")
        self.s = session or requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    def _url(self, barcode: str) -> str:
        return f"{self.base}/product/{requests.utils.quote(barcode, safe='')}"

    def lookup(self, barcode: str) -> ProductInfo:
        url = self._url(barcode)
        self.log.info(f"GET catalog product: barcode={barcode!r}")
        try:
            r = self.s.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            self.log.error(f"Catalog request for {barcode!r} failed: {e}")
            raise CatalogUnavailableError(str(e)) from e

        if r.status_code == 404:
            self.log.info(f"Catalog has no product for barcode {barcode!r}")
            raise CatalogNotFoundError(NOT_FOUND_MESSAGE)
        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            self.log.error(f"Catalog answered HTTP {r.status_code} for {barcode!r}")
            raise CatalogUnavailableError(str(e)) from e

        try:
            data = r.json()
        except ValueError as e:
            preview = (r.text or "")[:200]
            self.log.error(f"Catalog returned non-JSON body for {barcode!r}: {preview!r}")
            raise CatalogUnavailableError(f"Malformed catalog response: {e}") from e

        info = _to_product_info(data)
        if info is None:
            self.log.warning(f"Catalog payload for {barcode!r} has no usable name")
            raise CatalogNotFoundError(NO_DETAILS_MESSAGE)
        return info

    def close(self) -> None:
        self.s.close()


def _opt_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _to_product_info(data: Any) -> Optional[ProductInfo]:
    if not isinstance(data, dict):
        return None
    name = _opt_str(data, "name")
    if name is None:
        return None
    barcode = data.get("barcode")
    return ProductInfo(
        name=name,
        barcode=str(barcode) if isinstance(barcode, (str, int)) and not isinstance(barcode, bool) else None,
        description=_opt_str(data, "description"),
        price=data.get("price"),
        image_url=_opt_str(data, "imageUrl"),
        category=_opt_str(data, "category"),
    )
