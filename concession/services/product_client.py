# concession/services/product_client.py
import requests
from requests import RequestException

from concession.domain.entities import Product, money
from concession.domain.enums import ProductCategory
from concession.domain.errors import StoreUnavailable
from concession.utils.logging import get_logger
from concession.utils.retry import http_retry
from concession.utils.settings import PRODUCT_SERVICE_URL

logger = get_logger(__name__)


def _to_product(data: dict) -> Product:
    return Product(
        id=int(data["id"]),
        name=data["name"],
        category=ProductCategory(data["category"]),
        price=money(data["price"]),
        is_available=bool(data.get("is_available", True)),
    )


class ProductClient:
    """Catalog source backed by a separate product service over HTTP."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _get(self, path: str, params: dict | None = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"ProductClient GET {url} {params or ''}")

        resp = requests.get(url, params=params, timeout=self.timeout)
        if resp.status_code == 404:
            return resp
        resp.raise_for_status()
        return resp

    def _fetch(self, path: str, params: dict | None = None) -> requests.Response:
        try:
            return self._get(path, params)
        except RequestException as e:
            raise StoreUnavailable(f"Product service unavailable: {e}") from e

    def get_product(self, product_id: int) -> Product | None:
        resp = self._fetch(f"/products/{product_id}")
        if resp.status_code == 404:
            return None
        return _to_product(resp.json())

    def list_available(self) -> list[Product]:
        resp = self._fetch("/products", {"available": "true"})
        return [_to_product(p) for p in resp.json()]

    def list_by_category(self, category: ProductCategory) -> list[Product]:
        resp = self._fetch("/products", {"available": "true", "category": ProductCategory(category).value})
        return [_to_product(p) for p in resp.json()]
