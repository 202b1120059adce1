# concession/services/catalog_service.py
import threading
import time
from typing import Callable, List

from concession.domain.entities import Product
from concession.domain.enums import ProductCategory
from concession.domain.errors import StoreUnavailable
from concession.utils.logging import get_logger
from concession.utils.settings import CATALOG_CACHE_TTL_SECONDS

logger = get_logger(__name__)


class CatalogCache:
    """
    Process-wide snapshot cache for catalog listings.

    Entries are fresh for ``ttl_seconds``; stale entries are kept as the
    fallback snapshot for when the source is down.
    """

    def __init__(self, ttl_seconds: int = CATALOG_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, tuple[float, List[Product]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, allow_stale: bool = False) -> List[Product] | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if allow_stale or self.clock() - stored_at < self.ttl_seconds:
            return value
        return None

    def put(self, key: str, value: List[Product]) -> None:
        with self._lock:
            self._entries[key] = (self.clock(), list(value))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class CatalogService:
    """
    Read side of the catalog.

    Listings may be served from the cache; ``get_live_product`` always reads
    the source, it is what the price frozen into a line item must come from.
    The source is anything with ``get_product``, ``list_available`` and
    ``list_by_category`` (the product repository or ``ProductClient``).
    """

    def __init__(self, source, cache: CatalogCache):
        self.source = source
        self.cache = cache

    def _cached(self, key: str, load: Callable[[], List[Product]]) -> List[Product]:
        fresh = self.cache.get(key)
        if fresh is not None:
            return fresh

        try:
            products = load()
        except StoreUnavailable as e:
            snapshot = self.cache.get(key, allow_stale=True)
            if snapshot is None:
                raise
            logger.warning(f"Catalog source failed ({e}), serving last snapshot for {key}")
            return snapshot

        self.cache.put(key, products)
        return products

    def list_available(self) -> List[Product]:
        return self._cached("available", self.source.list_available)

    def list_by_category(self, category) -> List[Product]:
        category = ProductCategory(category)
        return self._cached(
            f"category:{category.value}",
            lambda: self.source.list_by_category(category),
        )

    def get_live_product(self, product_id: int) -> Product | None:
        return self.source.get_product(product_id)
