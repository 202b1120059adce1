from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from concession.domain.entities import Product
from concession.domain.enums import ProductCategory
from concession.domain.errors import StoreUnavailable
from concession.services.catalog_service import CatalogCache, CatalogService

COLA = Product(id=4, name="Cola", category=ProductCategory.DRINKS, price=Decimal("100.00"))
POPCORN = Product(id=1, name="Sweet popcorn", category=ProductCategory.POPCORN, price=Decimal("150.00"))


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    source = MagicMock()
    source.list_available.return_value = [POPCORN, COLA]
    source.list_by_category.return_value = [COLA]
    source.get_product.return_value = COLA
    return source


@pytest.fixture
def catalog(source, clock):
    return CatalogService(source, CatalogCache(ttl_seconds=300, clock=clock))


class TestCatalogService:
    def test_listing_is_cached_within_ttl(self, catalog, source, clock):
        assert catalog.list_available() == [POPCORN, COLA]
        clock.now += 299
        assert catalog.list_available() == [POPCORN, COLA]

        source.list_available.assert_called_once()

    def test_listing_is_reloaded_after_ttl(self, catalog, source, clock):
        catalog.list_available()
        clock.now += 300
        catalog.list_available()

        assert source.list_available.call_count == 2

    def test_categories_are_cached_separately(self, catalog, source):
        catalog.list_by_category(ProductCategory.DRINKS)
        catalog.list_by_category("drinks")
        catalog.list_by_category(ProductCategory.POPCORN)

        assert source.list_by_category.call_count == 2

    def test_stale_snapshot_when_source_is_down(self, catalog, source, clock):
        catalog.list_available()
        clock.now += 1000
        source.list_available.side_effect = StoreUnavailable("down")

        assert catalog.list_available() == [POPCORN, COLA]

    def test_no_snapshot_to_fall_back_to(self, catalog, source):
        source.list_available.side_effect = StoreUnavailable("down")

        with pytest.raises(StoreUnavailable):
            catalog.list_available()

    def test_live_product_bypasses_the_cache(self, catalog, source):
        catalog.get_live_product(COLA.id)
        catalog.get_live_product(COLA.id)

        assert source.get_product.call_count == 2

    def test_unknown_category(self, catalog):
        with pytest.raises(ValueError):
            catalog.list_by_category("hats")


class TestCatalogCache:
    def test_clear(self, clock):
        cache = CatalogCache(ttl_seconds=300, clock=clock)
        cache.put("available", [COLA])
        cache.clear()

        assert cache.get("available", allow_stale=True) is None

    def test_stored_list_is_a_copy(self, clock):
        cache = CatalogCache(ttl_seconds=300, clock=clock)
        products = [COLA]
        cache.put("available", products)
        products.append(POPCORN)

        assert cache.get("available") == [COLA]


class TestCatalogOnRepository:
    def test_seeded_catalog(self, repos, products):
        catalog = CatalogService(repos.products, CatalogCache())

        drinks = catalog.list_by_category(ProductCategory.DRINKS)

        assert [p.name for p in drinks] == ["Apple juice", "Cola", "Lemon-lime soda", "Orange soda", "Water"]
        assert len(catalog.list_available()) == 11
        assert catalog.get_live_product(products["Water"].id).price == Decimal("50.00")

    def test_unavailable_products_are_not_listed(self, repos, products):
        repos.products.add_product("Seasonal fudge", ProductCategory.SWEETS, Decimal("90"), is_available=False)
        catalog = CatalogService(repos.products, CatalogCache())

        assert catalog.list_by_category(ProductCategory.SWEETS) == []
        assert all(p.is_available for p in catalog.list_available())
