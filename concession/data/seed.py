# concession/data/seed.py
from decimal import Decimal

from concession.domain.enums import ProductCategory
from concession.repos.base import ProductRepo
from concession.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CATALOG = [
    ("Sweet popcorn", ProductCategory.POPCORN, Decimal("150.00")),
    ("Salted popcorn", ProductCategory.POPCORN, Decimal("150.00")),
    ("Caramel popcorn", ProductCategory.POPCORN, Decimal("200.00")),
    ("Cola", ProductCategory.DRINKS, Decimal("100.00")),
    ("Lemon-lime soda", ProductCategory.DRINKS, Decimal("100.00")),
    ("Orange soda", ProductCategory.DRINKS, Decimal("100.00")),
    ("Water", ProductCategory.DRINKS, Decimal("50.00")),
    ("Apple juice", ProductCategory.DRINKS, Decimal("120.00")),
    ("Pink cotton candy", ProductCategory.COTTON_CANDY, Decimal("180.00")),
    ("Blue cotton candy", ProductCategory.COTTON_CANDY, Decimal("180.00")),
    ("White cotton candy", ProductCategory.COTTON_CANDY, Decimal("180.00")),
]


def seed_catalog(products: ProductRepo) -> int:
    # not forcing: only seed if empty
    if products.count():
        return 0

    for name, category, price in DEFAULT_CATALOG:
        products.add_product(name, category, price)

    logger.info(f"Catalog seeded with {len(DEFAULT_CATALOG)} products")
    return len(DEFAULT_CATALOG)
