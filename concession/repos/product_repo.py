# concession/repos/product_repo.py
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from concession.data.models.product import ProductModel
from concession.domain.entities import Product, money
from concession.domain.enums import ProductCategory
from concession.repos.base import ProductRepo
from concession.repos.sql_support import to_product, translate_db_errors


class SqlProductRepo(ProductRepo):
    def __init__(self, db: Session):
        self.db = db

    @translate_db_errors
    def get_product(self, product_id: int) -> Product | None:
        model = self.db.get(ProductModel, product_id, populate_existing=True)
        return to_product(model) if model else None

    @translate_db_errors
    def list_available(self) -> list[Product]:
        rows = self.db.execute(
            select(ProductModel)
            .where(ProductModel.is_available.is_(True))
            .order_by(ProductModel.category, ProductModel.name)
        ).scalars().all()
        return [to_product(r) for r in rows]

    @translate_db_errors
    def list_by_category(self, category: ProductCategory) -> list[Product]:
        rows = self.db.execute(
            select(ProductModel)
            .where(
                ProductModel.category == ProductCategory(category).value,
                ProductModel.is_available.is_(True),
            )
            .order_by(ProductModel.name)
        ).scalars().all()
        return [to_product(r) for r in rows]

    @translate_db_errors
    def add_product(
        self, name: str, category: ProductCategory, price: Decimal, is_available: bool = True
    ) -> Product:
        model = ProductModel(
            name=name,
            category=ProductCategory(category).value,
            price=money(price),
            is_available=is_available,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        return to_product(model)

    @translate_db_errors
    def count(self) -> int:
        return self.db.execute(select(func.count(ProductModel.id))).scalar_one()
