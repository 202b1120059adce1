# concession/product_service/main.py
"""Stand-alone catalog service for development (CATALOG_SOURCE=http)."""

from fastapi import FastAPI, HTTPException

from concession.data.seed import DEFAULT_CATALOG
from concession.domain.enums import ProductCategory

app = FastAPI(title="Product Service (dev mock)")


PRODUCTS = {
    i: {"id": i, "name": name, "category": category.value, "price": str(price), "is_available": True}
    for i, (name, category, price) in enumerate(DEFAULT_CATALOG, start=1)
}


@app.get("/products")
def list_products(category: ProductCategory | None = None, available: bool | None = None):
    products = list(PRODUCTS.values())
    if category is not None:
        products = [p for p in products if p["category"] == category.value]
    if available is not None:
        products = [p for p in products if p["is_available"] == available]
    return sorted(products, key=lambda p: (p["category"], p["name"]))


@app.get("/products/{product_id}")
def get_product(product_id: int):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
