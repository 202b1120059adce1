# concession/api/routers/catalog.py
from typing import List

from fastapi import APIRouter, Depends

from concession.api.deps import get_catalog
from concession.domain.enums import ProductCategory
from concession.domain.schemas import ProductOut
from concession.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["catalog"])


@router.get("/", response_model=List[ProductOut])
def list_products(
    category: ProductCategory | None = None,
    catalog: CatalogService = Depends(get_catalog),
):
    if category is None:
        return catalog.list_available()
    return catalog.list_by_category(category)
