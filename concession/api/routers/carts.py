# concession/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query

from concession.api.deps import get_account_service, get_catalog, get_engine
from concession.api.errors import raise_for_outcome, require_account, require_owned_order
from concession.domain.schemas import CartCreateIn, CheckoutIn, ItemIn, OrderOut, QuantityIn
from concession.services.account_service import AccountService
from concession.services.catalog_service import CatalogService
from concession.services.order_engine import OrderEngine

router = APIRouter(prefix="/carts", tags=["carts"])


@router.post("/", response_model=OrderOut)
def get_or_create_cart(
    payload: CartCreateIn,
    engine: OrderEngine = Depends(get_engine),
    accounts: AccountService = Depends(get_account_service),
):
    require_account(accounts, payload.account_id)
    outcome = raise_for_outcome(engine.get_or_create_cart(payload.account_id))
    return OrderOut.from_order(outcome.order)


@router.get("/{order_id}", response_model=OrderOut)
def get_cart(
    order_id: int,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    return OrderOut.from_order(require_owned_order(engine, order_id, account_id))


@router.post("/{order_id}/items", response_model=OrderOut)
def add_item(
    order_id: int,
    payload: ItemIn,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
    catalog: CatalogService = Depends(get_catalog),
):
    """
    The price is read live from the catalog and frozen into the line item.
    """
    require_owned_order(engine, order_id, account_id)

    product = catalog.get_live_product(payload.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {payload.product_id} not found")
    if not product.is_available:
        raise HTTPException(status_code=409, detail=f"Product {product.name} is not available")

    outcome = raise_for_outcome(engine.add_item(order_id, product.id, payload.quantity, product.price))
    return OrderOut.from_order(outcome.order)


@router.put("/{order_id}/items/{product_id}", response_model=OrderOut)
def update_item(
    order_id: int,
    product_id: int,
    payload: QuantityIn,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    require_owned_order(engine, order_id, account_id)
    outcome = raise_for_outcome(engine.update_item_quantity(order_id, product_id, payload.quantity))
    return OrderOut.from_order(outcome.order)


@router.delete("/{order_id}/items/{product_id}", response_model=OrderOut)
def remove_item(
    order_id: int,
    product_id: int,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    require_owned_order(engine, order_id, account_id)
    outcome = raise_for_outcome(engine.remove_item(order_id, product_id))
    return OrderOut.from_order(outcome.order)


@router.delete("/{order_id}/items", response_model=OrderOut)
def clear_cart(
    order_id: int,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    require_owned_order(engine, order_id, account_id)
    outcome = raise_for_outcome(engine.clear(order_id))
    return OrderOut.from_order(outcome.order)


@router.post("/{order_id}/checkout", response_model=OrderOut)
def checkout(
    order_id: int,
    payload: CheckoutIn,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    """
    Places the cart. For ``delivery`` all four seat coordinates are required
    in the same request; a partial set is refused and the cart stays as is.
    """
    require_owned_order(engine, order_id, account_id)

    coordinates = payload.delivery.model_dump() if payload.delivery else None
    outcome = raise_for_outcome(engine.checkout(order_id, payload.destination, coordinates))
    return OrderOut.from_order(outcome.order)
