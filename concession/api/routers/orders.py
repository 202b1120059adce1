# concession/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from concession.api.deps import get_account_service, get_engine, get_fulfillment
from concession.api.errors import raise_for_outcome, require_account, require_staff
from concession.domain.enums import OrderStatus
from concession.domain.schemas import AdvanceIn, OrderOut
from concession.services.account_service import AccountService
from concession.services.fulfillment_router import FulfillmentRouter
from concession.services.order_engine import OrderEngine

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=List[OrderOut])
def order_history(
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    """
    Orders of the account, newest first. The open cart is not listed.
    """
    outcome = raise_for_outcome(engine.orders_for_account(account_id))
    return [OrderOut.from_order(o) for o in outcome.orders]


@router.get("/active", response_model=OrderOut | None)
def active_order(
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
):
    outcome = raise_for_outcome(engine.active_order_for_account(account_id))
    return OrderOut.from_order(outcome.order) if outcome.order else None


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
    accounts: AccountService = Depends(get_account_service),
    fulfillment: FulfillmentRouter = Depends(get_fulfillment),
):
    """
    Visible to its owner and to the staff serving its destination.
    """
    account = require_account(accounts, account_id)
    order = raise_for_outcome(engine.get_order(order_id)).order

    if order.account_id != account.id and not fulfillment.can_act_on(account.role, order):
        raise HTTPException(status_code=403, detail=f"Order {order_id} is not visible to account {account_id}")
    return OrderOut.from_order(order)


@router.post("/{order_id}/claim", response_model=OrderOut)
def claim_order(
    order_id: int,
    account_id: int = Query(..., description="Staff account taking the order"),
    engine: OrderEngine = Depends(get_engine),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Of simultaneous claims exactly one succeeds; the others get 409.
    """
    staff = require_staff(accounts, account_id)
    outcome = raise_for_outcome(engine.claim(order_id, staff.role, staff_id=staff.id))
    return OrderOut.from_order(outcome.order)


@router.post("/{order_id}/advance", response_model=OrderOut)
def advance_order(
    order_id: int,
    payload: AdvanceIn,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
    accounts: AccountService = Depends(get_account_service),
):
    staff = require_staff(accounts, account_id)
    outcome = raise_for_outcome(engine.advance(order_id, payload.status, role_scope=staff.role))
    return OrderOut.from_order(outcome.order)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    account_id: int = Query(...),
    engine: OrderEngine = Depends(get_engine),
    accounts: AccountService = Depends(get_account_service),
    fulfillment: FulfillmentRouter = Depends(get_fulfillment),
):
    """
    Staff serving the destination may cancel pending and preparing orders.
    The customer may only withdraw an order nobody has taken yet.
    """
    account = require_account(accounts, account_id)
    order = raise_for_outcome(engine.get_order(order_id)).order

    is_owner = order.account_id == account.id and order.status is OrderStatus.PENDING
    if not (is_owner or fulfillment.can_act_on(account.role, order)):
        raise HTTPException(status_code=403, detail=f"Account {account_id} cannot cancel order {order_id}")

    outcome = raise_for_outcome(engine.cancel(order_id))
    return OrderOut.from_order(outcome.order)
