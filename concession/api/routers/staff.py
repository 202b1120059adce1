# concession/api/routers/staff.py
from typing import List

from fastapi import APIRouter, Depends

from concession.api.deps import get_account_service, get_fulfillment
from concession.api.errors import require_staff
from concession.domain.schemas import OrderOut
from concession.services.account_service import AccountService
from concession.services.fulfillment_router import FulfillmentRouter

router = APIRouter(prefix="/staff/{account_id}/orders", tags=["staff"])


def _listing(orders) -> List[OrderOut]:
    return [OrderOut.from_order(o) for o in orders]


@router.get("/new", response_model=List[OrderOut])
def new_orders(
    account_id: int,
    accounts: AccountService = Depends(get_account_service),
    fulfillment: FulfillmentRouter = Depends(get_fulfillment),
):
    """
    Pending orders for the staff member's destination, oldest first.
    """
    staff = require_staff(accounts, account_id)
    return _listing(fulfillment.new_orders(staff.role))


@router.get("/active", response_model=List[OrderOut])
def active_orders(
    account_id: int,
    accounts: AccountService = Depends(get_account_service),
    fulfillment: FulfillmentRouter = Depends(get_fulfillment),
):
    staff = require_staff(accounts, account_id)
    return _listing(fulfillment.active_orders(staff.role))


@router.get("/preparing", response_model=List[OrderOut])
def preparing_orders(
    account_id: int,
    accounts: AccountService = Depends(get_account_service),
    fulfillment: FulfillmentRouter = Depends(get_fulfillment),
):
    staff = require_staff(accounts, account_id)
    return _listing(fulfillment.preparing_orders(staff.role))


@router.get("/ready", response_model=List[OrderOut])
def ready_orders(
    account_id: int,
    accounts: AccountService = Depends(get_account_service),
    fulfillment: FulfillmentRouter = Depends(get_fulfillment),
):
    staff = require_staff(accounts, account_id)
    return _listing(fulfillment.ready_orders(staff.role))
