# concession/api/errors.py
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from concession.domain.entities import Account, Order
from concession.domain.enums import ResultCode
from concession.domain.errors import OrderEngineError
from concession.domain.outcome import Outcome
from concession.services.account_service import AccountService
from concession.services.order_engine import OrderEngine

STATUS_BY_CODE = {
    ResultCode.NOT_FOUND: 404,
    ResultCode.PRECONDITION_FAILED: 409,
    ResultCode.INVALID: 422,
    ResultCode.STORE_UNAVAILABLE: 503,
}


def raise_for_outcome(outcome: Outcome) -> Outcome:
    if not outcome:
        raise HTTPException(status_code=STATUS_BY_CODE[outcome.code], detail=outcome.message)
    return outcome


def require_account(accounts: AccountService, account_id: int) -> Account:
    account = accounts.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
    return account


def require_staff(accounts: AccountService, account_id: int) -> Account:
    account = require_account(accounts, account_id)
    if not account.role.is_staff:
        raise HTTPException(status_code=403, detail=f"Account {account_id} is not staff")
    return account


def require_owned_order(engine: OrderEngine, order_id: int, account_id: int) -> Order:
    order = raise_for_outcome(engine.get_order(order_id)).order
    if order.account_id != account_id:
        raise HTTPException(status_code=403, detail=f"Order {order_id} does not belong to account {account_id}")
    return order


async def engine_error_handler(request: Request, exc: OrderEngineError):
    # services outside the engine boundary (catalog, wizard store, accounts) raise these
    return JSONResponse(status_code=STATUS_BY_CODE.get(exc.code, 400), content={"detail": str(exc)})
