# concession/api/routers/accounts.py
from fastapi import APIRouter, Depends, HTTPException

from concession.api.deps import get_account_service
from concession.api.errors import require_account
from concession.domain.schemas import AccountIn, AccountOut, RoleIn
from concession.services.account_service import AccountService

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("/", response_model=AccountOut)
def ensure_account(payload: AccountIn, svc: AccountService = Depends(get_account_service)):
    """
    First contact of an account: creates it as a customer or refreshes its profile.
    """
    return svc.ensure_account(payload.id, payload.display_name, payload.username)


@router.get("/{account_id}", response_model=AccountOut)
def get_account(account_id: int, svc: AccountService = Depends(get_account_service)):
    return require_account(svc, account_id)


@router.put("/{account_id}/role", response_model=AccountOut)
def provision_role(account_id: int, payload: RoleIn, svc: AccountService = Depends(get_account_service)):
    """
    Staff provisioning. Operators only; the chat front-end never calls this.
    """
    account = svc.provision_role(account_id, payload.role)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
    return account
