# concession/api/routers/wizard.py
from fastapi import APIRouter, Depends, HTTPException

from concession.api.deps import get_wizard
from concession.domain.schemas import OrderOut, WizardInputIn, WizardOut, WizardStartIn
from concession.services.delivery_wizard import PROMPTS, DeliveryWizard, WizardReply

router = APIRouter(prefix="/wizard/{account_id}", tags=["delivery wizard"])


def _to_out(reply: WizardReply) -> WizardOut:
    order = None
    if reply.outcome is not None and reply.outcome.order is not None:
        order = OrderOut.from_order(reply.outcome.order)
    return WizardOut(
        accepted=reply.accepted,
        step=reply.step.value if reply.step else None,
        message=reply.message,
        order=order,
    )


@router.post("/start", response_model=WizardOut)
def start(account_id: int, payload: WizardStartIn, wizard: DeliveryWizard = Depends(get_wizard)):
    """
    Starts collecting delivery coordinates for a cart. Restarting replaces
    any wizard the account had in progress.
    """
    return _to_out(wizard.start(account_id, payload.order_id))


@router.post("/input", response_model=WizardOut)
def submit(account_id: int, payload: WizardInputIn, wizard: DeliveryWizard = Depends(get_wizard)):
    """
    One chat reply. Invalid input is refused and the same question is asked
    again; the last answer places the order.
    """
    return _to_out(wizard.submit(account_id, payload.text))


@router.get("", response_model=WizardOut)
def current(account_id: int, wizard: DeliveryWizard = Depends(get_wizard)):
    session = wizard.current(account_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No delivery details are being collected")
    return WizardOut(accepted=True, step=session.step.value, message=PROMPTS.get(session.step, ""))


@router.delete("")
def cancel(account_id: int, wizard: DeliveryWizard = Depends(get_wizard)):
    return {"cancelled": wizard.cancel(account_id)}
