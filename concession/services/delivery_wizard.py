# concession/services/delivery_wizard.py
from dataclasses import dataclass
from typing import Any

from concession.domain.destination import DestinationKind, parse_seat_field, parse_sector, parse_side
from concession.domain.enums import OrderStatus
from concession.domain.errors import InvalidRequest
from concession.domain.outcome import Outcome
from concession.services.order_engine import OrderEngine
from concession.services.wizard_store import WizardSession, WizardStep, WizardStore
from concession.utils.logging import get_logger

logger = get_logger(__name__)

PROMPTS = {
    WizardStep.AWAITING_SIDE: "Which side of the venue are you on? (left / right)",
    WizardStep.AWAITING_SECTOR: "Sector number?",
    WizardStep.AWAITING_ROW: "Row?",
    WizardStep.AWAITING_SEAT: "Seat?",
}


@dataclass(frozen=True)
class WizardReply:
    accepted: bool
    step: WizardStep | None
    message: str = ""
    session: WizardSession | None = None
    # set once the wizard completes and the checkout ran
    outcome: Outcome | None = None


class DeliveryWizard:
    """
    Collects delivery coordinates one input at a time:
    side -> sector -> row -> seat -> complete.

    Completing the wizard runs one checkout to ``delivery`` with the whole
    coordinate tuple and discards the session, whatever the checkout result.
    """

    def __init__(self, store: WizardStore, engine: OrderEngine):
        self.store = store
        self.engine = engine

    def current(self, account_id: int) -> WizardSession | None:
        return self.store.get(account_id)

    def start(self, account_id: int, order_id: int) -> WizardReply:
        outcome = self.engine.get_order(order_id)
        if not outcome:
            return WizardReply(False, None, outcome.message)

        order = outcome.order
        if order.account_id != account_id:
            return WizardReply(False, None, f"Order {order_id} does not belong to account {account_id}")
        if order.status is not OrderStatus.CART:
            return WizardReply(False, None, f"Order {order_id} is already {order.status.value}")

        session = WizardSession(account_id=account_id, order_id=order_id)
        self.store.put(session)

        logger.info(f"Delivery wizard started for account {account_id}, order {order_id}")
        return WizardReply(True, session.step, PROMPTS[session.step], session)

    def cancel(self, account_id: int) -> bool:
        return self.store.discard(account_id)

    def submit(self, account_id: int, text: Any) -> WizardReply:
        session = self.store.get(account_id)
        if session is None:
            return WizardReply(False, None, "No delivery details are being collected")

        try:
            self._capture(session, text)
        except InvalidRequest as e:
            return WizardReply(False, session.step, f"{e}. {PROMPTS[session.step]}", session)

        if session.step is not WizardStep.COMPLETE:
            self.store.put(session)
            return WizardReply(True, session.step, PROMPTS[session.step], session)

        outcome = self.engine.checkout(session.order_id, DestinationKind.DELIVERY, session.coordinates())
        self.store.discard(account_id)

        logger.info(
            f"Delivery wizard for account {account_id} finished, checkout of order "
            f"{session.order_id}: {outcome.code.value}"
        )
        return WizardReply(outcome.ok, WizardStep.COMPLETE, outcome.message, session, outcome)

    @staticmethod
    def _capture(session: WizardSession, text: Any) -> None:
        """Stores one validated value and advances exactly one step."""
        if session.step is WizardStep.AWAITING_SIDE:
            session.side = parse_side(text).value
            session.step = WizardStep.AWAITING_SECTOR
        elif session.step is WizardStep.AWAITING_SECTOR:
            session.sector = parse_sector(text)
            session.step = WizardStep.AWAITING_ROW
        elif session.step is WizardStep.AWAITING_ROW:
            session.row = parse_seat_field(text, "row")
            session.step = WizardStep.AWAITING_SEAT
        elif session.step is WizardStep.AWAITING_SEAT:
            session.seat = parse_seat_field(text, "seat")
            session.step = WizardStep.COMPLETE
