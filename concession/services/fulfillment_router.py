# concession/services/fulfillment_router.py
from typing import Any, Iterable, List

from concession.domain.destination import DestinationKind, scope_for_role
from concession.domain.entities import Order
from concession.domain.enums import OrderStatus
from concession.repos.base import OrderRepo

NEW_STATUSES = (OrderStatus.PENDING,)
IN_PROGRESS_STATUSES = (OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP)


class FulfillmentRouter:
    """
    Which orders a staff member sees.

    Read-only: maps the role to its destination and returns the matching
    orders with their line items, oldest placed first, so the backlog is
    served in arrival order. Customers have no queue.
    """

    def __init__(self, orders: OrderRepo):
        self.orders = orders

    @staticmethod
    def destination_for(role: Any) -> DestinationKind | None:
        return scope_for_role(role)

    @staticmethod
    def can_act_on(role: Any, order: Order) -> bool:
        scope = scope_for_role(role)
        return scope is not None and order.destination_kind is scope

    def orders_for(self, role: Any, statuses: Iterable[OrderStatus]) -> List[Order]:
        scope = scope_for_role(role)
        if scope is None:
            return []
        return self.orders.list_by_destination(scope, statuses)

    def new_orders(self, role: Any) -> List[Order]:
        return self.orders_for(role, NEW_STATUSES)

    def active_orders(self, role: Any) -> List[Order]:
        return self.orders_for(role, IN_PROGRESS_STATUSES)

    def preparing_orders(self, role: Any) -> List[Order]:
        return [o for o in self.active_orders(role) if o.status is OrderStatus.PREPARING]

    def ready_orders(self, role: Any) -> List[Order]:
        return [o for o in self.active_orders(role) if o.status is OrderStatus.READY_FOR_PICKUP]
