# concession/services/order_engine.py
import functools
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from concession.domain.destination import DestinationKind, build_destination, scope_for_role
from concession.domain.entities import MAX_QUANTITY, Order, money
from concession.domain.enums import (
    ACTIVE_STATUSES,
    CANCELLABLE_STATUSES,
    FORWARD_TRANSITIONS,
    OrderStatus,
)
from concession.domain.errors import (
    InvalidRequest,
    NotFoundError,
    OrderEngineError,
    PreconditionFailed,
    StoreUnavailable,
)
from concession.domain.outcome import Outcome
from concession.repos.base import Repositories
from concession.utils.logging import get_logger

logger = get_logger(__name__)


def engine_boundary(fn):
    """Expected failures leave the engine as an Outcome, never as an exception."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs) -> Outcome:
        try:
            return fn(self, *args, **kwargs)
        except StoreUnavailable as e:
            logger.error(f"{fn.__name__}{args}: {e}")
            return Outcome.from_error(e)
        except OrderEngineError as e:
            logger.warning(f"{fn.__name__}{args} rejected: {e}")
            return Outcome.from_error(e)

    return wrapper


def _quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= MAX_QUANTITY:
        raise InvalidRequest(f"Quantity must be a whole number from 1 to {MAX_QUANTITY}, got {value!r}")
    return value


def _unit_price(value: Any) -> Decimal:
    price = money(value)
    if price < 0:
        raise InvalidRequest(f"Invalid unit price: {value!r}")
    return price


def _scope(role_scope: Any) -> DestinationKind:
    """Accepts a staff role or a destination selector."""
    try:
        return DestinationKind(role_scope)
    except ValueError:
        pass
    scope = scope_for_role(role_scope)
    if scope is None:
        raise InvalidRequest(f"Role {role_scope!r} does not serve any destination")
    return scope


class OrderEngine:
    """
    Lifecycle of the Order aggregate: cart bookkeeping, checkout and the
    staff-side status transitions.

    Every status change goes through a conditional write in the repository,
    so contended transitions (two sellers taking the same order) have exactly
    one winner. Authorization is left to the caller.
    """

    def __init__(self, repos: Repositories, notifier=None):
        self.accounts = repos.accounts
        self.products = repos.products
        self.orders = repos.orders
        self.notifier = notifier

    def _require_order(self, order_id: int) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} does not exist")
        return order

    def _rejection(self, order_id: int, action: str, scope: DestinationKind | None = None) -> OrderEngineError:
        """Explains why a conditional status write changed nothing."""
        order = self.orders.get_order(order_id)
        if order is None:
            return NotFoundError(f"Order {order_id} does not exist")
        if scope is not None and order.destination_kind is not scope:
            return PreconditionFailed(f"Order {order_id} is not served by {scope.value}")
        if action == "claim" and order.status in (
            OrderStatus.PREPARING,
            OrderStatus.READY_FOR_PICKUP,
            OrderStatus.COMPLETED,
        ):
            return PreconditionFailed(f"Order {order_id} already taken")
        return PreconditionFailed(f"Cannot {action} order {order_id} in status {order.status.value}")

    def _notify(self, method: str, order: Order) -> None:
        if self.notifier is None:
            return
        try:
            getattr(self.notifier, method)(order)
        except Exception as e:
            # the status change is already committed
            logger.warning(f"Notification {method} for order {order.id} failed: {e}")

    # =====================================================
    # QUERY
    # =====================================================
    @engine_boundary
    def get_order(self, order_id: int) -> Outcome:
        """
        Use Case: Order with its line items (Query).
        """
        return Outcome.success(self._require_order(order_id))

    @engine_boundary
    def orders_for_account(self, account_id: int) -> Outcome:
        """
        Use Case: Order history of an account, newest first, cart excluded (Query).
        """
        return Outcome.listing(self.orders.list_for_account(account_id))

    @engine_boundary
    def active_order_for_account(self, account_id: int) -> Outcome:
        """
        Use Case: The order the account is still waiting for, if any (Query).
        A new order should not be started while one is active.
        """
        active = next(
            (o for o in self.orders.list_for_account(account_id) if o.status in ACTIVE_STATUSES),
            None,
        )
        return Outcome.success(active)

    # =====================================================
    # COMMANDS - cart
    # =====================================================
    @engine_boundary
    def get_or_create_cart(self, account_id: int) -> Outcome:
        """
        Use Case: The account's open cart, created on first need (Command).
        At most one cart per account exists even under concurrent calls.
        """
        if self.accounts.get_account(account_id) is None:
            raise NotFoundError(f"Account {account_id} does not exist")
        return Outcome.success(self.orders.get_or_create_cart(account_id))

    @engine_boundary
    def add_item(self, order_id: int, product_id: int, quantity: int, unit_price: Any) -> Outcome:
        """
        Use Case: Add a product to the cart (Command).

        ``unit_price`` comes from a live catalog read and is frozen into the
        line item. Adding a product already in the cart only raises its
        quantity; the price of the first selection is kept.
        """
        quantity = _quantity(quantity)
        price = _unit_price(unit_price)

        order = self.orders.upsert_item(order_id, product_id, quantity, price)

        logger.info(
            f"Product {product_id} x{quantity} added to order {order_id}, total {order.total_amount}"
        )
        return Outcome.success(order)

    @engine_boundary
    def update_item_quantity(self, order_id: int, product_id: int, quantity: int) -> Outcome:
        quantity = _quantity(quantity)
        order = self.orders.set_item_quantity(order_id, product_id, quantity)

        logger.info(f"Product {product_id} in order {order_id} set to x{quantity}, total {order.total_amount}")
        return Outcome.success(order)

    @engine_boundary
    def remove_item(self, order_id: int, product_id: int) -> Outcome:
        """
        Use Case: Remove a product from the cart (Command).
        Removing a product that is not in the cart changes nothing and succeeds.
        """
        order = self.orders.delete_item(order_id, product_id)

        logger.info(f"Product {product_id} removed from order {order_id}, total {order.total_amount}")
        return Outcome.success(order)

    @engine_boundary
    def clear(self, order_id: int) -> Outcome:
        order = self.orders.clear_items(order_id)

        logger.info(f"Order {order_id} cleared")
        return Outcome.success(order)

    @engine_boundary
    def checkout(
        self,
        order_id: int,
        destination: Any,
        delivery_coordinates: Mapping[str, Any] | None = None,
    ) -> Outcome:
        """
        Use Case: Place the cart (Command).

        cart -> pending, with the destination (and for delivery the full
        side/sector/row/seat tuple) written in the same conditional update.
        Incomplete delivery coordinates fail the whole checkout; nothing is
        written and the order stays in the cart.
        """
        target = build_destination(destination, delivery_coordinates)

        placed = self.orders.place(order_id, target, datetime.now(timezone.utc))
        if not placed:
            order = self._require_order(order_id)
            if order.status is OrderStatus.CART and not order.items:
                raise PreconditionFailed(f"Cannot check out order {order_id}: the cart is empty")
            raise PreconditionFailed(f"Cannot check out order {order_id} in status {order.status.value}")

        order = self._require_order(order_id)
        logger.info(
            f"Order {order_id} placed for {target.kind.value}: {order.item_count} items, total {order.total_amount}"
        )

        self._notify("notify_new_order", order)
        return Outcome.success(order)

    # =====================================================
    # COMMANDS - fulfillment
    # =====================================================
    @engine_boundary
    def claim(self, order_id: int, role_scope: Any, staff_id: int | None = None) -> Outcome:
        """
        Use Case: A staff member takes a pending order (Command).

        pending -> preparing as one conditional write restricted to the
        staff scope. Of any number of simultaneous claims exactly one
        succeeds; the others get "already taken".
        """
        scope = _scope(role_scope)

        if not self.orders.transition(
            order_id,
            {OrderStatus.PENDING},
            OrderStatus.PREPARING,
            scope=scope,
            claimed_by=staff_id,
        ):
            raise self._rejection(order_id, "claim", scope)

        logger.info(f"Order {order_id} claimed by {staff_id} ({scope.value})")
        return Outcome.success(self._require_order(order_id), "Order taken")

    @engine_boundary
    def advance(self, order_id: int, new_status: Any, role_scope: Any = None) -> Outcome:
        """
        Use Case: Move an order forward (Command).

        preparing -> ready_for_pickup -> completed. Hardened like claim: the
        write only happens if the order is still in the expected status.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise InvalidRequest(f"Unknown status: {new_status!r}")

        expected = FORWARD_TRANSITIONS.get(target)
        if expected is None:
            raise InvalidRequest(f"Orders cannot be advanced to {target.value}")

        scope = _scope(role_scope) if role_scope is not None else None

        if not self.orders.transition(order_id, {expected}, target, scope=scope):
            raise self._rejection(order_id, f"advance to {target.value}", scope)

        order = self._require_order(order_id)
        logger.info(f"Order {order_id} moved {expected.value} -> {target.value}")

        if target is OrderStatus.READY_FOR_PICKUP:
            self._notify("notify_order_ready", order)
        return Outcome.success(order)

    @engine_boundary
    def cancel(self, order_id: int) -> Outcome:
        """
        Use Case: Cancel a pending or preparing order (Command).
        """
        if not self.orders.transition(order_id, CANCELLABLE_STATUSES, OrderStatus.CANCELLED):
            raise self._rejection(order_id, "cancel")

        logger.info(f"Order {order_id} cancelled")
        return Outcome.success(self._require_order(order_id))
