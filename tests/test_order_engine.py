"""
Order engine: cart bookkeeping, checkout and the staff-side transitions,
on both storage backends.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from concession.domain.destination import CounterA, Delivery, DeliverySide, DestinationKind
from concession.domain.entities import MAX_AMOUNT, MAX_QUANTITY
from concession.domain.enums import OrderStatus, ResultCode, Role
from concession.domain.errors import StoreUnavailable
from concession.repos.base import Repositories
from concession.repos.order_repo import SqlOrderRepo
from concession.services.order_engine import OrderEngine

FULL_SEAT = {"side": "left", "sector": 3, "row": "7", "seat": "12"}


def _run_concurrently(n, fn):
    """Runs ``fn(i)`` on ``n`` threads released at the same moment."""
    barrier = threading.Barrier(n)

    def worker(i):
        barrier.wait()
        return fn(i)

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(worker, range(n)))


def _assert_total_matches_lines(order):
    assert order.total_amount == sum((i.subtotal for i in order.items), Decimal("0.00"))


# ============================================================================
# Cart
# ============================================================================

class TestCart:
    def test_get_or_create_returns_the_same_cart(self, engine, customer):
        first = engine.get_or_create_cart(customer.id)
        second = engine.get_or_create_cart(customer.id)

        assert first and second
        assert first.order.id == second.order.id
        assert first.order.status is OrderStatus.CART
        assert first.order.total_amount == Decimal("0.00")

    def test_get_or_create_for_unknown_account(self, engine):
        outcome = engine.get_or_create_cart(424242)
        assert outcome.code is ResultCode.NOT_FOUND
        assert not outcome

    def test_concurrent_get_or_create_yields_one_cart(self, repo_factory, customer):
        engines = [OrderEngine(repo_factory()) for _ in range(8)]

        outcomes = _run_concurrently(8, lambda i: engines[i].get_or_create_cart(customer.id))

        assert all(outcomes), [o.message for o in outcomes]
        assert len({o.order.id for o in outcomes}) == 1

    def test_same_product_twice_merges_into_one_line(self, engine, customer, products):
        popcorn = products["Sweet popcorn"]
        cart = engine.get_or_create_cart(customer.id).order

        engine.add_item(cart.id, popcorn.id, 1, Decimal("150"))
        order = engine.add_item(cart.id, popcorn.id, 2, Decimal("150")).order

        assert len(order.items) == 1
        assert order.items[0].quantity == 3
        assert order.total_amount == Decimal("450.00")

    def test_price_is_frozen_at_first_selection(self, engine, customer, products):
        popcorn = products["Sweet popcorn"]
        cart = engine.get_or_create_cart(customer.id).order

        engine.add_item(cart.id, popcorn.id, 1, Decimal("150"))
        order = engine.add_item(cart.id, popcorn.id, 1, Decimal("999")).order

        assert order.item_for(popcorn.id).price_at_selection == Decimal("150.00")
        assert order.total_amount == Decimal("300.00")

    def test_total_follows_every_mutation(self, engine, customer, products):
        popcorn, cola, water = products["Caramel popcorn"], products["Cola"], products["Water"]
        cart = engine.get_or_create_cart(customer.id).order

        steps = [
            lambda: engine.add_item(cart.id, popcorn.id, 2, popcorn.price),
            lambda: engine.add_item(cart.id, cola.id, 1, cola.price),
            lambda: engine.add_item(cart.id, water.id, 4, water.price),
            lambda: engine.update_item_quantity(cart.id, cola.id, 3),
            lambda: engine.remove_item(cart.id, popcorn.id),
            lambda: engine.update_item_quantity(cart.id, water.id, 1),
        ]
        for step in steps:
            outcome = step()
            assert outcome, outcome.message
            _assert_total_matches_lines(outcome.order)

        # stored state agrees with the returned snapshot
        stored = engine.get_order(cart.id).order
        assert stored.total_amount == Decimal("350.00")
        _assert_total_matches_lines(stored)

    def test_clear_resets_total(self, engine, filled_cart):
        order = engine.clear(filled_cart.id).order
        assert order.items == ()
        assert order.total_amount == Decimal("0.00")

    def test_remove_absent_product_is_a_noop(self, engine, filled_cart, products):
        outcome = engine.remove_item(filled_cart.id, products["Water"].id)

        assert outcome
        assert outcome.order.total_amount == filled_cart.total_amount
        assert len(outcome.order.items) == 1

    @pytest.mark.parametrize("quantity", [0, -1, True, "2"])
    def test_update_quantity_rejects_non_positive(self, engine, filled_cart, products, quantity):
        outcome = engine.update_item_quantity(filled_cart.id, products["Sweet popcorn"].id, quantity)
        assert outcome.code is ResultCode.INVALID
        assert engine.get_order(filled_cart.id).order.items[0].quantity == 1

    def test_update_quantity_of_missing_line(self, engine, filled_cart, products):
        outcome = engine.update_item_quantity(filled_cart.id, products["Water"].id, 2)
        assert outcome.code is ResultCode.NOT_FOUND

    def test_add_item_validation(self, engine, customer, products):
        cart = engine.get_or_create_cart(customer.id).order
        cola = products["Cola"]

        assert engine.add_item(cart.id, cola.id, 0, cola.price).code is ResultCode.INVALID
        assert engine.add_item(cart.id, cola.id, 1, "-1").code is ResultCode.INVALID
        assert engine.add_item(cart.id, cola.id, 1, "abc").code is ResultCode.INVALID
        assert engine.add_item(cart.id, 9999, 1, Decimal("1")).code is ResultCode.NOT_FOUND
        assert engine.add_item(9999, cola.id, 1, cola.price).code is ResultCode.NOT_FOUND

    @pytest.mark.parametrize("price", ["1e30", "100000000", "Infinity", "NaN", "sNaN"])
    def test_out_of_range_price_is_invalid(self, engine, filled_cart, products, price):
        outcome = engine.add_item(filled_cart.id, products["Cola"].id, 1, price)

        assert outcome.code is ResultCode.INVALID
        stored = engine.get_order(filled_cart.id).order
        assert len(stored.items) == 1
        assert stored.total_amount == Decimal("150.00")

    @pytest.mark.parametrize("quantity", [MAX_QUANTITY + 1, 10**27])
    def test_quantity_above_limit_is_invalid(self, engine, filled_cart, products, quantity):
        cola = products["Cola"]

        assert engine.add_item(filled_cart.id, cola.id, quantity, cola.price).code is ResultCode.INVALID
        assert engine.update_item_quantity(
            filled_cart.id, products["Sweet popcorn"].id, quantity
        ).code is ResultCode.INVALID

        stored = engine.get_order(filled_cart.id).order
        assert [(i.product_id, i.quantity) for i in stored.items] == [(products["Sweet popcorn"].id, 1)]
        _assert_total_matches_lines(stored)

    def test_merged_quantity_above_limit_keeps_the_line(self, engine, customer, products):
        water = products["Water"]
        cart = engine.get_or_create_cart(customer.id).order
        engine.add_item(cart.id, water.id, MAX_QUANTITY, water.price)

        outcome = engine.add_item(cart.id, water.id, 1, water.price)

        assert outcome.code is ResultCode.INVALID
        stored = engine.get_order(cart.id).order
        assert stored.item_for(water.id).quantity == MAX_QUANTITY
        _assert_total_matches_lines(stored)

    def test_total_out_of_range_leaves_the_cart_untouched(self, engine, filled_cart, products):
        outcome = engine.add_item(filled_cart.id, products["Cola"].id, MAX_QUANTITY, MAX_AMOUNT)

        assert outcome.code is ResultCode.INVALID
        stored = engine.get_order(filled_cart.id).order
        assert len(stored.items) == 1
        assert stored.total_amount == Decimal("150.00")
        _assert_total_matches_lines(stored)

        # the store is still usable afterwards
        assert engine.add_item(filled_cart.id, products["Cola"].id, 1, products["Cola"].price)

    def test_items_cannot_change_after_checkout(self, engine, filled_cart, products):
        engine.checkout(filled_cart.id, "counter_a")
        cola = products["Cola"]

        assert engine.add_item(filled_cart.id, cola.id, 1, cola.price).code is ResultCode.PRECONDITION_FAILED
        assert engine.clear(filled_cart.id).code is ResultCode.PRECONDITION_FAILED
        assert engine.get_order(filled_cart.id).order.total_amount == Decimal("150.00")


# ============================================================================
# Checkout
# ============================================================================

class TestCheckout:
    def test_checkout_to_counter(self, engine, filled_cart, notifier):
        outcome = engine.checkout(filled_cart.id, "counter_a")

        assert outcome
        order = outcome.order
        assert order.status is OrderStatus.PENDING
        assert order.destination == CounterA()
        assert order.placed_at is not None
        assert notifier.new_orders == [order.id]

    def test_checkout_to_delivery_keeps_all_coordinates(self, engine, filled_cart):
        order = engine.checkout(filled_cart.id, "delivery", FULL_SEAT).order

        assert order.destination_kind is DestinationKind.DELIVERY
        assert order.destination == Delivery(side=DeliverySide.LEFT, sector=3, row="7", seat="12")

    @pytest.mark.parametrize(
        "coordinates",
        [
            None,
            {"side": "left"},
            {"side": "left", "sector": 3, "row": "7"},
            {"side": "left", "sector": 3, "row": "7", "seat": ""},
            {"side": "up", "sector": 3, "row": "7", "seat": "12"},
            {"side": "left", "sector": "abc", "row": "7", "seat": "12"},
        ],
    )
    def test_incomplete_delivery_leaves_the_cart(self, engine, filled_cart, notifier, coordinates):
        outcome = engine.checkout(filled_cart.id, "delivery", coordinates)

        assert outcome.code is ResultCode.INVALID
        stored = engine.get_order(filled_cart.id).order
        assert stored.status is OrderStatus.CART
        assert stored.destination is None
        assert notifier.new_orders == []

    def test_unknown_destination(self, engine, filled_cart):
        assert engine.checkout(filled_cart.id, "rooftop").code is ResultCode.INVALID

    def test_empty_cart_cannot_be_checked_out(self, engine, customer):
        cart = engine.get_or_create_cart(customer.id).order

        outcome = engine.checkout(cart.id, "counter_b")

        assert outcome.code is ResultCode.PRECONDITION_FAILED
        assert "empty" in outcome.message
        assert engine.get_order(cart.id).order.status is OrderStatus.CART

    def test_second_checkout_fails(self, engine, filled_cart):
        assert engine.checkout(filled_cart.id, "counter_a")
        assert engine.checkout(filled_cart.id, "counter_b").code is ResultCode.PRECONDITION_FAILED
        assert engine.get_order(filled_cart.id).order.destination == CounterA()

    def test_unknown_order(self, engine):
        assert engine.checkout(4242, "counter_a").code is ResultCode.NOT_FOUND

    def test_new_cart_after_checkout(self, engine, filled_cart, customer):
        engine.checkout(filled_cart.id, "counter_a")
        new_cart = engine.get_or_create_cart(customer.id).order
        assert new_cart.id != filled_cart.id
        assert new_cart.status is OrderStatus.CART

    def test_notifier_failure_does_not_undo_checkout(self, repos, filled_cart):
        notifier = MagicMock()
        notifier.notify_new_order.side_effect = RuntimeError("broker down")
        engine = OrderEngine(repos, notifier=notifier)

        outcome = engine.checkout(filled_cart.id, "counter_b")

        assert outcome
        assert engine.get_order(filled_cart.id).order.status is OrderStatus.PENDING


# ============================================================================
# Claim / advance / cancel
# ============================================================================

class TestFulfillment:
    def test_concurrent_claims_have_one_winner(self, repo_factory, place_order):
        order = place_order(2001, "counter_a")
        engines = [OrderEngine(repo_factory()) for _ in range(8)]

        outcomes = _run_concurrently(
            8, lambda i: engines[i].claim(order.id, Role.COUNTER_A_STAFF, staff_id=500 + i)
        )

        winners = [i for i, o in enumerate(outcomes) if o]
        assert len(winners) == 1
        losers = [o for o in outcomes if not o]
        assert all(o.code is ResultCode.PRECONDITION_FAILED for o in losers)
        assert all("already taken" in o.message for o in losers)

        stored = engines[0].get_order(order.id).order
        assert stored.status is OrderStatus.PREPARING
        assert stored.claimed_by == 500 + winners[0]

    def test_claim_outside_scope(self, engine, place_order):
        order = place_order(2001, "counter_a")

        outcome = engine.claim(order.id, Role.COUNTER_B_STAFF, staff_id=7)

        assert outcome.code is ResultCode.PRECONDITION_FAILED
        assert engine.get_order(order.id).order.status is OrderStatus.PENDING

    def test_claim_accepts_a_destination_scope(self, engine, place_order):
        order = place_order(2001, "delivery", FULL_SEAT)
        assert engine.claim(order.id, DestinationKind.DELIVERY)

    def test_customer_cannot_claim(self, engine, place_order):
        order = place_order(2001, "counter_a")
        assert engine.claim(order.id, Role.CUSTOMER).code is ResultCode.INVALID

    def test_claim_cart_is_refused(self, engine, filled_cart):
        outcome = engine.claim(filled_cart.id, DestinationKind.COUNTER_A)
        assert outcome.code is ResultCode.PRECONDITION_FAILED

    def test_full_lifecycle(self, engine, place_order, notifier):
        order = place_order(2001, "counter_a")

        assert engine.claim(order.id, Role.COUNTER_A_STAFF, staff_id=1)
        assert engine.claim(order.id, Role.COUNTER_A_STAFF, staff_id=2).code is ResultCode.PRECONDITION_FAILED

        ready = engine.advance(order.id, OrderStatus.READY_FOR_PICKUP)
        assert ready.order.status is OrderStatus.READY_FOR_PICKUP
        assert notifier.ready_orders == [order.id]

        done = engine.advance(order.id, "completed")
        assert done.order.status is OrderStatus.COMPLETED
        assert done.order.claimed_by == 1

        assert engine.cancel(order.id).code is ResultCode.PRECONDITION_FAILED
        assert engine.get_order(order.id).order.status is OrderStatus.COMPLETED

    @pytest.mark.parametrize("target", ["pending", "cart", "cancelled", "preparing", "shipped"])
    def test_advance_rejects_non_forward_targets(self, engine, place_order, target):
        order = place_order(2001, "counter_a")
        engine.claim(order.id, Role.COUNTER_A_STAFF)

        assert engine.advance(order.id, target).code is ResultCode.INVALID
        assert engine.get_order(order.id).order.status is OrderStatus.PREPARING

    def test_advance_cannot_skip_a_step(self, engine, place_order):
        order = place_order(2001, "counter_a")

        assert engine.advance(order.id, "ready_for_pickup").code is ResultCode.PRECONDITION_FAILED
        assert engine.advance(order.id, "completed").code is ResultCode.PRECONDITION_FAILED
        assert engine.get_order(order.id).order.status is OrderStatus.PENDING

    def test_advance_with_wrong_scope(self, engine, place_order):
        order = place_order(2001, "counter_a")
        engine.claim(order.id, Role.COUNTER_A_STAFF)

        outcome = engine.advance(order.id, "ready_for_pickup", role_scope=Role.DELIVERY_STAFF)
        assert outcome.code is ResultCode.PRECONDITION_FAILED

    def test_cancel_pending_and_preparing(self, engine, place_order):
        pending = place_order(2001, "counter_a")
        preparing = place_order(2002, "counter_b")
        engine.claim(preparing.id, Role.COUNTER_B_STAFF)

        assert engine.cancel(pending.id).order.status is OrderStatus.CANCELLED
        assert engine.cancel(preparing.id).order.status is OrderStatus.CANCELLED
        assert engine.cancel(pending.id).code is ResultCode.PRECONDITION_FAILED

    def test_cancel_cart_or_unknown(self, engine, filled_cart):
        assert engine.cancel(filled_cart.id).code is ResultCode.PRECONDITION_FAILED
        assert engine.cancel(4242).code is ResultCode.NOT_FOUND


# ============================================================================
# Queries
# ============================================================================

class TestQueries:
    def test_history_excludes_cart_newest_first(self, engine, place_order, customer):
        first = place_order(customer.id, "counter_a")
        second = place_order(customer.id, "counter_b")
        engine.get_or_create_cart(customer.id)

        history = engine.orders_for_account(customer.id)

        assert [o.id for o in history.orders] == [second.id, first.id]

    def test_active_order(self, engine, customer, filled_cart):
        assert engine.active_order_for_account(customer.id).order is None

        engine.checkout(filled_cart.id, "counter_a")
        assert engine.active_order_for_account(customer.id).order.id == filled_cart.id

        engine.cancel(filled_cart.id)
        assert engine.active_order_for_account(customer.id).order is None

    def test_get_unknown_order(self, engine):
        outcome = engine.get_order(4242)
        assert outcome.code is ResultCode.NOT_FOUND
        assert outcome.order is None


# ============================================================================
# Store failures
# ============================================================================

class TestStoreUnavailable:
    def test_repository_failure_becomes_an_outcome(self):
        orders = MagicMock()
        orders.get_order.side_effect = StoreUnavailable("Order store is unavailable")
        engine = OrderEngine(Repositories(accounts=MagicMock(), products=MagicMock(), orders=orders))

        outcome = engine.get_order(1)

        assert outcome.code is ResultCode.STORE_UNAVAILABLE
        assert not outcome

    def test_sql_errors_are_translated_and_rolled_back(self):
        db = MagicMock()
        db.execute.side_effect = OperationalError("UPDATE orders", {}, Exception("disk I/O error"))
        repo = SqlOrderRepo(db)

        with pytest.raises(StoreUnavailable):
            repo.transition(1, {OrderStatus.PENDING}, OrderStatus.PREPARING)
        db.rollback.assert_called_once()

    def test_engine_reports_sql_failure(self):
        db = MagicMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        engine = OrderEngine(
            Repositories(accounts=MagicMock(), products=MagicMock(), orders=SqlOrderRepo(db))
        )

        assert engine.cancel(1).code is ResultCode.STORE_UNAVAILABLE

    def test_unexpected_driver_errors_still_roll_back(self):
        db = MagicMock()
        db.execute.side_effect = OverflowError("Python int too large to convert to SQLite INTEGER")
        repo = SqlOrderRepo(db)

        with pytest.raises(OverflowError):
            repo.transition(1, {OrderStatus.PENDING}, OrderStatus.PREPARING)
        db.rollback.assert_called_once()
