# concession/repos/order_repo.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from concession.data.models.order import OrderModel
from concession.data.models.order_item import OrderItemModel
from concession.data.models.product import ProductModel
from concession.domain.destination import Destination, DestinationKind
from concession.domain.entities import Order, merged_quantity, money
from concession.domain.enums import OrderStatus
from concession.domain.errors import NotFoundError, PreconditionFailed
from concession.repos.base import OrderRepo
from concession.repos.sql_support import destination_columns, to_order, translate_db_errors
from concession.utils.logging import get_logger

logger = get_logger(__name__)


class SqlOrderRepo(OrderRepo):
    def __init__(self, db: Session):
        self.db = db

    def _load(self, order_id: int, for_update: bool = False) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items))
            .execution_options(populate_existing=True)
        )
        if for_update:
            # row lock on Postgres, ignored by SQLite
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def _find_cart(self, account_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.account_id == account_id, OrderModel.status == OrderStatus.CART.value)
            .options(selectinload(OrderModel.items))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _load_cart_for_edit(self, order_id: int) -> OrderModel:
        order = self._load(order_id, for_update=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} does not exist")
        if order.status != OrderStatus.CART.value:
            raise PreconditionFailed(f"Order {order_id} is {order.status}, items can only change in the cart")
        return order

    def _recompute_total(self, order: OrderModel) -> None:
        # derived from the stored rows, never patched incrementally
        self.db.flush()
        rows = self.db.execute(
            select(OrderItemModel.quantity, OrderItemModel.price_at_selection)
            .where(OrderItemModel.order_id == order.id)
        ).all()
        order.total_amount = money(
            sum((Decimal(q) * Decimal(str(p)) for q, p in rows), Decimal("0.00"))
        )
        order.updated_at = datetime.now(timezone.utc)

    def _commit_and_reload(self, order_id: int) -> Order:
        self.db.commit()
        return to_order(self._load(order_id))

    # =====================================================
    # QUERY
    # =====================================================
    @translate_db_errors
    def get_order(self, order_id: int) -> Order | None:
        model = self._load(order_id)
        return to_order(model) if model else None

    @translate_db_errors
    def list_by_destination(self, kind: DestinationKind, statuses: Iterable[OrderStatus]) -> list[Order]:
        rows = self.db.execute(
            select(OrderModel)
            .where(
                OrderModel.destination == DestinationKind(kind).value,
                OrderModel.status.in_([OrderStatus(s).value for s in statuses]),
            )
            .options(selectinload(OrderModel.items))
            .order_by(OrderModel.placed_at, OrderModel.id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return [to_order(r) for r in rows]

    @translate_db_errors
    def list_for_account(self, account_id: int) -> list[Order]:
        rows = self.db.execute(
            select(OrderModel)
            .where(OrderModel.account_id == account_id, OrderModel.status != OrderStatus.CART.value)
            .options(selectinload(OrderModel.items))
            .order_by(OrderModel.placed_at.desc(), OrderModel.id.desc())
            .execution_options(populate_existing=True)
        ).scalars().all()
        return [to_order(r) for r in rows]

    # =====================================================
    # COMMANDS
    # =====================================================
    @translate_db_errors
    def get_or_create_cart(self, account_id: int) -> Order:
        existing = self._find_cart(account_id)
        if existing:
            return to_order(existing)

        cart = OrderModel(
            account_id=account_id,
            status=OrderStatus.CART.value,
            total_amount=Decimal("0.00"),
        )
        self.db.add(cart)
        try:
            self.db.commit()
        except IntegrityError:
            # partial unique index on (account_id) WHERE status='cart': another request won
            self.db.rollback()
            existing = self._find_cart(account_id)
            if existing is None:
                raise NotFoundError(f"Account {account_id} does not exist")
            logger.info(f"Concurrent cart creation for account {account_id}, reusing cart {existing.id}")
            return to_order(existing)

        logger.info(f"Cart {cart.id} created for account {account_id}")
        return to_order(self._load(cart.id))

    @translate_db_errors
    def upsert_item(self, order_id: int, product_id: int, quantity: int, unit_price: Decimal) -> Order:
        order = self._load_cart_for_edit(order_id)

        if self.db.get(ProductModel, product_id) is None:
            raise NotFoundError(f"Product {product_id} does not exist")

        existing_item = next((i for i in order.items if i.product_id == product_id), None)
        if existing_item:
            # price frozen at first selection stays
            existing_item.quantity = merged_quantity(existing_item.quantity, quantity)
        else:
            order.items.append(
                OrderItemModel(
                    product_id=product_id,
                    quantity=quantity,
                    price_at_selection=money(unit_price),
                )
            )

        self._recompute_total(order)
        return self._commit_and_reload(order_id)

    @translate_db_errors
    def set_item_quantity(self, order_id: int, product_id: int, quantity: int) -> Order:
        order = self._load_cart_for_edit(order_id)

        item = next((i for i in order.items if i.product_id == product_id), None)
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in order {order_id}")
        item.quantity = quantity

        self._recompute_total(order)
        return self._commit_and_reload(order_id)

    @translate_db_errors
    def delete_item(self, order_id: int, product_id: int) -> Order:
        order = self._load_cart_for_edit(order_id)

        item = next((i for i in order.items if i.product_id == product_id), None)
        if item is not None:
            order.items.remove(item)

        self._recompute_total(order)
        return self._commit_and_reload(order_id)

    @translate_db_errors
    def clear_items(self, order_id: int) -> Order:
        order = self._load_cart_for_edit(order_id)
        order.items.clear()

        self._recompute_total(order)
        return self._commit_and_reload(order_id)

    @translate_db_errors
    def place(self, order_id: int, destination: Destination, placed_at: datetime) -> bool:
        has_items = select(OrderItemModel.id).where(OrderItemModel.order_id == order_id).exists()
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.status == OrderStatus.CART.value,
                has_items,
            )
            .values(
                status=OrderStatus.PENDING.value,
                placed_at=placed_at,
                updated_at=placed_at,
                **destination_columns(destination),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    @translate_db_errors
    def transition(
        self,
        order_id: int,
        expected: Iterable[OrderStatus],
        new_status: OrderStatus,
        scope: DestinationKind | None = None,
        claimed_by: int | None = None,
    ) -> bool:
        # single conditional UPDATE, compare-and-swap on status
        stmt = update(OrderModel).where(
            OrderModel.id == order_id,
            OrderModel.status.in_([OrderStatus(s).value for s in expected]),
        )
        if scope is not None:
            stmt = stmt.where(OrderModel.destination == DestinationKind(scope).value)

        values = {
            "status": OrderStatus(new_status).value,
            "updated_at": datetime.now(timezone.utc),
        }
        if claimed_by is not None:
            values["claimed_by"] = claimed_by

        result = self.db.execute(stmt.values(**values).execution_options(synchronize_session=False))
        self.db.commit()
        return result.rowcount > 0
