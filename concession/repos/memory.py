# concession/repos/memory.py
"""
In-memory storage backend.

All repositories built on one ``MemoryStore`` share its lock, so every
operation is a single-writer critical section: the compare-and-create of
carts and the compare-and-swap of statuses are atomic exactly like the
conditional writes of the SQL backend.
"""
import itertools
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List

from concession.domain.destination import Destination, DestinationKind
from concession.domain.entities import Account, LineItem, Order, Product, line_total, merged_quantity, money
from concession.domain.enums import OrderStatus, ProductCategory, Role
from concession.domain.errors import NotFoundError, PreconditionFailed
from concession.repos.base import AccountRepo, OrderRepo, ProductRepo
from concession.utils.logging import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _OrderRow:
    id: int
    account_id: int
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    destination: Destination | None = None
    placed_at: datetime | None = None
    claimed_by: int | None = None
    # product_id -> LineItem, insertion order = line order
    items: Dict[int, LineItem] = field(default_factory=dict)


class MemoryStore:
    def __init__(self):
        self.lock = threading.RLock()
        self.accounts: Dict[int, Account] = {}
        self.products: Dict[int, Product] = {}
        self.orders: Dict[int, _OrderRow] = {}
        self._product_ids = itertools.count(1)
        self._order_ids = itertools.count(1)
        self._item_ids = itertools.count(1)

    def next_product_id(self) -> int:
        return next(self._product_ids)

    def next_order_id(self) -> int:
        return next(self._order_ids)

    def next_item_id(self) -> int:
        return next(self._item_ids)


class MemoryAccountRepo(AccountRepo):
    def __init__(self, store: MemoryStore):
        self.store = store

    def get_account(self, account_id: int) -> Account | None:
        with self.store.lock:
            return self.store.accounts.get(account_id)

    def create_account(self, account: Account) -> Account:
        with self.store.lock:
            existing = self.store.accounts.get(account.id)
            if existing:
                return existing
            created = replace(account, created_at=account.created_at or _now())
            self.store.accounts[account.id] = created
            return created

    def update_profile(self, account_id: int, display_name: str, username: str | None) -> Account | None:
        with self.store.lock:
            existing = self.store.accounts.get(account_id)
            if existing is None:
                return None
            updated = replace(existing, display_name=display_name, username=username)
            self.store.accounts[account_id] = updated
            return updated

    def set_role(self, account_id: int, role: Role) -> Account | None:
        with self.store.lock:
            existing = self.store.accounts.get(account_id)
            if existing is None:
                return None
            updated = replace(existing, role=Role(role))
            self.store.accounts[account_id] = updated
            return updated


class MemoryProductRepo(ProductRepo):
    def __init__(self, store: MemoryStore):
        self.store = store

    def get_product(self, product_id: int) -> Product | None:
        with self.store.lock:
            return self.store.products.get(product_id)

    def list_available(self) -> List[Product]:
        with self.store.lock:
            products = [p for p in self.store.products.values() if p.is_available]
        return sorted(products, key=lambda p: (p.category.value, p.name))

    def list_by_category(self, category: ProductCategory) -> List[Product]:
        category = ProductCategory(category)
        with self.store.lock:
            products = [
                p for p in self.store.products.values() if p.is_available and p.category is category
            ]
        return sorted(products, key=lambda p: p.name)

    def add_product(
        self, name: str, category: ProductCategory, price: Decimal, is_available: bool = True
    ) -> Product:
        with self.store.lock:
            product = Product(
                id=self.store.next_product_id(),
                name=name,
                category=ProductCategory(category),
                price=money(price),
                is_available=is_available,
            )
            self.store.products[product.id] = product
            return product

    def count(self) -> int:
        with self.store.lock:
            return len(self.store.products)


class MemoryOrderRepo(OrderRepo):
    def __init__(self, store: MemoryStore):
        self.store = store

    def _snapshot(self, row: _OrderRow) -> Order:
        items = tuple(
            replace(i, product_name=self._product_name(i.product_id)) for i in row.items.values()
        )
        return Order(
            id=row.id,
            account_id=row.account_id,
            status=row.status,
            total_amount=row.total_amount,
            created_at=row.created_at,
            updated_at=row.updated_at,
            destination=row.destination,
            placed_at=row.placed_at,
            claimed_by=row.claimed_by,
            items=items,
        )

    def _product_name(self, product_id: int) -> str | None:
        product = self.store.products.get(product_id)
        return product.name if product else None

    def _cart_for_edit(self, order_id: int) -> _OrderRow:
        row = self.store.orders.get(order_id)
        if row is None:
            raise NotFoundError(f"Order {order_id} does not exist")
        if row.status is not OrderStatus.CART:
            raise PreconditionFailed(
                f"Order {order_id} is {row.status.value}, items can only change in the cart"
            )
        return row

    def _store_items(self, row: _OrderRow, items: Dict[int, LineItem]) -> None:
        # total first: a line set whose total cannot be stored leaves the row untouched
        total = line_total(items.values())
        row.items = items
        row.total_amount = total
        row.updated_at = _now()

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int) -> Order | None:
        with self.store.lock:
            row = self.store.orders.get(order_id)
            return self._snapshot(row) if row else None

    def list_by_destination(self, kind: DestinationKind, statuses: Iterable[OrderStatus]) -> List[Order]:
        kind = DestinationKind(kind)
        wanted = {OrderStatus(s) for s in statuses}
        with self.store.lock:
            rows = [
                r for r in self.store.orders.values()
                if r.destination is not None and r.destination.kind is kind and r.status in wanted
            ]
            rows.sort(key=lambda r: (r.placed_at or r.created_at, r.id))
            return [self._snapshot(r) for r in rows]

    def list_for_account(self, account_id: int) -> List[Order]:
        with self.store.lock:
            rows = [
                r for r in self.store.orders.values()
                if r.account_id == account_id and r.status is not OrderStatus.CART
            ]
            rows.sort(key=lambda r: (r.placed_at or r.created_at, r.id), reverse=True)
            return [self._snapshot(r) for r in rows]

    # =====================================================
    # COMMANDS
    # =====================================================
    def get_or_create_cart(self, account_id: int) -> Order:
        with self.store.lock:
            for row in self.store.orders.values():
                if row.account_id == account_id and row.status is OrderStatus.CART:
                    return self._snapshot(row)

            now = _now()
            row = _OrderRow(
                id=self.store.next_order_id(),
                account_id=account_id,
                status=OrderStatus.CART,
                total_amount=Decimal("0.00"),
                created_at=now,
                updated_at=now,
            )
            self.store.orders[row.id] = row
            logger.info(f"Cart {row.id} created for account {account_id}")
            return self._snapshot(row)

    def upsert_item(self, order_id: int, product_id: int, quantity: int, unit_price: Decimal) -> Order:
        with self.store.lock:
            row = self._cart_for_edit(order_id)
            if product_id not in self.store.products:
                raise NotFoundError(f"Product {product_id} does not exist")

            items = dict(row.items)
            existing_item = items.get(product_id)
            if existing_item:
                items[product_id] = replace(
                    existing_item, quantity=merged_quantity(existing_item.quantity, quantity)
                )
            else:
                items[product_id] = LineItem(
                    id=self.store.next_item_id(),
                    order_id=order_id,
                    product_id=product_id,
                    quantity=quantity,
                    price_at_selection=money(unit_price),
                )

            self._store_items(row, items)
            return self._snapshot(row)

    def set_item_quantity(self, order_id: int, product_id: int, quantity: int) -> Order:
        with self.store.lock:
            row = self._cart_for_edit(order_id)
            item = row.items.get(product_id)
            if item is None:
                raise NotFoundError(f"Product {product_id} is not in order {order_id}")
            items = dict(row.items)
            items[product_id] = replace(item, quantity=quantity)

            self._store_items(row, items)
            return self._snapshot(row)

    def delete_item(self, order_id: int, product_id: int) -> Order:
        with self.store.lock:
            row = self._cart_for_edit(order_id)
            items = dict(row.items)
            items.pop(product_id, None)

            self._store_items(row, items)
            return self._snapshot(row)

    def clear_items(self, order_id: int) -> Order:
        with self.store.lock:
            row = self._cart_for_edit(order_id)
            self._store_items(row, {})
            return self._snapshot(row)

    def place(self, order_id: int, destination: Destination, placed_at: datetime) -> bool:
        with self.store.lock:
            row = self.store.orders.get(order_id)
            if row is None or row.status is not OrderStatus.CART or not row.items:
                return False
            row.status = OrderStatus.PENDING
            row.destination = destination
            row.placed_at = placed_at
            row.updated_at = placed_at
            return True

    def transition(
        self,
        order_id: int,
        expected: Iterable[OrderStatus],
        new_status: OrderStatus,
        scope: DestinationKind | None = None,
        claimed_by: int | None = None,
    ) -> bool:
        expected = {OrderStatus(s) for s in expected}
        scope = DestinationKind(scope) if scope is not None else None
        with self.store.lock:
            row = self.store.orders.get(order_id)
            if row is None or row.status not in expected:
                return False
            if scope is not None and (row.destination is None or row.destination.kind is not scope):
                return False

            row.status = OrderStatus(new_status)
            row.updated_at = _now()
            if claimed_by is not None:
                row.claimed_by = claimed_by
            return True
