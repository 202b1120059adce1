# concession/domain/entities.py
"""
Storage-agnostic snapshots returned by the repositories.

Both the SQL and the in-memory repositories hand out these frozen objects,
never ORM instances, so callers observe identical semantics on either backend.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Tuple

from concession.domain.destination import Destination, DestinationKind
from concession.domain.enums import OrderStatus, ProductCategory, Role
from concession.domain.errors import InvalidRequest

CENT = Decimal("0.01")
MAX_QUANTITY = 999
# fits Numeric(10, 2)
MAX_AMOUNT = Decimal("99999999.99")


def money(value) -> Decimal:
    """Quantizes to cents. Raises InvalidRequest for anything Numeric(10, 2) cannot hold."""
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except InvalidOperation:
        raise InvalidRequest(f"Invalid amount: {value!r}")
    if amount.is_nan() or abs(amount) > MAX_AMOUNT:
        raise InvalidRequest(f"Amount out of range: {value!r}")
    return amount


def line_total(items: Iterable["LineItem"]) -> Decimal:
    return money(sum((i.quantity * i.price_at_selection for i in items), Decimal("0.00")))


def merged_quantity(current: int, added: int) -> int:
    """Quantity of a line after adding the same product again."""
    quantity = current + added
    if quantity > MAX_QUANTITY:
        raise InvalidRequest(f"At most {MAX_QUANTITY} of one product per order, got {quantity}")
    return quantity


@dataclass(frozen=True)
class Account:
    id: int
    display_name: str
    role: Role = Role.CUSTOMER
    username: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    category: ProductCategory
    price: Decimal
    is_available: bool = True


@dataclass(frozen=True)
class LineItem:
    id: int
    order_id: int
    product_id: int
    quantity: int
    price_at_selection: Decimal
    product_name: str | None = None

    @property
    def subtotal(self) -> Decimal:
        return money(self.quantity * self.price_at_selection)


@dataclass(frozen=True)
class Order:
    id: int
    account_id: int
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    destination: Destination | None = None
    placed_at: datetime | None = None
    claimed_by: int | None = None
    items: Tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def destination_kind(self) -> DestinationKind | None:
        return self.destination.kind if self.destination is not None else None

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def item_for(self, product_id: int) -> LineItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None
