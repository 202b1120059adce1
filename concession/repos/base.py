# concession/repos/base.py
"""
Storage ports.

Every port has a SQLAlchemy implementation and an in-memory one with the
same semantics; which one is used is decided by configuration
(``STORAGE_BACKEND``), see ``concession.repos.factory``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from concession.domain.destination import Destination, DestinationKind
from concession.domain.entities import Account, Order, Product
from concession.domain.enums import OrderStatus, ProductCategory, Role


class AccountRepo(ABC):
    @abstractmethod
    def get_account(self, account_id: int) -> Account | None: ...

    @abstractmethod
    def create_account(self, account: Account) -> Account:
        """Inserts the account; if it already exists returns the stored one."""

    @abstractmethod
    def update_profile(self, account_id: int, display_name: str, username: str | None) -> Account | None: ...

    @abstractmethod
    def set_role(self, account_id: int, role: Role) -> Account | None: ...


class ProductRepo(ABC):
    @abstractmethod
    def get_product(self, product_id: int) -> Product | None: ...

    @abstractmethod
    def list_available(self) -> List[Product]:
        """Available products ordered by category, then name."""

    @abstractmethod
    def list_by_category(self, category: ProductCategory) -> List[Product]:
        """Available products of one category ordered by name."""

    @abstractmethod
    def add_product(
        self, name: str, category: ProductCategory, price: Decimal, is_available: bool = True
    ) -> Product: ...

    @abstractmethod
    def count(self) -> int: ...


class OrderRepo(ABC):
    """
    Order aggregate storage.

    Item mutations are only legal on ``cart`` orders and always finish by
    recomputing ``total_amount`` from the stored line items, in the same unit
    of work. Status changes are conditional writes that report whether a row
    was actually changed.
    """

    # QUERY
    @abstractmethod
    def get_order(self, order_id: int) -> Order | None: ...

    @abstractmethod
    def list_by_destination(self, kind: DestinationKind, statuses: Iterable[OrderStatus]) -> List[Order]:
        """Orders for one destination in the given statuses, oldest placed first."""

    @abstractmethod
    def list_for_account(self, account_id: int) -> List[Order]:
        """Non-cart orders of an account, newest first."""

    # COMMANDS
    @abstractmethod
    def get_or_create_cart(self, account_id: int) -> Order: ...

    @abstractmethod
    def upsert_item(self, order_id: int, product_id: int, quantity: int, unit_price: Decimal) -> Order: ...

    @abstractmethod
    def set_item_quantity(self, order_id: int, product_id: int, quantity: int) -> Order: ...

    @abstractmethod
    def delete_item(self, order_id: int, product_id: int) -> Order: ...

    @abstractmethod
    def clear_items(self, order_id: int) -> Order: ...

    @abstractmethod
    def place(self, order_id: int, destination: Destination, placed_at: datetime) -> bool:
        """cart -> pending with destination attached, only if the cart has items."""

    @abstractmethod
    def transition(
        self,
        order_id: int,
        expected: Iterable[OrderStatus],
        new_status: OrderStatus,
        scope: DestinationKind | None = None,
        claimed_by: int | None = None,
    ) -> bool:
        """Sets ``new_status`` only if the current status is one of ``expected``
        (and the destination matches ``scope`` when given)."""


@dataclass(frozen=True)
class Repositories:
    accounts: AccountRepo
    products: ProductRepo
    orders: OrderRepo
