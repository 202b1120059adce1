# concession/repos/sql_support.py
import functools
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from concession.data.models.account import AccountModel
from concession.data.models.order import OrderModel
from concession.data.models.order_item import OrderItemModel
from concession.data.models.product import ProductModel
from concession.domain.destination import CounterA, CounterB, Delivery, Destination, DestinationKind
from concession.domain.entities import Account, LineItem, Order, Product, money
from concession.domain.enums import OrderStatus, ProductCategory, Role
from concession.domain.errors import OrderEngineError, StoreUnavailable
from concession.utils.logging import get_logger

logger = get_logger(__name__)


def translate_db_errors(fn):
    """Rolls back on any failure and re-raises; SQLAlchemy errors become StoreUnavailable."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except OrderEngineError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"{type(self).__name__}.{fn.__name__} failed: {e}")
            self.db.rollback()
            raise StoreUnavailable("Order store is unavailable") from e
        except Exception:
            # driver-level errors (e.g. OverflowError while binding) are not SQLAlchemyError
            self.db.rollback()
            raise

    return wrapper


def to_account(model: AccountModel) -> Account:
    return Account(
        id=model.id,
        display_name=model.display_name,
        role=Role(model.role),
        username=model.username,
        created_at=model.created_at,
    )


def to_product(model: ProductModel) -> Product:
    return Product(
        id=model.id,
        name=model.name,
        category=ProductCategory(model.category),
        price=money(model.price),
        is_available=bool(model.is_available),
    )


def to_destination(model: OrderModel) -> Destination | None:
    if model.destination is None:
        return None

    kind = DestinationKind(model.destination)
    if kind is DestinationKind.COUNTER_A:
        return CounterA()
    if kind is DestinationKind.COUNTER_B:
        return CounterB()
    return Delivery(
        side=model.delivery_side,
        sector=model.sector,
        row=model.seat_row,
        seat=model.seat_number,
    )


def destination_columns(destination: Destination) -> dict:
    values = {
        "destination": destination.kind.value,
        "delivery_side": None,
        "sector": None,
        "seat_row": None,
        "seat_number": None,
    }
    if isinstance(destination, Delivery):
        values.update(
            delivery_side=destination.side.value,
            sector=destination.sector,
            seat_row=destination.row,
            seat_number=destination.seat,
        )
    return values


def to_line_item(model: OrderItemModel) -> LineItem:
    return LineItem(
        id=model.id,
        order_id=model.order_id,
        product_id=model.product_id,
        quantity=model.quantity,
        price_at_selection=money(model.price_at_selection),
        product_name=model.product.name if model.product is not None else None,
    )


def to_order(model: OrderModel) -> Order:
    return Order(
        id=model.id,
        account_id=model.account_id,
        status=OrderStatus(model.status),
        total_amount=money(model.total_amount if model.total_amount is not None else Decimal("0")),
        created_at=model.created_at,
        updated_at=model.updated_at,
        destination=to_destination(model),
        placed_at=model.placed_at,
        claimed_by=model.claimed_by,
        items=tuple(to_line_item(i) for i in model.items),
    )
