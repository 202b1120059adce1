# concession/domain/enums.py
from enum import Enum


class OrderStatus(str, Enum):
    CART = "cart"
    PENDING = "pending"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# an order in one of these blocks the customer from placing another
ACTIVE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP}
)

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PREPARING})

# advance(): target -> required current status
FORWARD_TRANSITIONS = {
    OrderStatus.READY_FOR_PICKUP: OrderStatus.PREPARING,
    OrderStatus.COMPLETED: OrderStatus.READY_FOR_PICKUP,
}


class Role(str, Enum):
    CUSTOMER = "customer"
    COUNTER_A_STAFF = "counter_a_staff"
    COUNTER_B_STAFF = "counter_b_staff"
    DELIVERY_STAFF = "delivery_staff"

    @property
    def is_staff(self) -> bool:
        return self is not Role.CUSTOMER


class ProductCategory(str, Enum):
    POPCORN = "popcorn"
    DRINKS = "drinks"
    COTTON_CANDY = "cotton_candy"
    FOOD = "food"
    SWEETS = "sweets"
    TOYS = "toys"
    ICE_CREAM = "ice_cream"


class ResultCode(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    PRECONDITION_FAILED = "precondition_failed"
    INVALID = "invalid"
    STORE_UNAVAILABLE = "store_unavailable"
