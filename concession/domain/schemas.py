# concession/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from concession.domain.destination import Delivery
from concession.domain.entities import MAX_QUANTITY, Order
from concession.domain.enums import OrderStatus, ProductCategory, Role


class AccountIn(BaseModel):
    """Schema for first contact of an account."""

    id: int = Field(..., gt=0, description="External account id (must be > 0)")
    display_name: str = Field(..., min_length=1, max_length=100)
    username: str | None = Field(None, max_length=64)


class RoleIn(BaseModel):
    """Schema for staff provisioning."""

    role: Role


class AccountOut(BaseModel):
    id: int
    display_name: str
    username: str | None = None
    role: Role

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    name: str
    category: ProductCategory
    price: Decimal
    is_available: bool

    model_config = ConfigDict(from_attributes=True)


class CartCreateIn(BaseModel):
    account_id: int = Field(..., gt=0)


class ItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product id (must be > 0)")
    quantity: int = Field(1, gt=0, le=MAX_QUANTITY, description=f"Quantity (1..{MAX_QUANTITY})")


class QuantityIn(BaseModel):
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY)


class DeliveryIn(BaseModel):
    side: str | None = None
    sector: int | None = None
    row: str | None = None
    seat: str | None = None


class CheckoutIn(BaseModel):
    """Schema for checkout. ``delivery`` is only read for the delivery destination."""

    destination: str = Field(..., description="counter_a, counter_b or delivery")
    delivery: DeliveryIn | None = None


class AdvanceIn(BaseModel):
    status: OrderStatus


class LineItemOut(BaseModel):
    product_id: int
    product_name: str | None = None
    quantity: int
    price_at_selection: Decimal
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class DestinationOut(BaseModel):
    kind: str
    side: str | None = None
    sector: int | None = None
    row: str | None = None
    seat: str | None = None


class OrderOut(BaseModel):
    """Schema for an order (cart included)."""

    id: int
    account_id: int
    status: OrderStatus
    destination: DestinationOut | None = None
    items: List[LineItemOut]
    total_amount: Decimal
    claimed_by: int | None = None
    created_at: datetime
    updated_at: datetime
    placed_at: datetime | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderOut":
        destination = None
        if order.destination is not None:
            extra = order.destination.as_dict() if isinstance(order.destination, Delivery) else {}
            destination = DestinationOut(kind=order.destination.kind.value, **extra)

        return cls(
            id=order.id,
            account_id=order.account_id,
            status=order.status,
            destination=destination,
            items=[LineItemOut.model_validate(i) for i in order.items],
            total_amount=order.total_amount,
            claimed_by=order.claimed_by,
            created_at=order.created_at,
            updated_at=order.updated_at,
            placed_at=order.placed_at,
        )


class WizardStartIn(BaseModel):
    order_id: int = Field(..., gt=0)


class WizardInputIn(BaseModel):
    text: str


class WizardOut(BaseModel):
    accepted: bool
    step: str | None = None
    message: str = ""
    order: OrderOut | None = None
