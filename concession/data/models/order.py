from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import relationship

from concession.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    account_id = Column(BigInteger, ForeignKey("accounts.id"), nullable=False, index=True)

    # cart, pending, preparing, ready_for_pickup, completed, cancelled
    status = Column(String(32), nullable=False, default="cart")
    destination = Column(String(32), nullable=True)

    delivery_side = Column(String(8), nullable=True)
    sector = Column(Integer, nullable=True)
    seat_row = Column(String(16), nullable=True)
    seat_number = Column(String(16), nullable=True)

    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    claimed_by = Column(BigInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
    placed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )

    __table_args__ = (
        # at most one open cart per account
        Index(
            "uq_orders_one_cart_per_account",
            "account_id",
            unique=True,
            postgresql_where=text("status = 'cart'"),
            sqlite_where=text("status = 'cart'"),
        ),
        Index("ix_orders_destination_status", "destination", "status"),
    )
