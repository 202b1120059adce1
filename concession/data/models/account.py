from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, String

from concession.data.database import Base


class AccountModel(Base):
    __tablename__ = "accounts"

    # external (chat) identity, not generated here
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    display_name = Column(String, nullable=False)
    username = Column(String, nullable=True)
    role = Column(String(32), nullable=False, default="customer")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
