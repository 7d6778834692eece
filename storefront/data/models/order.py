from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from storefront.data.database import Base
from storefront.domain.order_status import OrderStatus

class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_number = Column(String(40), nullable=False, unique=True)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    total_amount = Column(Numeric(10, 2), nullable=False)

    # adresy jako snapshot, nie referencja
    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=True)
    tracking_number = Column(String(40), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship("OrderItemModel", back_populates="order", cascade="all, delete-orphan")
