from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), nullable=False, unique=True)
    customer_id = Column(Integer, ForeignKey("customers.user_id"), nullable=False, index=True)
    retailer_id = Column(Integer, ForeignKey("retailers.user_id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(30), nullable=False)
    payment_id = Column(String(100), nullable=True, index=True)

    total_amount = Column(Numeric(12, 2), nullable=False)
    shipping_address = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    status_history = relationship(
        "OrderStatusEventModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusEventModel.id",
    )
