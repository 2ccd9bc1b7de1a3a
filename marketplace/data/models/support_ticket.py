from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Text, Index
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class SupportTicketModel(Base):
    __tablename__ = "support_tickets"
    __table_args__ = (
        Index("ix_tickets_customer_status", "customer_id", "status"),
        Index("ix_tickets_retailer_status", "retailer_id", "status"),
    )

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.user_id"), nullable=False)
    retailer_id = Column(Integer, ForeignKey("retailers.user_id"), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)

    subject = Column(String(200), nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="open")

    resolution = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    satisfaction_rating = Column(Integer, nullable=True)
    satisfaction_feedback = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    messages = relationship(
        "TicketMessageModel",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketMessageModel.id",
    )
