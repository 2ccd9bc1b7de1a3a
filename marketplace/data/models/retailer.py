from sqlalchemy import Column, Integer, ForeignKey, String, Boolean, Numeric, Float, JSON, Text
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class RetailerModel(Base):
    __tablename__ = "retailers"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    business_name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    phone = Column(String(30), nullable=False)
    business_type = Column(String(30), nullable=False)  # grocery, electronics, clothing, pharmacy, general
    tax_id = Column(String(50), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)

    delivery_radius_km = Column(Float, nullable=False, default=5)
    min_order_amount = Column(Numeric(10, 2), nullable=False, default=0)
    # [{area, delivery_fee, min_order_amount, estimated_delivery_minutes}]
    delivery_areas = Column(JSON, nullable=False, default=list)

    average_rating = Column(Float, nullable=False, default=0)
    total_ratings = Column(Integer, nullable=False, default=0)

    total_orders = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Numeric(12, 2), nullable=False, default=0)

    user = relationship("UserModel")
