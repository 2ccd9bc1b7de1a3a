from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, UniqueConstraint

from marketplace.data.database import Base


class FavoriteStoreModel(Base):
    __tablename__ = "favorite_stores"
    __table_args__ = (UniqueConstraint("customer_id", "retailer_id", name="u_favorite_store"),)

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False)
    retailer_id = Column(Integer, ForeignKey("retailers.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class StoreReviewModel(Base):
    __tablename__ = "store_reviews"

    id = Column(Integer, primary_key=True)
    retailer_id = Column(Integer, ForeignKey("retailers.user_id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
