from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Boolean, Float, DateTime, JSON, Index

from marketplace.data.database import Base


class LocationModel(Base):
    """Geocoded address of a customer (delivery address) or a retailer (store)."""

    __tablename__ = "locations"
    __table_args__ = (
        Index("ix_locations_lat_lng", "latitude", "longitude"),
        Index("ix_locations_owner", "owner_type", "owner_id"),
    )

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    owner_type = Column(String(20), nullable=False)  # customer, retailer

    label = Column(String(50), nullable=True)
    street = Column(String(200), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    formatted_address = Column(String(300), nullable=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)

    # retailer stores only
    store_name = Column(String(200), nullable=True)
    business_category = Column(String(30), nullable=True, index=True)
    operating_hours = Column(JSON, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
