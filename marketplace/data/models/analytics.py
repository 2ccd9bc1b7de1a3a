from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, Date, DateTime, JSON, UniqueConstraint

from marketplace.data.database import Base


class AnalyticsSnapshotModel(Base):
    __tablename__ = "analytics_snapshots"
    __table_args__ = (UniqueConstraint("retailer_id", "date", name="u_analytics_retailer_date"),)

    id = Column(Integer, primary_key=True)
    retailer_id = Column(Integer, ForeignKey("retailers.user_id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, index=True)

    metrics = Column(JSON, nullable=False, default=dict)
    product_metrics = Column(JSON, nullable=False, default=list)
    category_metrics = Column(JSON, nullable=False, default=list)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
