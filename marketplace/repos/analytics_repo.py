# marketplace/repos/analytics_repo.py
from datetime import date

from sqlalchemy import select

from marketplace.data.models.analytics import AnalyticsSnapshotModel
from marketplace.repos.base import SessionRepo


class AnalyticsRepo(SessionRepo):
    def get_snapshot(self, retailer_id: int, day: date) -> AnalyticsSnapshotModel | None:
        return self.db.execute(
            select(AnalyticsSnapshotModel).where(
                AnalyticsSnapshotModel.retailer_id == retailer_id,
                AnalyticsSnapshotModel.date == day,
            )
        ).scalar_one_or_none()

    def in_range(self, retailer_id: int, start: date, end: date) -> list[AnalyticsSnapshotModel]:
        return list(
            self.db.execute(
                select(AnalyticsSnapshotModel)
                .where(
                    AnalyticsSnapshotModel.retailer_id == retailer_id,
                    AnalyticsSnapshotModel.date >= start,
                    AnalyticsSnapshotModel.date <= end,
                )
                .order_by(AnalyticsSnapshotModel.date.desc())
            ).scalars()
        )
