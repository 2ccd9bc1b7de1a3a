# marketplace/tasks/analytics.py
from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.services.analytics_service import AnalyticsService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="marketplace.tasks.analytics.refresh_all_analytics_task")
def refresh_all_analytics_task():
    logger.info("Nightly analytics refresh started")

    db = SessionLocal()
    try:
        count = AnalyticsService(db).refresh_all()
        logger.info(f"Refreshed analytics for {count} retailers")
        return count
    finally:
        db.close()
