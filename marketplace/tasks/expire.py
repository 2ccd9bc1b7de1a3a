# marketplace/tasks/expire.py
from datetime import datetime, timedelta, timezone

from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.repos.cart_repo import CartRepo
from marketplace.utils.settings import CART_TTL_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def expire_idle_carts(db, now: datetime | None = None) -> int:
    """Empties carts untouched for longer than CART_TTL_SECONDS; returns how many."""
    repo = CartRepo(db)
    idle_since = (now or datetime.now(timezone.utc)) - timedelta(seconds=CART_TTL_SECONDS)

    carts = repo.stale_carts(idle_since)
    logger.info(f"Found {len(carts)} idle carts to expire")

    for cart in carts:
        removed = repo.clear_items(cart.id)
        logger.info(f"Expired cart {cart.id} of customer {cart.customer_id}, removed {removed} lines")

    repo.commit()
    return len(carts)


@celery_app.task(name="marketplace.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        return expire_idle_carts(db)
    finally:
        db.close()
