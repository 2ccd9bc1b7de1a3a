# marketplace/data/seed.py
from marketplace.data.database import SessionLocal
from marketplace.services.auth_service import AuthService
from marketplace.utils.settings import ADMIN_EMAIL, ADMIN_PASSWORD
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def seed():
    # only seeds what is missing, safe to run on every start
    if not ADMIN_EMAIL or not ADMIN_PASSWORD:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set, no admin account seeded")
        return

    db = SessionLocal()
    try:
        AuthService(db).ensure_admin(ADMIN_EMAIL, ADMIN_PASSWORD)
    finally:
        db.close()
