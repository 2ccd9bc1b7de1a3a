# marketplace/celery_worker.py
from celery import Celery
from celery.schedules import crontab

from marketplace.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "marketplace.tasks.expire",
    "marketplace.tasks.analytics",
    "marketplace.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-idle-carts-hourly": {
        "task": "marketplace.tasks.expire.expire_carts_task",
        "schedule": 60.0 * 60,
    },
    "refresh-retailer-analytics-nightly": {
        "task": "marketplace.tasks.analytics.refresh_all_analytics_task",
        "schedule": crontab(hour=23, minute=55),
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_eager_propagates = CELERY_TASK_ALWAYS_EAGER
