# settings are read at import time, so the test environment goes in first
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("GOOGLE_MAPS_API_KEY", None)
