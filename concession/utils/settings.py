# concession/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./concession.db")
# "sql" (SQLAlchemy, DATABASE_URL) or "memory" (in-process, for dev/tests)
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql")

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
WIZARD_BACKEND = os.getenv("WIZARD_BACKEND", "memory")
WIZARD_TTL_SECONDS = int(os.getenv("WIZARD_TTL_SECONDS", 15 * 60))

CATALOG_SOURCE = os.getenv("CATALOG_SOURCE", "store")
CATALOG_CACHE_TTL_SECONDS = int(os.getenv("CATALOG_CACHE_TTL_SECONDS", 5 * 60))
PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "http://product-service:8000")

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", 3))
