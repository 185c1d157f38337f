import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()  # Load .env file if present

BASE_DIR = Path(__file__).resolve().parents[2]
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() in {"1", "true", "yes"}
raw_hosts = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1")
ALLOWED_HOSTS = [h.strip() for h in raw_hosts.split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # Our apps
    "roi_backend.apps.users.apps.UsersConfig",
    "roi_backend.apps.investments.apps.InvestmentsConfig",
]

# Postgres by default; override with dev/test settings as needed
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": os.getenv("DB_HOST", "localhost"),
        "PORT": os.getenv("DB_PORT", "5432"),
        "NAME": os.getenv("DB_NAME", "roi_db"),
        "USER": os.getenv("DB_USER", "roi_user"),
        "PASSWORD": os.getenv("DB_PASSWORD", "roi_password"),
    }
}

DATABASE_URL = os.getenv("DATABASE_URL")
if DATABASE_URL:
    from urllib.parse import urlparse

    parsed = urlparse(DATABASE_URL)
    DATABASES["default"].update(
        {
            "NAME": parsed.path.lstrip("/"),
            "USER": parsed.username,
            "PASSWORD": parsed.password,
            "HOST": parsed.hostname,
            "PORT": parsed.port or "5432",
            "OPTIONS": {"sslmode": os.getenv("DB_SSLMODE", "require")},
        }
    )

LANGUAGE_CODE = "en-us"
TIME_ZONE = "Africa/Lagos"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Celery configuration
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_DEFAULT_QUEUE = os.getenv("CELERY_TASK_DEFAULT_QUEUE", "roi")
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_TIME_LIMIT = int(os.getenv("CELERY_TASK_TIME_LIMIT", "60"))

CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True

# ==============================================================================
# ROI accrual engine
# ==============================================================================

# Testing mode compresses a "day" to one hour for manual QA. It is read once at
# startup; switching it requires a restart.
ROI_TESTING_MODE = os.getenv("ROI_TESTING_MODE", "false").lower() in {"1", "true", "yes"}

ROI_CYCLE_SECONDS = int(
    os.getenv("ROI_CYCLE_SECONDS", "3600" if ROI_TESTING_MODE else "86400")
)
ROI_MIN_ACCRUAL_SECONDS = int(
    os.getenv("ROI_MIN_ACCRUAL_SECONDS", "10" if ROI_TESTING_MODE else "60")
)
ROI_TICK_SECONDS = int(os.getenv("ROI_TICK_SECONDS", "60"))

# Dispatch every due investment as its own task instead of processing the batch inline
ROI_FAN_OUT = os.getenv("ROI_FAN_OUT", "false").lower() in {"1", "true", "yes"}

ROI_MAX_ACTIVE_INVESTMENTS = int(os.getenv("ROI_MAX_ACTIVE_INVESTMENTS", "3"))

# Optional HTTP endpoint that receives notification payloads
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")

ROI_STATUS_REDIS_URL = os.getenv("ROI_STATUS_REDIS_URL", CELERY_BROKER_URL)

ROI_LOG_LEVEL = os.getenv("ROI_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "roi_backend": {
            "handlers": ["console"],
            "level": ROI_LOG_LEVEL,
            "propagate": True,
        },
    },
}
