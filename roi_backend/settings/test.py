from .base import *

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

ROI_TESTING_MODE = False
ROI_CYCLE_SECONDS = 86400
ROI_MIN_ACCRUAL_SECONDS = 60
ROI_TICK_SECONDS = 60
ROI_FAN_OUT = False
ROI_MAX_ACTIVE_INVESTMENTS = 3
NOTIFICATION_WEBHOOK_URL = ""
ROI_STATUS_REDIS_URL = "redis://localhost:6379/15"
