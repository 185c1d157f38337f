import os

from celery import Celery
from django.conf import settings

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "roi_backend.settings.base")

app = Celery("roi_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


@app.on_after_finalize.connect
def setup_periodic_tasks(sender, **kwargs):
    # The driver tick; each run picks up every investment that is due.
    sender.add_periodic_task(
        float(getattr(settings, "ROI_TICK_SECONDS", 60)),
        sender.signature("investments.run_roi_tick"),
        name="roi-accrual-tick",
    )
