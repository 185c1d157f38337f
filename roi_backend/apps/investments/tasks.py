from __future__ import annotations

import logging
from typing import Optional

from celery import shared_task
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from roi_backend.apps.investments.exceptions import WalletCreditFailed
from roi_backend.apps.investments.services.driver import SchedulerDriver
from roi_backend.apps.investments.tick_status_store import TickStatusStore

logger = logging.getLogger(__name__)


def build_driver() -> SchedulerDriver:
    return SchedulerDriver(status_store=TickStatusStore())


@shared_task(queue="roi", name="investments.run_roi_tick")
def run_roi_tick() -> dict:
    """
    Periodic driver tick (Celery beat).
    With ROI_FAN_OUT each due investment becomes its own task on the worker
    pool; otherwise the batch is processed inline.
    """
    driver = build_driver()
    if not getattr(settings, "ROI_FAN_OUT", False):
        return driver.run_once().as_dict()

    now = timezone.now()
    investment_ids = list(driver.due_investments(now).values_list("pk", flat=True))
    for investment_id in investment_ids:
        process_investment_tick.delay(str(investment_id), now.isoformat())
    logger.info(f"Dispatched {len(investment_ids)} investment ticks for {now.isoformat()}")
    driver.status_store.record(
        {"started_at": now.isoformat(), "due": len(investment_ids), "dispatched": True}
    )
    return {"due": len(investment_ids), "dispatched": len(investment_ids)}


@shared_task(queue="roi", name="investments.process_investment_tick")
def process_investment_tick(investment_id: str, now: Optional[str] = None) -> list:
    """
    One investment's tick. A failed wallet credit is not retried here; the
    next driver pass picks the investment up again with the same inputs.
    """
    driver = SchedulerDriver()
    tick_time = parse_datetime(now) if now else None
    try:
        results = driver.process_investment(investment_id, tick_time)
    except WalletCreditFailed as e:
        logger.error(f"Wallet credit failed for investment {investment_id}, will retry: {e}")
        return []
    except Exception as e:
        logger.error(f"Error in ROI tick for investment {investment_id}: {e}")
        raise
    return [result.status.value for result in results]
