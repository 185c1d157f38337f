"""
Scheduler driver: one pass over every investment that is due.

Each investment is planned and committed in its own transaction; a failure
rolls back that investment's tick only and is retried on the next pass.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from roi_backend.apps.investments.exceptions import WalletCreditFailed
from roi_backend.apps.investments.models import Investment
from roi_backend.apps.investments.services.cycle import advance
from roi_backend.apps.investments.services.policy import (
    CycleDurationPolicy,
    default_policy,
)
from roi_backend.apps.investments.services.reconciler import (
    CommitResult,
    CommitStatus,
    LedgerReconciler,
)

logger = logging.getLogger(__name__)


@dataclass
class TickSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    due: int = 0
    processed: int = 0
    committed: int = 0
    already_committed: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


class SchedulerDriver:
    def __init__(
        self,
        policy: Optional[CycleDurationPolicy] = None,
        reconciler: Optional[LedgerReconciler] = None,
        clock: Callable[[], datetime] = timezone.now,
        status_store=None,
    ):
        self.policy = policy or default_policy()
        self.reconciler = reconciler or LedgerReconciler()
        self.clock = clock
        self.status_store = status_store

    def due_investments(self, now: datetime):
        """
        Active investments with a due boundary, or not accrued for at least
        the minimum granularity. The granularity never hides a due boundary.
        """
        stale_before = now - self.policy.minimum_accrual_granularity
        return (
            Investment.objects.filter(status="active")
            .filter(
                Q(next_cycle_boundary__lte=now)
                | Q(term_end_time__lte=now)
                | Q(last_accrual_time__lte=stale_before)
            )
            .order_by("next_cycle_boundary")
        )

    def process_investment(self, investment_id, now: Optional[datetime] = None) -> List[CommitResult]:
        now = now or self.clock()
        with transaction.atomic():
            investment = Investment.objects.filter(pk=investment_id).first()
            if investment is None:
                logger.warning(f"Investment {investment_id} vanished before its tick")
                return []
            plan = advance(investment, now, self.policy)
            return [self.reconciler.commit(effect) for effect in plan.effects]

    def run_once(self, now: Optional[datetime] = None) -> TickSummary:
        now = now or self.clock()
        summary = TickSummary(started_at=now)
        investment_ids = list(self.due_investments(now).values_list("pk", flat=True))
        summary.due = len(investment_ids)

        for investment_id in investment_ids:
            try:
                results = self.process_investment(investment_id, now)
            except WalletCreditFailed as e:
                summary.failed += 1
                logger.error(f"Wallet credit failed for investment {investment_id}, will retry: {e}")
                continue
            except Exception:
                summary.failed += 1
                logger.exception(f"Error processing ROI tick for investment {investment_id}")
                continue

            summary.processed += 1
            for result in results:
                if result.status == CommitStatus.COMMITTED:
                    summary.committed += 1
                else:
                    summary.already_committed += 1

        summary.finished_at = self.clock()
        logger.info(
            f"ROI tick at {now.isoformat()}: {summary.processed}/{summary.due} processed, "
            f"{summary.committed} committed, {summary.already_committed} already committed, "
            f"{summary.failed} failed"
        )
        if self.status_store is not None:
            self.status_store.record(summary.as_dict())
        return summary
