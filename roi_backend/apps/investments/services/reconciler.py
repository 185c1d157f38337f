"""
Investment ledger reconciler.

Commits the effects planned by the cycle state machine. Every settlement
starts by inserting its ledger entry; the unique constraint on
(investment, cycle_boundary_time, kind) decides which of several concurrent or
repeated attempts wins. The loser reports ALREADY_COMMITTED and changes
nothing. The winner then applies the investment update and the wallet
credits inside the same transaction, so a failed credit leaves no trace.
Notifications are dispatched only after the transaction commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.db.models import F

from roi_backend.apps.investments.exceptions import StaleInvestmentState
from roi_backend.apps.investments.models import Investment, LedgerEntry
from roi_backend.apps.investments.services.cycle import Accrue, CloseCycle, CloseTerm
from roi_backend.apps.users.services.notifications import NotificationService
from roi_backend.apps.users.services.wallet import WalletService

logger = logging.getLogger(__name__)


class CommitStatus(str, Enum):
    COMMITTED = "committed"
    ALREADY_COMMITTED = "already_committed"


@dataclass(frozen=True)
class CommitResult:
    status: CommitStatus
    effect: Any
    ledger_entry: Optional[LedgerEntry] = None

    @property
    def committed(self) -> bool:
        return self.status == CommitStatus.COMMITTED


class LedgerReconciler:
    def __init__(self, wallet=None, notifier=None):
        self.wallet = wallet or WalletService()
        self.notifier = notifier or NotificationService()

    def commit(self, effect) -> CommitResult:
        if isinstance(effect, Accrue):
            return self._commit_accrual(effect)
        if isinstance(effect, CloseCycle):
            return self._commit_cycle(effect)
        if isinstance(effect, CloseTerm):
            return self._commit_term(effect)
        raise TypeError(f"Unknown effect: {effect!r}")

    # ---------------------------
    # Helpers
    # ---------------------------

    def _insert_entry(self, **fields) -> Optional[LedgerEntry]:
        """Insert a ledger entry, or return None if its key already exists."""
        try:
            with transaction.atomic():
                return LedgerEntry.objects.create(**fields)
        except IntegrityError:
            return None

    def _notify_after_commit(self, user_id, kind: str, payload: Dict[str, Any]) -> None:
        def send():
            try:
                self.notifier.notify(user_id, kind, payload)
            except Exception as e:
                logger.warning(f"Notification {kind} for investor {user_id} failed: {e}")

        transaction.on_commit(send)

    # ---------------------------
    # Effects
    # ---------------------------

    def _commit_accrual(self, effect: Accrue) -> CommitResult:
        updated = Investment.objects.filter(
            pk=effect.investment_id,
            status="active",
            last_accrual_time=effect.expected_last_accrual_time,
        ).update(
            current_cycle_earned=F("current_cycle_earned") + effect.delta,
            last_accrual_time=effect.accrued_until,
        )
        if not updated:
            logger.info(
                f"Accrual for investment {effect.investment_id} up to "
                f"{effect.accrued_until.isoformat()} already applied"
            )
            return CommitResult(CommitStatus.ALREADY_COMMITTED, effect)
        return CommitResult(CommitStatus.COMMITTED, effect)

    def _commit_cycle(self, effect: CloseCycle) -> CommitResult:
        with transaction.atomic():
            investment = Investment.objects.select_for_update().get(
                pk=effect.investment_id
            )
            entry = self._insert_entry(
                investment=investment,
                cycle_boundary_time=effect.cycle_boundary_time,
                kind="cycle_roi",
                amount=effect.amount,
                currency=investment.currency,
            )
            if entry is None:
                logger.info(
                    f"Cycle {effect.cycle_boundary_time.isoformat()} of investment "
                    f"{effect.investment_id} already settled"
                )
                return CommitResult(CommitStatus.ALREADY_COMMITTED, effect)

            if (
                investment.next_cycle_boundary != effect.cycle_boundary_time
                or investment.current_cycle_earned != effect.amount
            ):
                raise StaleInvestmentState(
                    f"Investment {investment.pk} changed since cycle "
                    f"{effect.cycle_boundary_time.isoformat()} was planned"
                )

            investment.lifetime_accumulated += effect.amount
            investment.current_cycle_earned = Decimal("0")
            investment.last_accrual_time = effect.cycle_boundary_time
            investment.next_cycle_boundary = effect.next_cycle_boundary
            investment.save(
                update_fields=[
                    "lifetime_accumulated",
                    "current_cycle_earned",
                    "last_accrual_time",
                    "next_cycle_boundary",
                    "updated_at",
                ]
            )

            if effect.amount > 0:
                self.wallet.credit(investment.user_id, investment.currency, effect.amount)

            self._notify_after_commit(
                investment.user_id,
                "roi_cycle_credited",
                {
                    "investment_id": str(investment.pk),
                    "amount": str(effect.amount),
                    "currency": investment.currency,
                    "cycle_boundary_time": effect.cycle_boundary_time.isoformat(),
                    "lifetime_accumulated": str(investment.lifetime_accumulated),
                },
            )

        logger.info(
            f"Settled cycle {effect.cycle_boundary_time.isoformat()} of investment "
            f"{effect.investment_id}: {effect.amount} {investment.currency}"
        )
        return CommitResult(CommitStatus.COMMITTED, effect, entry)

    def _commit_term(self, effect: CloseTerm) -> CommitResult:
        with transaction.atomic():
            investment = Investment.objects.select_for_update().get(
                pk=effect.investment_id
            )
            entry = self._insert_entry(
                investment=investment,
                cycle_boundary_time=effect.term_end_time,
                kind="term_completion",
                amount=effect.principal,
                currency=investment.currency,
            )
            if entry is None:
                logger.info(f"Term of investment {effect.investment_id} already closed")
                return CommitResult(CommitStatus.ALREADY_COMMITTED, effect)

            if (
                investment.current_cycle_earned != effect.current_cycle_earned
                or investment.lifetime_accumulated != effect.lifetime_accumulated
            ):
                raise StaleInvestmentState(
                    f"Investment {investment.pk} changed since its term closure was planned"
                )

            # Settle the still-open final cycle before returning the principal
            final_cycle = effect.current_cycle_earned
            if final_cycle > 0:
                LedgerEntry.objects.create(
                    investment=investment,
                    cycle_boundary_time=effect.term_end_time,
                    kind="cycle_roi",
                    amount=final_cycle,
                    currency=investment.currency,
                )
                investment.lifetime_accumulated += final_cycle
                investment.current_cycle_earned = Decimal("0")
                self.wallet.credit(investment.user_id, investment.currency, final_cycle)

            self.wallet.credit(
                investment.user_id, investment.currency, effect.principal, earnings=False
            )

            investment.status = "completed"
            investment.completed_at = effect.closed_at
            investment.last_accrual_time = effect.term_end_time
            investment.save(
                update_fields=[
                    "lifetime_accumulated",
                    "current_cycle_earned",
                    "status",
                    "completed_at",
                    "last_accrual_time",
                    "updated_at",
                ]
            )

            self._notify_after_commit(
                investment.user_id,
                "investment_completed",
                {
                    "investment_id": str(investment.pk),
                    "currency": investment.currency,
                    "principal": str(effect.principal),
                    "final_cycle_amount": str(final_cycle),
                    "total_roi": str(investment.lifetime_accumulated),
                    "total_return": str(effect.principal + investment.lifetime_accumulated),
                    "term_end_time": effect.term_end_time.isoformat(),
                },
            )

        logger.info(
            f"Completed investment {effect.investment_id}: principal {effect.principal}, "
            f"lifetime ROI {investment.lifetime_accumulated} {investment.currency}"
        )
        return CommitResult(CommitStatus.COMMITTED, effect, entry)
