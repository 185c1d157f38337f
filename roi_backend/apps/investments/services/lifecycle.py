from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from roi_backend.apps.investments.exceptions import (
    InvalidPrincipal,
    InvalidRate,
    InvestmentNotActive,
    InvestmentRejected,
)
from roi_backend.apps.investments.models import Investment, InvestmentPlan
from roi_backend.apps.investments.services.policy import (
    CycleDurationPolicy,
    default_policy,
)
from roi_backend.apps.users.models import Investor
from roi_backend.apps.users.services.notifications import NotificationService
from roi_backend.apps.users.services.wallet import WalletService

logger = logging.getLogger(__name__)


def activate_investment(
    user: Investor,
    plan: InvestmentPlan,
    amount,
    currency: Optional[str] = None,
    now: Optional[datetime] = None,
    policy: Optional[CycleDurationPolicy] = None,
    notifier: Optional[NotificationService] = None,
    wallet: Optional[WalletService] = None,
) -> Investment:
    """
    Place `amount` under `plan` for `user`, starting the first cycle at `now`.
    The principal is taken from the investor's wallet and returned at term end.

    Malformed amounts and rates are rejected here so the accrual engine
    never sees them.
    """
    policy = policy or default_policy()
    notifier = notifier or NotificationService()
    wallet = wallet or WalletService()
    now = now or timezone.now()
    amount = Decimal(amount)
    currency = currency or plan.currency

    if amount <= 0:
        raise InvalidPrincipal(f"Investment amount must be positive, got {amount}")
    if plan.daily_rate_percent <= 0:
        raise InvalidRate(f"Plan {plan.name} has a non-positive daily rate")
    if not plan.is_active:
        raise InvestmentRejected(f"Plan {plan.name} is not open for investment")
    if amount < plan.min_amount or amount > plan.max_amount:
        raise InvalidPrincipal(
            f"Investment amount must be between {plan.min_amount} and {plan.max_amount}"
        )
    if currency != plan.currency:
        raise InvestmentRejected(f"Investment currency must be {plan.currency}")

    max_active = getattr(settings, "ROI_MAX_ACTIVE_INVESTMENTS", 3)
    with transaction.atomic():
        # Serializes activations per investor so the limit holds under concurrency
        Investor.objects.select_for_update().get(pk=user.pk)
        active = Investment.objects.filter(user=user, status="active").count()
        if active >= max_active:
            raise InvestmentRejected(
                f"You can only have a maximum of {max_active} active investment plans at a time"
            )

        wallet.debit(user.pk, currency, amount)
        investment = Investment.objects.create(
            user=user,
            plan=plan,
            principal=amount,
            daily_rate_percent=plan.daily_rate_percent,
            currency=currency,
            start_time=now,
            term_end_time=now + policy.term_length(plan.duration_days),
            last_accrual_time=now,
            next_cycle_boundary=now + policy.cycle_length,
        )
        notifier.notify(
            user.pk,
            "investment_activated",
            {
                "investment_id": str(investment.pk),
                "plan": plan.name,
                "amount": str(amount),
                "currency": currency,
                "term_end_time": investment.term_end_time.isoformat(),
            },
        )

    logger.info(
        f"Activated investment {investment.pk} for investor {user.pk}: "
        f"{amount} {currency} on {plan.name}"
    )
    return investment


def cancel_investment(
    investment_id,
    reason: str = "",
    now: Optional[datetime] = None,
    notifier: Optional[NotificationService] = None,
) -> Investment:
    """
    Stop an active investment. Ticks already past the ledger check finish;
    no later tick touches it.
    """
    notifier = notifier or NotificationService()
    now = now or timezone.now()

    with transaction.atomic():
        investment = Investment.objects.select_for_update().get(pk=investment_id)
        if not investment.is_active:
            raise InvestmentNotActive(
                f"Investment {investment.pk} is already {investment.status}"
            )
        investment.status = "cancelled"
        investment.cancelled_at = now
        if reason:
            investment.notes = f"{investment.notes}\nCancelled: {reason}".strip()
        investment.save(update_fields=["status", "cancelled_at", "notes", "updated_at"])
        notifier.notify(
            investment.user_id,
            "investment_cancelled",
            {"investment_id": str(investment.pk), "reason": reason},
        )

    logger.info(f"Cancelled investment {investment.pk}")
    return investment
