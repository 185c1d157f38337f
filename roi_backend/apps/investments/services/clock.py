"""
Accrual clock: how much an investment has earned since its last accrual and
which boundaries are due. Pure computation, no database access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from roi_backend.apps.investments.services.policy import (
    CycleDurationPolicy,
    default_policy,
)
from roi_backend.apps.investments.services.rates import per_second_rate, quantize_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccrualResult:
    accrued_delta: Decimal
    # Point in time the investment has accrued up to after applying the delta
    accrued_until: datetime
    cycle_due: bool
    term_due: bool
    clock_skew: bool = False


def _seconds(delta: timedelta) -> Decimal:
    if delta <= timedelta(0):
        return Decimal(0)
    whole = delta.days * 86400 + delta.seconds
    return Decimal(whole) + Decimal(delta.microseconds) / Decimal(1_000_000)


def compute_accrual(
    investment, now: datetime, policy: Optional[CycleDurationPolicy] = None
) -> AccrualResult:
    """
    Earnings accrued between `investment.last_accrual_time` and `now`.

    Accrual stops at the current cycle boundary (or the term end, if sooner);
    when `now` is past the boundary the delta covers the cycle up to the
    boundary only and `cycle_due` is raised so the cycle is settled before
    the next one starts accruing.
    A `now` earlier than the last accrual accrues nothing.
    """
    policy = policy or default_policy()
    last = investment.last_accrual_time

    clock_skew = now < last
    if clock_skew:
        logger.warning(
            f"Clock skew on investment {investment.pk}: now={now.isoformat()} "
            f"is before last accrual {last.isoformat()}; accruing nothing"
        )

    ceiling = min(investment.next_cycle_boundary, investment.term_end_time)
    accrued_until = max(last, min(now, ceiling))

    # Quantize the running cycle total rather than each increment, so a full
    # cycle always adds up to exactly one day's rate.
    cycle_start = investment.next_cycle_boundary - policy.cycle_length
    rate = per_second_rate(
        investment.principal, investment.daily_rate_percent, policy.cycle_seconds
    )
    before = quantize_money(rate * _seconds(last - cycle_start))
    after = quantize_money(rate * _seconds(accrued_until - cycle_start))

    return AccrualResult(
        accrued_delta=after - before,
        accrued_until=accrued_until,
        cycle_due=now >= investment.next_cycle_boundary,
        term_due=now >= investment.term_end_time,
        clock_skew=clock_skew,
    )
