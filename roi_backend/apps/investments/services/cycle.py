"""
Cycle state machine.

Decides, for one investment and one tick, which effects are required:

    Accruing -> CycleClosing -> Accruing ... -> TermClosing -> Completed

The machine never writes anything itself. Accrual is applied to the
in-memory instance and emitted as an `Accrue` effect; settlements are emitted
as `CloseCycle` / `CloseTerm` for the ledger reconciler to commit.
At most one boundary is settled per tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from roi_backend.apps.investments.services.clock import AccrualResult, compute_accrual
from roi_backend.apps.investments.services.policy import (
    CycleDurationPolicy,
    default_policy,
)


@dataclass(frozen=True)
class Accrue:
    investment_id: object
    # Optimistic guard: the stored last_accrual_time this delta was computed from
    expected_last_accrual_time: datetime
    accrued_until: datetime
    delta: Decimal


@dataclass(frozen=True)
class CloseCycle:
    investment_id: object
    cycle_boundary_time: datetime
    amount: Decimal
    next_cycle_boundary: datetime


@dataclass(frozen=True)
class CloseTerm:
    investment_id: object
    term_end_time: datetime
    principal: Decimal
    lifetime_accumulated: Decimal
    current_cycle_earned: Decimal
    closed_at: datetime


Effect = Union[Accrue, CloseCycle, CloseTerm]


@dataclass
class TickPlan:
    investment_id: object
    now: datetime
    accrual: Optional[AccrualResult] = None
    effects: List[Effect] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.effects


def advance(
    investment, now: datetime, policy: Optional[CycleDurationPolicy] = None
) -> TickPlan:
    """Plan one tick for `investment` at `now`. Terminal investments get an empty plan."""
    policy = policy or default_policy()
    plan = TickPlan(investment_id=investment.pk, now=now)
    if not investment.is_active:
        return plan

    result = compute_accrual(investment, now, policy)
    plan.accrual = result

    if result.accrued_until != investment.last_accrual_time:
        plan.effects.append(
            Accrue(
                investment_id=investment.pk,
                expected_last_accrual_time=investment.last_accrual_time,
                accrued_until=result.accrued_until,
                delta=result.accrued_delta,
            )
        )
        investment.current_cycle_earned += result.accrued_delta
        investment.last_accrual_time = result.accrued_until

    # The cycle that contains the term end is settled by the term closure.
    final_cycle = investment.next_cycle_boundary >= investment.term_end_time

    if result.term_due and final_cycle:
        plan.effects.append(
            CloseTerm(
                investment_id=investment.pk,
                term_end_time=investment.term_end_time,
                principal=investment.principal,
                lifetime_accumulated=investment.lifetime_accumulated,
                current_cycle_earned=investment.current_cycle_earned,
                closed_at=now,
            )
        )
    elif result.cycle_due:
        plan.effects.append(
            CloseCycle(
                investment_id=investment.pk,
                cycle_boundary_time=investment.next_cycle_boundary,
                amount=investment.current_cycle_earned,
                next_cycle_boundary=investment.next_cycle_boundary + policy.cycle_length,
            )
        )

    return plan
