"""
Conservation audit: lifetime_accumulated must equal the sum of the committed
cycle ROI ledger entries. Reports drift; never rewrites balances.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator

from django.db.models import Sum

from roi_backend.apps.investments.models import Investment


@dataclass(frozen=True)
class LedgerAudit:
    investment_id: object
    lifetime_accumulated: Decimal
    ledger_total: Decimal
    difference: Decimal

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


def audit_investment(investment: Investment) -> LedgerAudit:
    ledger_total = investment.ledger_entries.filter(kind="cycle_roi").aggregate(
        total=Sum("amount")
    )["total"] or Decimal("0")
    return LedgerAudit(
        investment_id=investment.pk,
        lifetime_accumulated=investment.lifetime_accumulated,
        ledger_total=ledger_total,
        difference=investment.lifetime_accumulated - ledger_total,
    )


def audit_ledger(queryset=None) -> Iterator[LedgerAudit]:
    queryset = queryset if queryset is not None else Investment.objects.all()
    for investment in queryset.iterator():
        yield audit_investment(investment)
