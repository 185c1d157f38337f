from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.db import transaction

from roi_backend.apps.investments.exceptions import StaleInvestmentState, WalletCreditFailed
from roi_backend.apps.investments.models import Investment, LedgerEntry
from roi_backend.apps.investments.services.cycle import CloseCycle, advance
from roi_backend.apps.investments.services.reconciler import CommitStatus, LedgerReconciler
from roi_backend.apps.users.models import Wallet
from roi_backend.apps.users.services.wallet import WalletService
from tests.conftest import DAY, T0


def commit_all(reconciler, plan):
    return [reconciler.commit(effect) for effect in plan.effects]


@pytest.mark.django_db
def test_cycle_close_settles_into_wallet_and_lifetime(make_investment, policy):
    inv = make_investment()
    results = commit_all(LedgerReconciler(), advance(inv, T0 + DAY, policy))

    assert [r.status for r in results] == [CommitStatus.COMMITTED] * 2
    inv.refresh_from_db()
    assert inv.current_cycle_earned == 0
    assert inv.lifetime_accumulated == Decimal("6700")
    assert inv.next_cycle_boundary == T0 + 2 * DAY
    assert inv.last_accrual_time == T0 + DAY

    entry = LedgerEntry.objects.get(investment=inv)
    assert entry.kind == "cycle_roi"
    assert entry.amount == Decimal("6700")
    assert entry.cycle_boundary_time == T0 + DAY
    assert results[1].ledger_entry == entry

    wallet = Wallet.objects.get(user=inv.user, currency="naira")
    assert wallet.balance == Decimal("6700")
    assert wallet.total_earnings == Decimal("6700")


@pytest.mark.django_db
def test_concurrent_plans_for_same_boundary_pay_once(make_investment, policy):
    inv = make_investment()
    worker_a = Investment.objects.get(pk=inv.pk)
    worker_b = Investment.objects.get(pk=inv.pk)
    plan_a = advance(worker_a, T0 + DAY, policy)
    plan_b = advance(worker_b, T0 + DAY, policy)

    wallet = MagicMock(wraps=WalletService())
    reconciler = LedgerReconciler(wallet=wallet)
    first = commit_all(reconciler, plan_a)
    second = commit_all(reconciler, plan_b)

    assert all(r.status == CommitStatus.COMMITTED for r in first)
    assert all(r.status == CommitStatus.ALREADY_COMMITTED for r in second)
    assert LedgerEntry.objects.filter(investment=inv).count() == 1
    assert wallet.credit.call_count == 1
    assert Wallet.objects.get(user=inv.user).balance == Decimal("6700")


@pytest.mark.django_db
def test_replayed_cycle_close_is_a_noop(make_investment, policy):
    inv = make_investment()
    plan = advance(inv, T0 + DAY, policy)
    reconciler = LedgerReconciler()
    commit_all(reconciler, plan)

    replay = reconciler.commit(plan.effects[-1])

    assert replay.status == CommitStatus.ALREADY_COMMITTED
    assert replay.ledger_entry is None
    inv.refresh_from_db()
    assert inv.lifetime_accumulated == Decimal("6700")


@pytest.mark.django_db
def test_wallet_failure_commits_nothing(make_investment, policy):
    inv = make_investment()
    wallet = MagicMock()
    wallet.credit.side_effect = WalletCreditFailed("wallet service down")
    plan = advance(Investment.objects.get(pk=inv.pk), T0 + DAY, policy)
    reconciler = LedgerReconciler(wallet=wallet)

    with pytest.raises(WalletCreditFailed):
        with transaction.atomic():
            commit_all(reconciler, plan)

    assert not LedgerEntry.objects.exists()
    inv.refresh_from_db()
    assert inv.next_cycle_boundary == T0 + DAY
    assert inv.last_accrual_time == T0
    assert inv.current_cycle_earned == 0
    assert inv.lifetime_accumulated == 0


@pytest.mark.django_db
def test_inactive_investor_cannot_be_credited(make_investment, investor, policy):
    investor.is_active = False
    investor.save()
    inv = make_investment()
    plan = advance(Investment.objects.get(pk=inv.pk), T0 + DAY, policy)
    reconciler = LedgerReconciler()
    reconciler.commit(plan.effects[0])

    with pytest.raises(WalletCreditFailed):
        reconciler.commit(plan.effects[1])
    assert not LedgerEntry.objects.exists()


@pytest.mark.django_db
def test_close_planned_from_stale_snapshot_is_refused(make_investment):
    inv = make_investment()
    # The accrual for this cycle was never persisted
    effect = CloseCycle(
        investment_id=inv.pk,
        cycle_boundary_time=T0 + DAY,
        amount=Decimal("6700"),
        next_cycle_boundary=T0 + 2 * DAY,
    )
    with pytest.raises(StaleInvestmentState):
        LedgerReconciler().commit(effect)
    assert not LedgerEntry.objects.exists()


@pytest.mark.django_db
def test_term_close_on_a_boundary_writes_both_entries(make_investment, policy):
    inv = make_investment(term=DAY)
    results = commit_all(LedgerReconciler(), advance(inv, T0 + DAY, policy))

    assert all(r.committed for r in results)
    inv.refresh_from_db()
    assert inv.status == "completed"
    assert inv.lifetime_accumulated == Decimal("6700")
    kinds = sorted(LedgerEntry.objects.filter(investment=inv).values_list("kind", flat=True))
    assert kinds == ["cycle_roi", "term_completion"]
    assert Wallet.objects.get(user=inv.user).balance == Decimal("106700")


def test_unknown_effect_is_rejected():
    with pytest.raises(TypeError):
        LedgerReconciler(wallet=MagicMock(), notifier=MagicMock()).commit(object())
