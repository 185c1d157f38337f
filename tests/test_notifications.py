from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from roi_backend.apps.investments.models import LedgerEntry
from roi_backend.apps.investments.services.cycle import advance
from roi_backend.apps.investments.services.reconciler import LedgerReconciler
from roi_backend.apps.users.models import Notification
from roi_backend.apps.users.tasks import deliver_notification
from tests.conftest import DAY, T0

pytestmark = pytest.mark.django_db


def test_cycle_credit_notifies_after_commit(make_investment, policy, django_capture_on_commit_callbacks):
    inv = make_investment()
    reconciler = LedgerReconciler()

    with django_capture_on_commit_callbacks(execute=True):
        for effect in advance(inv, T0 + DAY, policy).effects:
            reconciler.commit(effect)

    notification = Notification.objects.get(user=inv.user, kind="roi_cycle_credited")
    assert notification.payload["investment_id"] == str(inv.pk)
    assert Decimal(notification.payload["amount"]) == Decimal("6700")
    assert notification.payload["cycle_boundary_time"] == (T0 + DAY).isoformat()


def test_no_notification_before_commit(make_investment, policy, django_capture_on_commit_callbacks):
    inv = make_investment()
    reconciler = LedgerReconciler()

    with django_capture_on_commit_callbacks() as callbacks:
        for effect in advance(inv, T0 + DAY, policy).effects:
            reconciler.commit(effect)

    assert len(callbacks) == 1
    assert not Notification.objects.exists()


def test_notifier_failure_keeps_the_settlement(make_investment, policy, django_capture_on_commit_callbacks):
    inv = make_investment()
    notifier = MagicMock()
    notifier.notify.side_effect = RuntimeError("smtp down")
    reconciler = LedgerReconciler(notifier=notifier)

    with django_capture_on_commit_callbacks(execute=True):
        for effect in advance(inv, T0 + DAY, policy).effects:
            reconciler.commit(effect)

    notifier.notify.assert_called_once()
    assert LedgerEntry.objects.filter(investment=inv).count() == 1


def test_new_notification_is_delivered_on_commit(investor, settings, django_capture_on_commit_callbacks):
    settings.NOTIFICATION_WEBHOOK_URL = ""

    with django_capture_on_commit_callbacks(execute=True):
        notification = Notification.objects.create(user=investor, kind="investment_activated", payload={})

    notification.refresh_from_db()
    assert notification.sent
    assert notification.sent_at is not None


def test_webhook_delivery(investor, settings):
    settings.NOTIFICATION_WEBHOOK_URL = "https://hooks.example.com/roi"
    notification = Notification.objects.create(
        user=investor, kind="roi_cycle_credited", payload={"amount": "6700"}
    )

    with patch("roi_backend.apps.users.tasks.requests.post") as post:
        post.return_value.raise_for_status.return_value = None
        assert deliver_notification(str(notification.id)) is True

    post.assert_called_once()
    assert post.call_args.kwargs["json"]["email"] == "ada@example.com"
    assert post.call_args.kwargs["json"]["payload"] == {"amount": "6700"}
    notification.refresh_from_db()
    assert notification.sent


def test_webhook_failure_leaves_notification_unsent(investor, settings):
    settings.NOTIFICATION_WEBHOOK_URL = "https://hooks.example.com/roi"
    notification = Notification.objects.create(user=investor, kind="roi_cycle_credited", payload={})

    with patch("roi_backend.apps.users.tasks.requests.post", side_effect=requests.ConnectionError("refused")):
        assert deliver_notification(str(notification.id)) is False

    notification.refresh_from_db()
    assert not notification.sent


def test_sent_notification_is_not_redelivered(investor, settings):
    settings.NOTIFICATION_WEBHOOK_URL = "https://hooks.example.com/roi"
    notification = Notification.objects.create(user=investor, kind="roi_cycle_credited", payload={}, sent=True)

    with patch("roi_backend.apps.users.tasks.requests.post") as post:
        assert deliver_notification(str(notification.id)) is False
    post.assert_not_called()
