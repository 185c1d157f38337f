from __future__ import annotations

import logging

import requests
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from roi_backend.apps.users.models import Notification

logger = logging.getLogger(__name__)


@shared_task(queue="roi", name="users.deliver_notification")
def deliver_notification(notification_id: str) -> bool:
    """
    Push a notification to the configured webhook and mark it sent.
    Without a webhook the notification stays in-app only and is marked sent.
    Delivery failures leave the row unsent for a later retry.
    """
    notification = (
        Notification.objects.select_related("user").filter(pk=notification_id).first()
    )
    if notification is None or notification.sent:
        return False

    url = getattr(settings, "NOTIFICATION_WEBHOOK_URL", "")
    if url:
        payload = {
            "id": str(notification.id),
            "kind": notification.kind,
            "email": notification.user.email,
            "payload": notification.payload,
        }
        try:
            r = requests.post(url, json=payload, timeout=10)
            r.raise_for_status()
        except requests.RequestException as exc:
            logger.warning(f"Could not deliver notification {notification_id}: {exc}")
            return False

    notification.sent = True
    notification.sent_at = timezone.now()
    notification.save(update_fields=["sent", "sent_at"])
    return True
