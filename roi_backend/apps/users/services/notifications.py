from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import DatabaseError, transaction

from roi_backend.apps.users.models import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Best-effort notifications; never raises to the caller."""

    def notify(
        self, user_id, event_kind: str, payload: Dict[str, Any]
    ) -> Optional[Notification]:
        # Own savepoint: a failed insert must not doom the caller's transaction
        try:
            with transaction.atomic():
                return Notification.objects.create(
                    user_id=user_id, kind=event_kind, payload=payload or {}
                )
        except DatabaseError as e:
            logger.warning(
                f"Could not record {event_kind} notification for investor {user_id}: {e}"
            )
            return None
