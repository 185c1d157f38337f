from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Notification
from .tasks import deliver_notification


# When a Notification model is created, deliver it once the row is committed
@receiver(
    post_save,
    sender=Notification,
    dispatch_uid="notifications.signals.deliver_notification",
)
def deliver_notification_on_creation(sender, instance, created, **kwargs):
    if not created or instance.sent:
        return
    notification_id = str(instance.id)
    transaction.on_commit(lambda: deliver_notification.delay(notification_id))
