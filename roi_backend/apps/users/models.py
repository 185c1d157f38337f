import uuid
from decimal import Decimal

from django.db import models

CURRENCY_CHOICES = [
    ("naira", "Naira"),
    ("usdt", "USDT"),
]


class Investor(models.Model):
    email = models.EmailField(unique=True, db_index=True)
    first_name = models.CharField(max_length=128, null=True, blank=True)
    last_name = models.CharField(max_length=128, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def display_name(self):
        return (
            f"{self.first_name or ''} {self.last_name or ''}".strip()
            or self.email
        )


class Wallet(models.Model):
    """Spendable balance of one investor in one currency."""

    user = models.ForeignKey(
        Investor, on_delete=models.CASCADE, related_name="wallets"
    )
    currency = models.CharField(max_length=8, choices=CURRENCY_CHOICES)
    balance = models.DecimalField(
        max_digits=24, decimal_places=8, default=Decimal("0")
    )
    # ROI credited over the wallet's lifetime (principal returns excluded)
    total_earnings = models.DecimalField(
        max_digits=24, decimal_places=8, default=Decimal("0")
    )
    last_credited_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [("user", "currency")]


class Notification(models.Model):
    """ROI and investment lifecycle notifications."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        Investor, on_delete=models.CASCADE, related_name="notifications"
    )
    kind = models.CharField(
        max_length=32, db_index=True
    )  # e.g., roi_cycle_credited, investment_completed
    payload = models.JSONField(default=dict, blank=True)
    sent = models.BooleanField(default=False, db_index=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["user", "kind", "sent"])]
