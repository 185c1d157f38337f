# roi_backend/apps/investments/models.py
import uuid
from decimal import Decimal

from django.db import models

from roi_backend.apps.users.models import CURRENCY_CHOICES, Investor


class InvestmentPlan(models.Model):
    name = models.CharField(max_length=64, unique=True)
    currency = models.CharField(max_length=8, choices=CURRENCY_CHOICES)
    daily_rate_percent = models.DecimalField(max_digits=8, decimal_places=4)  # 6.7 = 6.7% a day
    duration_days = models.PositiveIntegerField()
    min_amount = models.DecimalField(max_digits=24, decimal_places=8)
    max_amount = models.DecimalField(max_digits=24, decimal_places=8)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)


class Investment(models.Model):
    STATUS = [
        ("active", "Active"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        Investor, on_delete=models.PROTECT, related_name="investments"
    )
    plan = models.ForeignKey(
        InvestmentPlan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="investments",
    )

    # Fixed at activation
    principal = models.DecimalField(max_digits=24, decimal_places=8)
    daily_rate_percent = models.DecimalField(max_digits=8, decimal_places=4)
    currency = models.CharField(max_length=8, choices=CURRENCY_CHOICES)
    start_time = models.DateTimeField()
    term_end_time = models.DateTimeField(db_index=True)

    status = models.CharField(
        max_length=16, choices=STATUS, default="active", db_index=True
    )

    # Accrual state, mutated only by the cycle engine
    current_cycle_earned = models.DecimalField(
        max_digits=24, decimal_places=8, default=Decimal("0")
    )
    lifetime_accumulated = models.DecimalField(
        max_digits=24, decimal_places=8, default=Decimal("0")
    )
    last_accrual_time = models.DateTimeField(db_index=True)
    next_cycle_boundary = models.DateTimeField(db_index=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "next_cycle_boundary"]),
            models.Index(fields=["user", "status"]),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class LedgerEntry(models.Model):
    """Append-only record of one settled boundary."""

    KIND = [
        ("cycle_roi", "Cycle ROI"),
        ("term_completion", "Term completion"),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    investment = models.ForeignKey(
        Investment, on_delete=models.PROTECT, related_name="ledger_entries"
    )
    cycle_boundary_time = models.DateTimeField()
    kind = models.CharField(max_length=16, choices=KIND)
    amount = models.DecimalField(max_digits=24, decimal_places=8)
    currency = models.CharField(max_length=8, choices=CURRENCY_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        # Idempotency key: one settlement of each kind per boundary
        constraints = [
            models.UniqueConstraint(
                fields=["investment", "cycle_boundary_time", "kind"],
                name="uniq_ledger_entry_per_boundary",
            )
        ]
        ordering = ["cycle_boundary_time", "created_at"]
