from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from django.conf import settings


@dataclass(frozen=True)
class CycleDurationPolicy:
    """
    Timing of the accrual engine, fixed for the life of the process.

    `cycle_length` is both the settlement period and the length of one
    accrual "day": a plan's daily rate is earned once per cycle.
    `minimum_accrual_granularity` only bounds how often an investment with no
    due boundary is picked up again; due boundaries are always processed.
    """

    cycle_length: timedelta = timedelta(days=1)
    minimum_accrual_granularity: timedelta = timedelta(seconds=60)
    tick_interval: timedelta = timedelta(seconds=60)

    def __post_init__(self):
        for name in ("cycle_length", "minimum_accrual_granularity", "tick_interval"):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive")

    @property
    def cycle_seconds(self) -> int:
        return int(self.cycle_length.total_seconds())

    def term_length(self, duration_days: int) -> timedelta:
        return self.cycle_length * duration_days

    @classmethod
    def from_settings(cls) -> "CycleDurationPolicy":
        return cls(
            cycle_length=timedelta(seconds=getattr(settings, "ROI_CYCLE_SECONDS", 86400)),
            minimum_accrual_granularity=timedelta(
                seconds=getattr(settings, "ROI_MIN_ACCRUAL_SECONDS", 60)
            ),
            tick_interval=timedelta(seconds=getattr(settings, "ROI_TICK_SECONDS", 60)),
        )


@lru_cache(maxsize=1)
def default_policy() -> CycleDurationPolicy:
    """Policy built from settings on first use."""
    return CycleDurationPolicy.from_settings()
