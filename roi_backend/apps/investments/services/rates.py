from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from roi_backend.apps.investments.exceptions import InvalidRate

SECONDS_PER_DAY = 86400
# Stored money precision (matches the DecimalField decimal_places)
MONEY_QUANT = Decimal("0.00000001")


def quantize_money(value) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def per_second_rate(
    principal, daily_rate_percent, day_seconds: int = SECONDS_PER_DAY
) -> Decimal:
    """
    Earnings per second of `principal` at `daily_rate_percent` a day.

    Every accrual amount in the engine is derived from this rate.
    `day_seconds` is the length of one accrual day, which the cycle policy may
    compress for QA environments.
    """
    principal = Decimal(principal)
    daily_rate_percent = Decimal(daily_rate_percent)
    if principal < 0:
        raise InvalidRate(f"Principal must not be negative, got {principal}")
    if daily_rate_percent < 0:
        raise InvalidRate(f"Daily rate must not be negative, got {daily_rate_percent}")
    if day_seconds <= 0:
        raise InvalidRate(f"Day length must be positive, got {day_seconds}s")
    return principal * daily_rate_percent / Decimal(100) / Decimal(day_seconds)


def accrued_for(principal, daily_rate_percent, seconds, day_seconds: int = SECONDS_PER_DAY) -> Decimal:
    """Quantized earnings for `seconds` of accrual."""
    rate = per_second_rate(principal, daily_rate_percent, day_seconds)
    return quantize_money(rate * Decimal(seconds))


def daily_amount(principal, daily_rate_percent) -> Decimal:
    """One full day's earnings."""
    return accrued_for(principal, daily_rate_percent, SECONDS_PER_DAY)
