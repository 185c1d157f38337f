from decimal import Decimal

import pytest

from roi_backend.apps.investments.exceptions import InvalidRate
from roi_backend.apps.investments.services.rates import (
    accrued_for,
    daily_amount,
    per_second_rate,
    quantize_money,
)


def test_per_second_rate_spreads_daily_rate_over_a_day():
    rate = per_second_rate(Decimal("100000"), Decimal("6.7"))
    assert quantize_money(rate * 86400) == Decimal("6700.00000000")


def test_one_hour_of_accrual():
    assert abs(accrued_for("100000", "6.7", 3600) - Decimal("279.17")) <= Decimal("0.01")


def test_daily_amount():
    assert daily_amount("2400", "5") == Decimal("120.00000000")


def test_compressed_day_pays_full_rate_per_cycle():
    assert accrued_for("100000", "6.7", 3600, day_seconds=3600) == Decimal("6700.00000000")


def test_zero_principal_earns_nothing():
    assert per_second_rate(0, "6.7") == 0


@pytest.mark.parametrize("principal,rate", [("-1", "6.7"), ("100", "-0.5")])
def test_negative_inputs_are_rejected(principal, rate):
    with pytest.raises(InvalidRate):
        per_second_rate(principal, rate)


def test_invalid_rate_is_a_value_error():
    with pytest.raises(ValueError):
        per_second_rate("100", "-1")
