from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from roi_backend.apps.investments.models import Investment, InvestmentPlan
from roi_backend.apps.investments.services.policy import CycleDurationPolicy
from roi_backend.apps.users.models import Investor

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
DAY = timedelta(days=1)
HOUR = timedelta(hours=1)


@pytest.fixture
def policy():
    return CycleDurationPolicy()


@pytest.fixture
def investor(db):
    return Investor.objects.create(email="ada@example.com", first_name="Ada")


@pytest.fixture
def plan(db):
    return InvestmentPlan.objects.create(
        name="Gold",
        currency="naira",
        daily_rate_percent=Decimal("6.7"),
        duration_days=30,
        min_amount=Decimal("1000"),
        max_amount=Decimal("1000000"),
    )


@pytest.fixture
def make_investment(investor):
    def _make(principal="100000", rate="6.7", start=T0, term=30 * DAY, **fields):
        data = dict(
            user=investor,
            principal=Decimal(principal),
            daily_rate_percent=Decimal(rate),
            currency="naira",
            start_time=start,
            term_end_time=start + term,
            last_accrual_time=start,
            next_cycle_boundary=start + DAY,
        )
        data.update(fields)
        return Investment.objects.create(**data)

    return _make
