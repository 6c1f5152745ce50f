from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from earnings.plan import CommissionPlan


def test_default_plan_is_valid():
    plan = CommissionPlan.from_config({"COMMISSION_RATES": "0.20,0.08,0.02"})
    is_valid, message = plan.validate()

    assert is_valid, message
    assert plan.rate_for(1) == Decimal("0.20")
    assert plan.rate_for(2) == Decimal("0.08")
    assert plan.rate_for(3) == Decimal("0.02")
    assert plan.total_rate == Decimal("0.30")


def test_rate_outside_levels_is_zero():
    plan = CommissionPlan([Decimal("0.1"), Decimal("0.05"), Decimal("0.01")])
    assert plan.rate_for(0) == Decimal("0")
    assert plan.rate_for(4) == Decimal("0")


@pytest.mark.parametrize("rates, fragment", [
    ("0.20,0.08", "Expected 3"),
    ("0.20,0.08,0.02,0.01", "Expected 3"),
    ("0.40,0.08,0.05", "too high"),
    ("0,0,0", "must be positive"),
    ("-0.1,0.2,0.1", "out of range"),
])
def test_invalid_plans(rates, fragment):
    is_valid, message = CommissionPlan.from_config({"COMMISSION_RATES": rates}).validate()
    assert not is_valid
    assert fragment in message


def test_non_numeric_rates_rejected():
    with pytest.raises(ValueError):
        CommissionPlan.from_config({"COMMISSION_RATES": "a,b,c"})


def test_summary_lists_levels():
    summary = CommissionPlan.from_config({"COMMISSION_RATES": "0.20,0.08,0.02"}).summary()
    assert summary["levels"][1]["rate_display"] == "20.0%"
    assert summary["max_level"] == 3
    assert summary["total_rate"] == pytest.approx(0.30)


def test_app_refuses_invalid_plan():
    class BadPlanConfig(TestConfig):
        COMMISSION_RATES = "0.5,0.3,0.2"

    with pytest.raises(ValueError):
        create_app(BadPlanConfig)
