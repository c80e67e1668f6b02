import logging

import pandas as pd
import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from cashflow_engine import analytics, risk
from cashflow_engine.cashflows import SimpleCashFlow, fixed_rate_leg
from cashflow_engine.errors import ConvergenceError, DomainError
from cashflow_engine.interest_rate import Compounding, Frequency, InterestRate
from cashflow_engine.yields import IrrFinder, irr


VAL_DATE = pd.Timestamp("2026-02-13")


@pytest.fixture(scope="module")
def bond():
    return fixed_rate_leg(pd.Timestamp("2026-02-13"), pd.Timestamp("2036-02-13"), 2, 100.0, 0.0425)


def test_irr_of_one_period_investment():
    leg = [
        SimpleCashFlow(-100.0, VAL_DATE),
        SimpleCashFlow(105.0, VAL_DATE + pd.Timedelta(days=365)),
    ]
    y = irr(leg, 0.0, "ACT/365", Compounding.SIMPLE, Frequency.ANNUAL)
    assert y == pytest.approx(0.05, abs=1e-10)


def test_irr_reprices_bond(bond):
    price = 97.5
    y = irr(bond, price, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    rate = InterestRate(y, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    assert analytics.npv(bond, rate) == pytest.approx(price, abs=1e-8)
    assert y > 0.0425


def test_irr_same_sign_flows_raise(bond):
    with pytest.raises(DomainError, match="due to their sign"):
        irr(bond, -97.5)


def test_irr_ignores_settled_flows():
    leg = [
        SimpleCashFlow(-100.0, pd.Timestamp("2025-02-13")),
        SimpleCashFlow(105.0, VAL_DATE + pd.Timedelta(days=365)),
    ]
    # only the future +105 is live, so a positive price is reachable
    y = irr(leg, 100.0, "ACT/365", Compounding.SIMPLE)
    assert y == pytest.approx(0.05, abs=1e-10)


def test_irr_warns_on_multiple_sign_changes(caplog):
    leg = [
        SimpleCashFlow(-100.0, VAL_DATE),
        SimpleCashFlow(230.0, VAL_DATE + pd.Timedelta(days=365)),
        SimpleCashFlow(-132.0, VAL_DATE + pd.Timedelta(days=730)),
    ]
    with caplog.at_level(logging.WARNING, logger="cashflow_engine.yields"):
        y = irr(leg, 0.0, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL, guess=0.05)
    assert "non-unique IRR" in caplog.text
    assert analytics.npv(leg, InterestRate(y, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL)) == \
        pytest.approx(0.0, abs=1e-8)


def test_irr_budget_exhaustion_raises(bond):
    with pytest.raises(ConvergenceError):
        irr(bond, 97.5, max_evaluations=2)


def test_finder_derivative_is_price_times_duration(bond):
    finder = IrrFinder(bond, 97.5, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL, VAL_DATE)
    y = 0.05
    h = 1e-6
    numeric = (finder.value(y + h) - finder.value(y - h)) / (2 * h)
    assert finder.derivative(y) == pytest.approx(numeric, rel=1e-6)

    rate = InterestRate(y, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    price = analytics.npv(bond, rate, VAL_DATE)
    assert finder.derivative(y) == pytest.approx(price * risk.modified_duration(bond, rate, VAL_DATE), rel=1e-12)


@settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(rate=st.floats(min_value=0.0, max_value=0.12))
def test_irr_inverts_npv(bond, rate):
    y = InterestRate(rate, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    price = analytics.npv(bond, y)
    solved = irr(bond, price, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    assert solved == pytest.approx(rate, abs=1e-8)
