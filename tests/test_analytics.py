import math

import numpy as np
import pandas as pd
import pytest

from cashflow_engine import analytics
from cashflow_engine.cashflows import FixedRateCoupon, Principal, SimpleCashFlow, fixed_rate_leg
from cashflow_engine.curves import FlatForward
from cashflow_engine.errors import ArgumentError, ConsistencyError
from cashflow_engine.interest_rate import Compounding, Frequency, InterestRate


VAL_DATE = pd.Timestamp("2026-02-13")


@pytest.fixture(scope="module")
def curve():
    return FlatForward(VAL_DATE, 0.05, "ACT/365", Compounding.CONTINUOUS)


@pytest.fixture(scope="module")
def bond():
    return fixed_rate_leg(pd.Timestamp("2025-02-15"), pd.Timestamp("2028-02-15"), 2, 100.0, 0.04)


def test_empty_leg_conventions(curve):
    assert analytics.npv([], curve) == 0.0
    assert analytics.cash([]) == 0.0
    assert analytics.bps([], curve) == 0.0
    assert analytics.is_expired([])
    with pytest.raises(ArgumentError, match="no cashflows"):
        analytics.maturity_date([])
    with pytest.raises(ArgumentError, match="no cashflows"):
        analytics.start_date([])


def test_npv_discounts_live_flows_only(curve):
    leg = [
        SimpleCashFlow(50.0, pd.Timestamp("2026-01-15")),  # paid already
        SimpleCashFlow(100.0, pd.Timestamp("2027-02-13")),
    ]
    expected = 100.0 * math.exp(-0.05 * 365 / 365)
    assert analytics.npv(leg, curve) == pytest.approx(expected, rel=1e-12)
    assert analytics.cash(leg) == 100.0


def test_flow_on_settlement_date_is_live(curve):
    leg = [SimpleCashFlow(100.0, VAL_DATE)]
    assert analytics.npv(leg, curve) == pytest.approx(100.0)
    assert not analytics.is_expired(leg)
    assert analytics.is_expired(leg, include_settlement_date_flows=True)


def test_ex_dividend_days_move_the_cutoff(curve):
    leg = [SimpleCashFlow(100.0, VAL_DATE + pd.Timedelta(days=3))]
    assert analytics.npv(leg, curve, ex_dividend_days=5) == 0.0
    assert analytics.cash(leg, ex_dividend_days=5) == 0.0


def test_npv_rebased_to_npv_date(curve):
    leg = [SimpleCashFlow(100.0, pd.Timestamp("2027-02-13"))]
    npv_date = pd.Timestamp("2026-08-13")
    rebased = analytics.npv(leg, curve, npv_date=npv_date)
    assert rebased == pytest.approx(analytics.npv(leg, curve) / curve.discount(npv_date))


def test_npv_with_flat_rate_matches_curve(bond):
    y = InterestRate(0.05, "ACT/365", Compounding.CONTINUOUS, Frequency.ANNUAL)
    flat = FlatForward(VAL_DATE, y)
    assert analytics.npv(bond, y) == pytest.approx(analytics.npv(bond, flat), rel=1e-14)


def test_bps_skips_principal(curve):
    coupon = FixedRateCoupon(pd.Timestamp("2027-02-13"), 100.0, 0.04,
                             pd.Timestamp("2026-02-13"), pd.Timestamp("2027-02-13"), "ACT/365")
    redemption = Principal(100.0, 100.0, pd.Timestamp("2027-02-13"),
                           pd.Timestamp("2026-02-13"), pd.Timestamp("2027-02-13"))

    only_coupon = analytics.bps([coupon], curve)
    assert only_coupon == pytest.approx(1e-4 * 100.0 * 1.0 * curve.discount(pd.Timestamp("2027-02-13")))
    assert analytics.bps([coupon, redemption], curve) == pytest.approx(only_coupon)


def test_bps_matches_npv_bump(curve):
    start, end = pd.Timestamp("2026-02-13"), pd.Timestamp("2029-02-13")
    base = fixed_rate_leg(start, end, 2, 100.0, 0.04, redemption=False)
    bumped = fixed_rate_leg(start, end, 2, 100.0, 0.0401, redemption=False)
    assert analytics.bps(base, curve) == pytest.approx(
        analytics.npv(bumped, curve) - analytics.npv(base, curve), rel=1e-10
    )


def test_atm_rate_recovers_coupon(curve):
    leg = fixed_rate_leg(pd.Timestamp("2026-02-13"), pd.Timestamp("2029-02-13"), 2, 100.0, 0.04, redemption=False)
    assert analytics.atm_rate(leg, curve) == pytest.approx(0.04, abs=1e-12)


def test_atm_rate_with_target(curve):
    leg = fixed_rate_leg(pd.Timestamp("2026-02-13"), pd.Timestamp("2029-02-13"), 2, 100.0, 0.04, redemption=False)
    target = 2.0 * analytics.npv(leg, curve)
    assert analytics.atm_rate(leg, curve, target_npv=target) == pytest.approx(0.08, abs=1e-12)


def test_atm_rate_without_coupons_raises(curve):
    with pytest.raises(ArgumentError, match="null bps"):
        analytics.atm_rate([SimpleCashFlow(100.0, pd.Timestamp("2027-02-13"))], curve)


def test_date_queries(bond):
    assert analytics.start_date(bond) == pd.Timestamp("2025-02-15")
    assert analytics.maturity_date(bond) == pd.Timestamp("2028-02-15")
    assert analytics.previous_cash_flow(bond).date == pd.Timestamp("2025-08-15")
    assert analytics.next_coupon_date(bond) == pd.Timestamp("2026-02-15")
    assert analytics.previous_coupon_date(bond, pd.Timestamp("2026-03-01")) == pd.Timestamp("2026-02-15")


def test_previous_and_next_at_the_edges(bond):
    assert analytics.previous_cash_flow(bond, pd.Timestamp("2025-01-01")) is None
    assert analytics.next_cash_flow(bond, pd.Timestamp("2029-01-01")) is None
    assert analytics.previous_coupon_rate(bond, pd.Timestamp("2025-01-01")) == 0.0
    assert analytics.next_coupon_date(bond, pd.Timestamp("2029-01-01")) is None


def test_next_coupon_rate_aggregates_same_date(bond):
    # last coupon and redemption share 2028-02-15; only the coupon carries a rate
    assert analytics.next_coupon_rate(bond, pd.Timestamp("2027-12-01")) == pytest.approx(0.04)

    d0, d1 = pd.Timestamp("2026-02-15"), pd.Timestamp("2026-08-15")
    stacked = [
        FixedRateCoupon(d1, 100.0, 0.03, d0, d1, "30/360"),
        FixedRateCoupon(d1, 100.0, 0.01, d0, d1, "30/360"),
    ]
    assert analytics.next_coupon_rate(stacked) == pytest.approx(0.04)


def test_coupon_rate_rejects_incompatible_coupons():
    d0, d1 = pd.Timestamp("2026-02-15"), pd.Timestamp("2026-08-15")
    leg = [
        FixedRateCoupon(d1, 100.0, 0.03, d0, d1, "30/360"),
        FixedRateCoupon(d1, 200.0, 0.01, d0, d1, "30/360"),
    ]
    with pytest.raises(ConsistencyError, match="cannot aggregate"):
        analytics.next_coupon_rate(leg)


def test_coupon_rate_on_non_coupon_date_raises():
    leg = [SimpleCashFlow(100.0, pd.Timestamp("2027-02-13"))]
    with pytest.raises(ArgumentError):
        analytics.next_coupon_rate(leg)


def test_cashflow_table(bond, curve):
    table = analytics.cashflow_table(bond, curve)
    assert list(table.columns) == ["date", "kind", "amount", "discount", "pv", "occurred"]
    assert len(table) == len(bond)
    assert table["occurred"].sum() == 1
    assert np.isnan(table.loc[table["occurred"], "pv"]).all()
    assert table.loc[~table["occurred"], "pv"].sum() == pytest.approx(analytics.npv(bond, curve))
