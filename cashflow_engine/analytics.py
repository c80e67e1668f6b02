"""
Valuation of a leg: NPV, cash, basis-point sensitivity, ATM rate, and
date queries over the leg.

Every function takes the leg and the discounting source (a
YieldTermStructure, or an InterestRate wrapped into a FlatForward starting
at the settlement date). Flows that have occurred at the cutoff
(settlement date + ex-dividend days) are left out. Legs are never re-sorted.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence, Tuple, Union

from .cashflows import CashFlow, Coupon, CashFlowKind
from .config.settings import evaluation_date
from .config.tolerances import BASIS_POINT
from .curves import FlatForward, YieldTermStructure
from .errors import ArgumentError, ConsistencyError
from .interest_rate import InterestRate

Leg = Sequence[CashFlow]
DiscountSource = Union[YieldTermStructure, InterestRate]


def _resolve_source(
    source: DiscountSource,
    settlement_date: Optional[pd.Timestamp],
    npv_date: Optional[pd.Timestamp],
) -> Tuple[YieldTermStructure, pd.Timestamp, Optional[pd.Timestamp]]:
    if isinstance(source, InterestRate):
        settle = evaluation_date() if settlement_date is None else pd.Timestamp(settlement_date)
        curve = FlatForward(settle, source)
        return curve, settle, settle if npv_date is None else pd.Timestamp(npv_date)

    settle = source.reference_date() if settlement_date is None else pd.Timestamp(settlement_date)
    return source, settle, None if npv_date is None else pd.Timestamp(npv_date)


def _cutoff(settlement_date: pd.Timestamp, ex_dividend_days: int) -> pd.Timestamp:
    return pd.Timestamp(settlement_date).normalize() + pd.Timedelta(days=int(ex_dividend_days))


def live_flows(leg: Leg, ref_date: pd.Timestamp, include_ref_date: bool = False) -> List[CashFlow]:
    """Flows that have not occurred at `ref_date`, in leg order."""
    return [cf for cf in leg if not cf.has_occurred(ref_date, include_ref_date)]


# ---- valuation ----

def npv(
    leg: Leg,
    source: DiscountSource,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    ex_dividend_days: int = 0,
) -> float:
    """
    Sum of amount * discount(date) over live flows, re-based to `npv_date`
    when given.
    """
    if len(leg) == 0:
        return 0.0

    curve, settle, npv_date = _resolve_source(source, settlement_date, npv_date)
    flows = live_flows(leg, _cutoff(settle, ex_dividend_days))

    amounts = np.array([cf.amount() for cf in flows], dtype=float)
    dfs = curve.discounts([cf.date for cf in flows])
    total = float(np.sum(amounts * dfs))

    if npv_date is None:
        return total
    return total / curve.discount(npv_date)


def cash(
    leg: Leg,
    settlement_date: Optional[pd.Timestamp] = None,
    ex_dividend_days: int = 0,
) -> float:
    """Undiscounted sum of the live flows."""
    if len(leg) == 0:
        return 0.0

    settle = evaluation_date() if settlement_date is None else pd.Timestamp(settlement_date)
    return float(sum(cf.amount() for cf in live_flows(leg, _cutoff(settle, ex_dividend_days))))


class BPSCalculator:
    """
    Accumulates accrual * nominal * discount over coupons.

    Only coupons carry a rate, so principal and generic flows have no
    visit method here and are skipped by CashFlow.accept.
    """

    def __init__(self, curve: YieldTermStructure, npv_date: Optional[pd.Timestamp] = None):
        self.curve = curve
        self.npv_date = npv_date
        self._result = 0.0

    def visit_coupon(self, coupon: Coupon) -> None:
        self._result += coupon.accrual_period() * coupon.nominal * self.curve.discount(coupon.date)

    def result(self) -> float:
        if self.npv_date is None:
            return self._result
        return self._result / self.curve.discount(self.npv_date)


def bps(
    leg: Leg,
    source: DiscountSource,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    ex_dividend_days: int = 0,
) -> float:
    """NPV change for a 1bp parallel move of every coupon rate in the leg."""
    if len(leg) == 0:
        return 0.0

    curve, settle, npv_date = _resolve_source(source, settlement_date, npv_date)
    calc = BPSCalculator(curve, npv_date)
    for cf in live_flows(leg, _cutoff(settle, ex_dividend_days)):
        cf.accept(calc)

    return BASIS_POINT * calc.result()


def atm_rate(
    leg: Leg,
    source: DiscountSource,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    ex_dividend_days: int = 0,
    target_npv: Optional[float] = None,
) -> float:
    """
    Fixed rate for which an equivalent fixed-rate leg has NPV `target_npv`
    (the leg's own NPV when not given).
    """
    sensitivity = bps(leg, source, settlement_date, npv_date, ex_dividend_days)
    if sensitivity == 0.0:
        raise ArgumentError("null bps: the leg has no live coupons")
    if target_npv is None:
        target_npv = npv(leg, source, settlement_date, npv_date, ex_dividend_days)
    return BASIS_POINT * target_npv / sensitivity


# ---- date functions ----

def start_date(leg: Leg) -> pd.Timestamp:
    """Earliest accrual start among the coupons."""
    if len(leg) == 0:
        raise ArgumentError("no cashflows")
    starts = [cf.accrual_start_date for cf in leg if cf.kind is CashFlowKind.COUPON]
    if not starts:
        raise ArgumentError("no coupons in leg")
    return min(starts)


def maturity_date(leg: Leg) -> pd.Timestamp:
    if len(leg) == 0:
        raise ArgumentError("no cashflows")
    return max(cf.date for cf in leg)


def is_expired(
    leg: Leg,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
) -> bool:
    if len(leg) == 0:
        return True

    settle = evaluation_date() if settlement_date is None else pd.Timestamp(settlement_date)
    return all(cf.has_occurred(settle, include_settlement_date_flows) for cf in reversed(leg))


def previous_cash_flow(leg: Leg, ref_date: Optional[pd.Timestamp] = None) -> Optional[CashFlow]:
    """Last flow that has occurred at `ref_date`, None if none has."""
    d = evaluation_date() if ref_date is None else pd.Timestamp(ref_date)
    for cf in reversed(leg):
        if cf.has_occurred(d):
            return cf
    return None


def next_cash_flow(leg: Leg, ref_date: Optional[pd.Timestamp] = None) -> Optional[CashFlow]:
    """First flow paying on or after `ref_date`, None if all have occurred."""
    d = evaluation_date() if ref_date is None else pd.Timestamp(ref_date)
    for cf in leg:
        if not cf.has_occurred(d):
            return cf
    return None


def coupon_rate(leg: Leg, cf: Optional[CashFlow]) -> float:
    """
    Aggregate rate of the coupons paying on the date of `cf`.

    Coupons on the same date must share nominal, accrual period and day
    count; their rates are summed.
    """
    if cf is None:
        return 0.0

    payment_date = cf.date
    first: Optional[Coupon] = None
    result = 0.0

    for x in leg:
        if x.date != payment_date or x.kind is not CashFlowKind.COUPON:
            continue
        if first is None:
            first = x
        elif not (
            x.nominal == first.nominal
            and x.accrual_period() == first.accrual_period()
            and x.day_count == first.day_count
        ):
            raise ConsistencyError(f"cannot aggregate two different coupons on {payment_date.date()}")
        result += x.rate()

    if first is None:
        raise ArgumentError(f"next cashflow ({payment_date.date()}) is not a coupon")
    return result


def previous_coupon_rate(leg: Leg, ref_date: Optional[pd.Timestamp] = None) -> float:
    return coupon_rate(leg, previous_cash_flow(leg, ref_date))


def next_coupon_rate(leg: Leg, ref_date: Optional[pd.Timestamp] = None) -> float:
    return coupon_rate(leg, next_cash_flow(leg, ref_date))


def previous_coupon_date(leg: Leg, ref_date: Optional[pd.Timestamp] = None) -> Optional[pd.Timestamp]:
    cf = previous_cash_flow(leg, ref_date)
    return None if cf is None else cf.date


def next_coupon_date(leg: Leg, ref_date: Optional[pd.Timestamp] = None) -> Optional[pd.Timestamp]:
    cf = next_cash_flow(leg, ref_date)
    return None if cf is None else cf.date


# ---- reporting ----

def cashflow_table(
    leg: Leg,
    source: DiscountSource,
    settlement_date: Optional[pd.Timestamp] = None,
) -> pd.DataFrame:
    """One row per flow: date, kind, amount, discount and PV (NaN once occurred)."""
    curve, settle, _ = _resolve_source(source, settlement_date, None)

    rows = []
    for cf in leg:
        occurred = cf.has_occurred(settle)
        amount = cf.amount()
        df = np.nan if occurred else curve.discount(cf.date)
        rows.append((cf.date, cf.kind.value, amount, df, amount * df, occurred))

    return pd.DataFrame(rows, columns=["date", "kind", "amount", "discount", "pv", "occurred"])
