"""
Cash-flow entities.

Every flow has a payment date and an undiscounted amount. Flows are tagged
with a closed set of kinds so that aggregators can act on coupons only:

- COUPON     accrues a rate on a nominal (fixed, floating, capped/floored)
- PRINCIPAL  fixed amount over an accrual window, no rate (redemptions)
- GENERIC    any other dated amount

A leg is a plain list of flows, kept in the order it was built.
"""
from __future__ import annotations

import pandas as pd
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from .config.settings import evaluation_date
from .errors import ArgumentError, ConsistencyError
from .interest_rate import Compounding, Frequency, InterestRate
from .observable import Observable, Observer
from .utils import advance, cached_schedule, is_weekday, normalize_day_count, yearfrac


class CashFlowKind(Enum):
    COUPON = "coupon"
    PRINCIPAL = "principal"
    GENERIC = "generic"


_VISIT_METHODS = {
    CashFlowKind.COUPON: "visit_coupon",
    CashFlowKind.PRINCIPAL: "visit_principal",
    CashFlowKind.GENERIC: "visit_cash_flow",
}


class CashFlow(Observable):
    kind = CashFlowKind.GENERIC

    def __init__(self, date: pd.Timestamp):
        super().__init__()
        self._date = pd.Timestamp(date).normalize()

    @property
    def date(self) -> pd.Timestamp:
        return self._date

    def amount(self) -> float:
        """Undiscounted amount paid on `date`."""
        raise NotImplementedError(f"{type(self).__name__}.amount is not implemented")

    def has_occurred(self, ref_date: Optional[pd.Timestamp] = None, include_ref_date: bool = False) -> bool:
        """
        True if the flow is strictly before `ref_date`, or on/before it when
        `include_ref_date` is set. `ref_date` defaults to the evaluation date.
        """
        ref = evaluation_date() if ref_date is None else pd.Timestamp(ref_date).normalize()
        if include_ref_date:
            return self._date <= ref
        return self._date < ref

    def accept(self, visitor) -> None:
        method = getattr(visitor, _VISIT_METHODS[self.kind], None)
        if method is None:
            # the visitor does not handle this kind of flow: skipped on purpose
            return
        method(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._date.date()})"


class SimpleCashFlow(CashFlow):
    def __init__(self, amount: float, date: pd.Timestamp):
        super().__init__(date)
        self._amount = float(amount)

    def amount(self) -> float:
        return self._amount


class Principal(CashFlow):
    """Fixed principal payment over an accrual window (redemption, amortization)."""

    kind = CashFlowKind.PRINCIPAL

    def __init__(
        self,
        amount: float,
        nominal: float,
        payment_date: pd.Timestamp,
        accrual_start_date: pd.Timestamp,
        accrual_end_date: pd.Timestamp,
        day_count: str = "ACT/365",
        ref_period_start: Optional[pd.Timestamp] = None,
        ref_period_end: Optional[pd.Timestamp] = None,
    ):
        super().__init__(payment_date)
        self._amount = float(amount)
        self.nominal = float(nominal)
        self.accrual_start_date = pd.Timestamp(accrual_start_date).normalize()
        self.accrual_end_date = pd.Timestamp(accrual_end_date).normalize()
        self.day_count = normalize_day_count(day_count)
        self.ref_period_start = pd.Timestamp(ref_period_start) if ref_period_start is not None else self.accrual_start_date
        self.ref_period_end = pd.Timestamp(ref_period_end) if ref_period_end is not None else self.accrual_end_date

    def amount(self) -> float:
        return self._amount

    def set_amount(self, amount: float) -> None:
        self._amount = float(amount)
        self.notify_change()


class Coupon(CashFlow):
    kind = CashFlowKind.COUPON

    def __init__(
        self,
        payment_date: pd.Timestamp,
        nominal: float,
        accrual_start_date: pd.Timestamp,
        accrual_end_date: pd.Timestamp,
        day_count: str = "ACT/365",
        ref_period_start: Optional[pd.Timestamp] = None,
        ref_period_end: Optional[pd.Timestamp] = None,
    ):
        super().__init__(payment_date)
        self.nominal = float(nominal)
        self.accrual_start_date = pd.Timestamp(accrual_start_date).normalize()
        self.accrual_end_date = pd.Timestamp(accrual_end_date).normalize()
        if self.accrual_end_date < self.accrual_start_date:
            raise ArgumentError(
                f"accrual end {self.accrual_end_date.date()} before start {self.accrual_start_date.date()}"
            )
        self.day_count = normalize_day_count(day_count)
        self.ref_period_start = pd.Timestamp(ref_period_start) if ref_period_start is not None else self.accrual_start_date
        self.ref_period_end = pd.Timestamp(ref_period_end) if ref_period_end is not None else self.accrual_end_date

    def rate(self) -> float:
        raise NotImplementedError

    def accrual_period(self) -> float:
        return yearfrac(self.accrual_start_date, self.accrual_end_date, self.day_count)

    def accrual_days(self) -> int:
        return (self.accrual_end_date - self.accrual_start_date).days

    def amount(self) -> float:
        return self.nominal * self.rate() * self.accrual_period()

    def accrued_amount(self, date: pd.Timestamp) -> float:
        date = pd.Timestamp(date)
        if date <= self.accrual_start_date or date > self.date:
            return 0.0
        end = min(date, self.accrual_end_date)
        return self.nominal * self.rate() * yearfrac(self.accrual_start_date, end, self.day_count)


class FixedRateCoupon(Coupon):
    """Coupon paying nominal * (compound factor over the accrual period - 1)."""

    def __init__(
        self,
        payment_date: pd.Timestamp,
        nominal: float,
        rate: Union[float, InterestRate],
        accrual_start_date: pd.Timestamp,
        accrual_end_date: pd.Timestamp,
        day_count: str = "ACT/365",
        ref_period_start: Optional[pd.Timestamp] = None,
        ref_period_end: Optional[pd.Timestamp] = None,
    ):
        super().__init__(
            payment_date, nominal, accrual_start_date, accrual_end_date,
            day_count, ref_period_start, ref_period_end,
        )
        if not isinstance(rate, InterestRate):
            rate = InterestRate(float(rate), self.day_count, Compounding.SIMPLE, Frequency.ANNUAL)
        self.interest_rate = rate

    def rate(self) -> float:
        return self.interest_rate.rate

    def amount(self) -> float:
        return self.nominal * (
            self.interest_rate.compound_factor_between(self.accrual_start_date, self.accrual_end_date) - 1.0
        )

    def accrued_amount(self, date: pd.Timestamp) -> float:
        date = pd.Timestamp(date)
        if date <= self.accrual_start_date or date > self.date:
            return 0.0
        end = min(date, self.accrual_end_date)
        return self.nominal * (self.interest_rate.compound_factor_between(self.accrual_start_date, end) - 1.0)


class FloatingRateCoupon(Coupon, Observer):
    """Pays gearing * index fixing + spread; the index fixes `fixing_days` before accrual start."""

    def __init__(
        self,
        payment_date: pd.Timestamp,
        nominal: float,
        accrual_start_date: pd.Timestamp,
        accrual_end_date: pd.Timestamp,
        index,
        fixing_days: Optional[int] = None,
        gearing: float = 1.0,
        spread: float = 0.0,
        day_count: Optional[str] = None,
        ref_period_start: Optional[pd.Timestamp] = None,
        ref_period_end: Optional[pd.Timestamp] = None,
    ):
        super().__init__(
            payment_date, nominal, accrual_start_date, accrual_end_date,
            day_count or index.day_count, ref_period_start, ref_period_end,
        )
        if gearing == 0.0:
            raise ArgumentError("Null gearing not allowed")
        self.index = index
        self.fixing_days = index.fixing_days if fixing_days is None else int(fixing_days)
        self.gearing = float(gearing)
        self.spread = float(spread)
        self.register_with(index)

    @property
    def fixing_date(self) -> pd.Timestamp:
        d = advance(self.accrual_start_date, -self.fixing_days)
        while not is_weekday(d):
            d = advance(d, -1)
        return d

    def index_fixing(self) -> float:
        return self.index.fixing(self.fixing_date)

    def rate(self) -> float:
        return self.gearing * self.index_fixing() + self.spread

    def update(self) -> None:
        self.notify_observers()


# ---- caps and floors ----

@dataclass(frozen=True)
class CapFloorTerms:
    """Strikes in the coupon-rate space after the gearing-sign adjustment."""
    is_capped: bool
    is_floored: bool
    cap: Optional[float] = None
    floor: Optional[float] = None


def effective_cap_floor(gearing: float, cap: Optional[float], floor: Optional[float]) -> CapFloorTerms:
    """
    Map user cap/floor levels to the optionlets bought on the index.

    With negative gearing the coupon rate moves against the index, so a cap
    on the coupon is a floor on the index leg and vice versa.
    """
    if cap is not None and floor is not None and cap < floor:
        raise ConsistencyError(f"cap level ({cap}) less than floor level ({floor})")

    if gearing > 0:
        return CapFloorTerms(
            is_capped=cap is not None,
            is_floored=floor is not None,
            cap=cap,
            floor=floor,
        )
    return CapFloorTerms(
        is_capped=floor is not None,
        is_floored=cap is not None,
        cap=floor,
        floor=cap,
    )


def capped_floored_rate(swaplet_rate: float, caplet_rate: float, floorlet_rate: float) -> float:
    """Collared rate = underlying rate + bought floorlet - sold caplet."""
    return swaplet_rate + floorlet_rate - caplet_rate


class IntrinsicCouponPricer:
    """Optionlet rates at intrinsic value (zero volatility)."""

    def caplet_rate(self, coupon: FloatingRateCoupon, effective_cap: float) -> float:
        return coupon.gearing * max(coupon.index_fixing() - effective_cap, 0.0)

    def floorlet_rate(self, coupon: FloatingRateCoupon, effective_floor: float) -> float:
        return coupon.gearing * max(effective_floor - coupon.index_fixing(), 0.0)


class CappedFlooredCoupon(Coupon, Observer):
    """Floating coupon with optional cap and floor on its rate."""

    def __init__(
        self,
        underlying: FloatingRateCoupon,
        cap: Optional[float] = None,
        floor: Optional[float] = None,
        pricer=None,
    ):
        super().__init__(
            underlying.date, underlying.nominal,
            underlying.accrual_start_date, underlying.accrual_end_date,
            underlying.day_count, underlying.ref_period_start, underlying.ref_period_end,
        )
        self.underlying = underlying
        self.pricer = pricer
        self.terms = effective_cap_floor(underlying.gearing, cap, floor)
        self.register_with(underlying)

    @property
    def gearing(self) -> float:
        return self.underlying.gearing

    @property
    def spread(self) -> float:
        return self.underlying.spread

    @property
    def is_capped(self) -> bool:
        return self.terms.is_capped

    @property
    def is_floored(self) -> bool:
        return self.terms.is_floored

    def cap(self) -> Optional[float]:
        """Cap on the coupon rate as quoted by the user."""
        if self.gearing > 0 and self.is_capped:
            return self.terms.cap
        if self.gearing < 0 and self.is_floored:
            return self.terms.floor
        return None

    def floor(self) -> Optional[float]:
        """Floor on the coupon rate as quoted by the user."""
        if self.gearing > 0 and self.is_floored:
            return self.terms.floor
        if self.gearing < 0 and self.is_capped:
            return self.terms.cap
        return None

    def effective_cap(self) -> Optional[float]:
        if not self.is_capped:
            return None
        return (self.terms.cap - self.spread) / self.gearing

    def effective_floor(self) -> Optional[float]:
        if not self.is_floored:
            return None
        return (self.terms.floor - self.spread) / self.gearing

    def set_pricer(self, pricer) -> None:
        self.pricer = pricer
        self.notify_change()

    def rate(self) -> float:
        swaplet = self.underlying.rate()
        if not (self.is_capped or self.is_floored):
            return swaplet
        if self.pricer is None:
            raise ArgumentError("pricer not set")

        caplet = self.pricer.caplet_rate(self.underlying, self.effective_cap()) if self.is_capped else 0.0
        floorlet = self.pricer.floorlet_rate(self.underlying, self.effective_floor()) if self.is_floored else 0.0
        return capped_floored_rate(swaplet, caplet, floorlet)

    def update(self) -> None:
        self.notify_observers()


# ---- leg builders ----

def fixed_rate_leg(
    start: pd.Timestamp,
    maturity: pd.Timestamp,
    freq: int,
    nominal: float,
    rate: Union[float, InterestRate],
    day_count: str = "30/360",
    redemption: bool = True,
) -> List[CashFlow]:
    """Fixed coupons on a regular schedule, plus the redemption at maturity."""
    dates = cached_schedule(pd.Timestamp(start), pd.Timestamp(maturity), int(freq))
    leg: List[CashFlow] = [
        FixedRateCoupon(d1, nominal, rate, d0, d1, day_count)
        for d0, d1 in zip(dates[:-1], dates[1:])
    ]
    if redemption:
        leg.append(Principal(nominal, nominal, dates[-1], dates[0], dates[-1], day_count))
    return leg


def floating_rate_leg(
    start: pd.Timestamp,
    maturity: pd.Timestamp,
    freq: int,
    nominal: float,
    index,
    gearing: float = 1.0,
    spread: float = 0.0,
    cap: Optional[float] = None,
    floor: Optional[float] = None,
    pricer=None,
) -> List[CashFlow]:
    dates = cached_schedule(pd.Timestamp(start), pd.Timestamp(maturity), int(freq))
    leg: List[CashFlow] = []
    for d0, d1 in zip(dates[:-1], dates[1:]):
        cpn = FloatingRateCoupon(d1, nominal, d0, d1, index, gearing=gearing, spread=spread)
        if cap is not None or floor is not None:
            cpn = CappedFlooredCoupon(cpn, cap, floor, pricer or IntrinsicCouponPricer())
        leg.append(cpn)
    return leg
