"""
Calibrating instruments for curve bootstrapping.

A helper quotes one market rate and, given the curve being built, reprices
that rate off the curve. The bootstrap drives the curve node at the helper's
pillar date until `quote_error()` vanishes.
"""
from __future__ import annotations

import pandas as pd
from typing import Optional, Union

from .analytics import bps
from .cashflows import fixed_rate_leg
from .config.tolerances import BASIS_POINT
from .errors import ArgumentError
from .observable import Observable, Observer
from .quotes import Quote, SimpleQuote
from .utils import advance, normalize_day_count, parse_tenor, settlement_date, yearfrac


class RateHelper(Observable, Observer):
    def __init__(self, quote: Union[float, Quote]):
        Observable.__init__(self)
        self._quote = quote if isinstance(quote, Quote) else SimpleQuote(float(quote))
        self.register_with(self._quote)
        self._curve = None
        self._pillar: Optional[pd.Timestamp] = None

    @property
    def quote(self) -> Quote:
        return self._quote

    def pillar_date(self) -> pd.Timestamp:
        if self._pillar is None:
            raise ArgumentError(f"{type(self).__name__}: term structure not set")
        return self._pillar

    def set_term_structure(self, curve) -> None:
        self._curve = curve
        self._initialize_dates(curve.reference_date())

    def _initialize_dates(self, reference_date: pd.Timestamp) -> None:
        raise NotImplementedError

    def implied_quote(self) -> float:
        raise NotImplementedError

    def quote_error(self) -> float:
        return self._quote.value() - self.implied_quote()

    def update(self) -> None:
        self.notify_observers()

    def _term_structure(self):
        if self._curve is None:
            raise ArgumentError(f"{type(self).__name__}: term structure not set")
        return self._curve


class DepositRateHelper(RateHelper):
    """Simple-rate deposit from reference + fixing_days over `tenor`."""

    def __init__(
        self,
        quote: Union[float, Quote],
        tenor: str,
        fixing_days: int = 2,
        day_count: str = "ACT/360",
    ):
        parse_tenor(tenor)
        super().__init__(quote)
        self.tenor = tenor.upper()
        self.fixing_days = int(fixing_days)
        self.day_count = normalize_day_count(day_count)

    def _initialize_dates(self, reference_date: pd.Timestamp) -> None:
        self.start_date = advance(reference_date, self.fixing_days)
        self.maturity_date = advance(self.start_date, self.tenor)
        self._pillar = self.maturity_date

    def implied_quote(self) -> float:
        curve = self._term_structure()
        tau = yearfrac(self.start_date, self.maturity_date, self.day_count)
        return (curve.discount(self.start_date) / curve.discount(self.maturity_date) - 1.0) / tau

    def __repr__(self) -> str:
        return f"DepositRateHelper({self.tenor}, {self._quote!r})"


class ParRateHelper(RateHelper):
    """
    Par coupon of a fixed-rate bullet starting `settlement_days` after the
    reference date and running for `tenor`.

    The par rate R solves R * annuity = DF(start) - DF(maturity); the annuity
    is the leg's bps scaled back from one basis point.
    """

    def __init__(
        self,
        quote: Union[float, Quote],
        tenor: str,
        frequency: int = 1,
        day_count: str = "30/360",
        settlement_days: int = 2,
    ):
        parse_tenor(tenor)
        super().__init__(quote)
        self.tenor = tenor.upper()
        self.frequency = int(frequency)
        self.day_count = normalize_day_count(day_count)
        self.settlement_days = int(settlement_days)

    def _initialize_dates(self, reference_date: pd.Timestamp) -> None:
        self.start_date = settlement_date(reference_date, self.settlement_days)
        self.maturity_date = advance(self.start_date, self.tenor)
        self.leg = fixed_rate_leg(
            self.start_date,
            self.maturity_date,
            self.frequency,
            1.0,
            0.0,
            day_count=self.day_count,
            redemption=False,
        )
        self._pillar = self.maturity_date

    def implied_quote(self) -> float:
        curve = self._term_structure()
        sensitivity = bps(self.leg, curve, settlement_date=curve.reference_date())
        if sensitivity == 0.0:
            raise ArgumentError(f"null annuity for {self.tenor} par rate")
        floating = curve.discount(self.start_date) - curve.discount(self.maturity_date)
        return BASIS_POINT * floating / sensitivity

    def __repr__(self) -> str:
        return f"ParRateHelper({self.tenor}, {self._quote!r})"
