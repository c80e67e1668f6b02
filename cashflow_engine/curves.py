from __future__ import annotations

import numpy as np
import pandas as pd
from typing import Iterable, List, Sequence, Union

from .errors import ArgumentError
from .interest_rate import Compounding, Frequency, InterestRate, implied_rate
from .observable import LazyObject
from .quotes import Quote
from .utils import normalize_day_count, yearfrac


class YieldTermStructure(LazyObject):
    """
    Discount provider: discount(date) relative to a reference date.

    Subclasses implement `_discount_impl(t)` with t in years from the
    reference date under the curve's day count. Dates before the reference
    date are rejected.
    """

    def __init__(self, reference_date: pd.Timestamp, day_count: str = "ACT/365"):
        super().__init__()
        self._reference_date = pd.Timestamp(reference_date).normalize()
        self.day_count = normalize_day_count(day_count)

    def reference_date(self) -> pd.Timestamp:
        return self._reference_date

    def perform_calculations(self) -> None:
        pass

    def time_from_reference(self, date: pd.Timestamp) -> float:
        return yearfrac(self._reference_date, pd.Timestamp(date), self.day_count)

    def max_date(self) -> pd.Timestamp:
        return pd.Timestamp.max.normalize()

    def discount(self, date: pd.Timestamp) -> float:
        self.calculate()
        date = pd.Timestamp(date).normalize()
        if date < self._reference_date:
            raise ArgumentError(
                f"Requested date {date.date()} before reference date {self._reference_date.date()}"
            )
        if date > self.max_date():
            raise ArgumentError(
                f"Requested date {date.date()} beyond curve max date {self.max_date().date()} "
                "(no long-end extrapolation)"
            )
        return float(self._discount_impl(self.time_from_reference(date)))

    def discounts(self, dates: Iterable[pd.Timestamp]) -> np.ndarray:
        return np.array([self.discount(d) for d in dates], dtype=float)

    def zero_rate(
        self,
        date: pd.Timestamp,
        day_count: str = "ACT/365",
        compounding: Compounding = Compounding.CONTINUOUS,
        frequency: Frequency = Frequency.ANNUAL,
    ) -> InterestRate:
        t = yearfrac(self._reference_date, date, day_count)
        if t == 0.0:
            # instantaneous rate from a one-day step
            return self.zero_rate(pd.Timestamp(date) + pd.Timedelta(days=1), day_count, compounding, frequency)
        return implied_rate(1.0 / self.discount(date), day_count, compounding, frequency, t)

    def forward_rate(
        self,
        d1: pd.Timestamp,
        d2: pd.Timestamp,
        day_count: str = "ACT/365",
        compounding: Compounding = Compounding.SIMPLE,
        frequency: Frequency = Frequency.ANNUAL,
    ) -> InterestRate:
        if pd.Timestamp(d2) <= pd.Timestamp(d1):
            raise ArgumentError(f"forward end {pd.Timestamp(d2).date()} must follow start {pd.Timestamp(d1).date()}")
        compound = self.discount(d1) / self.discount(d2)
        return implied_rate(compound, day_count, compounding, frequency, yearfrac(d1, d2, day_count))

    def _discount_impl(self, t: float) -> float:
        raise NotImplementedError


class FlatForward(YieldTermStructure):
    """Flat curve built from one rate (number, InterestRate or observable Quote)."""

    def __init__(
        self,
        reference_date: pd.Timestamp,
        rate: Union[float, InterestRate, Quote],
        day_count: str = "ACT/365",
        compounding: Compounding = Compounding.CONTINUOUS,
        frequency: Frequency = Frequency.ANNUAL,
    ):
        if isinstance(rate, InterestRate):
            day_count, compounding, frequency = rate.day_count, rate.compounding, rate.frequency
        super().__init__(reference_date, day_count)
        self.compounding = compounding
        self.frequency = Frequency(frequency)
        self._rate = rate
        if isinstance(rate, Quote):
            self.register_with(rate)

    def interest_rate(self) -> InterestRate:
        if isinstance(self._rate, InterestRate):
            return self._rate
        value = self._rate.value() if isinstance(self._rate, Quote) else float(self._rate)
        return InterestRate(value, self.day_count, self.compounding, self.frequency)

    def _discount_impl(self, t: float) -> float:
        return self.interest_rate().discount_factor(t)


class InterpolatedDiscountCurve(YieldTermStructure):
    """
    Discount curve represented by knot discount factors,
    interpolated linearly in log discount factor space.

    - The first knot is the reference date (DF = 1 by construction of callers).
    - Long-end extrapolation: NOT allowed (raises).

    Knot values are mutable through `update_guess` so that a bootstrap can
    move one node at a time; `interpolation_update` must follow each write.
    """

    def __init__(self, dates: Sequence[pd.Timestamp], discounts: Sequence[float], day_count: str = "ACT/365"):
        dates = [pd.Timestamp(d).normalize() for d in dates]
        if len(dates) < 1:
            raise ArgumentError("at least one node required")
        super().__init__(dates[0], day_count)
        self._set_nodes(dates, discounts)

    def _set_nodes(self, dates: List[pd.Timestamp], discounts: Sequence[float]) -> None:
        if len(dates) != len(discounts):
            raise ArgumentError(f"dates/discounts size mismatch: {len(dates)} vs {len(discounts)}")
        if any(dates[i] >= dates[i + 1] for i in range(len(dates) - 1)):
            raise ArgumentError("Knot dates must be strictly increasing")
        self._reference_date = dates[0]
        self._dates = list(dates)
        self._times = np.array([self.time_from_reference(d) for d in dates], dtype=float)
        self._data = np.array(discounts, dtype=float)
        self.interpolation_update()

    def dates(self) -> List[pd.Timestamp]:
        self.calculate()
        return list(self._dates)

    def times(self) -> np.ndarray:
        self.calculate()
        return self._times.copy()

    def data(self) -> np.ndarray:
        self.calculate()
        return self._data.copy()

    def max_date(self) -> pd.Timestamp:
        return self._dates[-1]

    def update_guess(self, segment: int, value: float) -> None:
        self._data[segment] = value

    def interpolation_update(self) -> None:
        if np.any(self._data <= 0.0):
            raise ArgumentError("All discount factors must be positive")
        self._log_data = np.log(self._data)

    def _discount_impl(self, t: float) -> float:
        if len(self._times) == 1:
            return float(self._data[0])
        return float(np.exp(np.interp(t, self._times, self._log_data)))


def curve_qc_report(curve: InterpolatedDiscountCurve) -> pd.DataFrame:
    dates = pd.to_datetime(curve.dates())
    dfs = curve.data()
    taus = curve.times()

    with np.errstate(divide="ignore", invalid="ignore"):
        zeros = np.where(taus > 0.0, -np.log(dfs) / taus, np.nan)

    return pd.DataFrame(
        {
            "date": dates,
            "tau": taus,
            "df": dfs,
            "zero_cc": zeros,
            "df_positive": dfs > 0,
            "df_monotone": np.r_[True, np.diff(dfs) <= 1e-10],
        }
    )
