from __future__ import annotations

import math
import pandas as pd
from typing import Optional, Sequence

from .config.settings import evaluation_date
from .errors import ArgumentError
from .fixings import FixingStore, default_fixing_store
from .observable import Observable, Observer
from .utils import advance, is_weekday, normalize_day_count, yearfrac


class Index(Observable, Observer):
    """
    Named rate index backed by a fixing store.

    Dates passed to the fixing methods are the actual fixing dates, without
    settlement lag. No check is made that stored fixings lie in the past.
    """

    def __init__(self, store: Optional[FixingStore] = None):
        Observable.__init__(self)
        self._store = store if store is not None else default_fixing_store()
        self.register_with(self._store.notifier(self.name()))

    def name(self) -> str:
        raise NotImplementedError

    @property
    def store(self) -> FixingStore:
        return self._store

    def is_valid_fixing_date(self, date: pd.Timestamp) -> bool:
        return is_weekday(date)

    def update(self) -> None:
        self.notify_observers()

    # ---- history ----

    def time_series(self) -> pd.Series:
        return self._store.get_history(self.name())

    def clear_fixings(self) -> None:
        self._store.clear_history(self.name())

    def add_fixing(self, date: pd.Timestamp, value: float, force_overwrite: bool = False) -> None:
        self.add_fixings_from(pd.Series({pd.Timestamp(date): value}), force_overwrite)

    def add_fixings(
        self,
        dates: Sequence[pd.Timestamp],
        values: Sequence[float],
        force_overwrite: bool = False,
    ) -> None:
        if len(dates) != len(values) or len(dates) == 0:
            raise ArgumentError("Wrong collection dimensions when creating index fixings")
        self.add_fixings_from(pd.Series(list(values), index=[pd.Timestamp(d) for d in dates]), force_overwrite)

    def add_fixings_from(self, series: pd.Series, force_overwrite: bool = False) -> None:
        self._store.add_fixings(
            self.name(),
            series,
            force_overwrite=force_overwrite,
            is_valid_date=self.is_valid_fixing_date,
        )

    def past_fixing(self, date: pd.Timestamp) -> float:
        history = self.time_series()
        date = pd.Timestamp(date).normalize()
        if date in history.index:
            return float(history.loc[date])
        return math.nan

    # ---- fixing ----

    def forecast_fixing(self, date: pd.Timestamp) -> float:
        raise NotImplementedError

    def fixing(self, date: pd.Timestamp, forecast_todays_fixing: bool = False) -> float:
        date = pd.Timestamp(date).normalize()
        if not self.is_valid_fixing_date(date):
            raise ArgumentError(f"Fixing date {date.date()} is not valid for {self.name()}")

        today = evaluation_date()
        if date > today or (date == today and forecast_todays_fixing):
            return self.forecast_fixing(date)

        past = self.past_fixing(date)
        if not math.isnan(past):
            return past
        if date < today:
            raise ArgumentError(f"Missing {self.name()} fixing for {date.date()}")
        return self.forecast_fixing(date)


class IborIndex(Index):
    """
    Deposit-style index: fixes at `fixing_date`, accrues from the value date
    (fixing date + fixing_days) over `tenor`, forecast off a forwarding curve.
    """

    def __init__(
        self,
        family_name: str,
        tenor: str,
        fixing_days: int = 2,
        day_count: str = "ACT/360",
        forwarding_curve=None,
        store: Optional[FixingStore] = None,
    ):
        self.family_name = family_name
        self.tenor = tenor.upper()
        self.fixing_days = int(fixing_days)
        self.day_count = normalize_day_count(day_count)
        self.forwarding_curve = forwarding_curve
        super().__init__(store)
        if forwarding_curve is not None:
            self.register_with(forwarding_curve)

    def name(self) -> str:
        return f"{self.family_name}{self.tenor} {self.day_count}"

    def value_date(self, fixing_date: pd.Timestamp) -> pd.Timestamp:
        if not self.is_valid_fixing_date(fixing_date):
            raise ArgumentError(f"Fixing date {pd.Timestamp(fixing_date).date()} is not valid")
        return advance(fixing_date, self.fixing_days)

    def maturity_date(self, value_date: pd.Timestamp) -> pd.Timestamp:
        return advance(value_date, self.tenor)

    def forecast_fixing(self, date: pd.Timestamp) -> float:
        if self.forwarding_curve is None:
            raise ArgumentError(f"null term structure set to this instance of {self.name()}")
        d1 = self.value_date(date)
        d2 = self.maturity_date(d1)
        t = yearfrac(d1, d2, self.day_count)
        if t <= 0.0:
            raise ArgumentError(f"cannot calculate forward rate between {d1.date()} and {d2.date()}")
        return (self.forwarding_curve.discount(d1) / self.forwarding_curve.discount(d2) - 1.0) / t

    def link_to(self, forwarding_curve) -> None:
        self.unregister_with(self.forwarding_curve)
        self.forwarding_curve = forwarding_curve
        self.register_with(forwarding_curve)
        self.notify_change()
