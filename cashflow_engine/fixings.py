"""
Repository of past index fixings.

One store holds, per index name, a date-sorted ``pd.Series`` of observed
values. Stores are plain objects handed to the indexes that use them; two
valuations with different fixing assumptions simply use two stores.
``default_fixing_store()`` gives each execution context (thread, asyncio
task, test) its own store for callers that do not inject one.
"""
from __future__ import annotations

import contextvars
import logging
import pandas as pd
from typing import Callable, Dict, List, Optional

from .errors import ArgumentError
from .observable import Observable

logger = logging.getLogger(__name__)


def _empty_series() -> pd.Series:
    return pd.Series(dtype=float, index=pd.DatetimeIndex([]))


def _as_series(series, force_overwrite: bool = False) -> pd.Series:
    if isinstance(series, pd.Series):
        out = series.astype(float).copy()
    else:
        out = pd.Series(dict(series), dtype=float)
    out.index = pd.DatetimeIndex([pd.Timestamp(d).normalize() for d in out.index])

    repeated = out.index.duplicated(keep=False)
    if repeated.any():
        # equal repeats collapse; conflicting ones need force_overwrite, last value wins
        if not force_overwrite:
            for d, values in out[repeated].groupby(level=0):
                if values.nunique(dropna=False) > 1:
                    raise ArgumentError(
                        f"Duplicated fixing provided: {d.date()}, {values.iloc[-1]} while {values.iloc[0]} value is already present"
                    )
        out = out[~out.index.duplicated(keep="last")]
    return out.sort_index()


class FixingStore:
    def __init__(self) -> None:
        self._data: Dict[str, pd.Series] = {}
        self._notifiers: Dict[str, Observable] = {}

    @staticmethod
    def _key(name: str) -> str:
        return name.upper()

    def has_history(self, name: str) -> bool:
        return self._key(name) in self._data

    def get_history(self, name: str) -> pd.Series:
        """Returns a copy of the stored series, empty if the name is unknown."""
        key = self._key(name)
        if key not in self._data:
            return _empty_series()
        return self._data[key].copy()

    def set_history(self, name: str, series) -> None:
        key = self._key(name)
        self._data[key] = _as_series(series)
        self.notifier(name).notify_change()

    def add_fixings(
        self,
        name: str,
        series,
        force_overwrite: bool = False,
        is_valid_date: Optional[Callable[[pd.Timestamp], bool]] = None,
    ) -> None:
        """
        Merge fixings into the series of `name`.

        New dates are inserted; a date already present with a different value
        is rejected unless `force_overwrite`. Nothing is written if any date
        is rejected.
        """
        source = _as_series(series, force_overwrite)
        target = self.get_history(name)

        for d, v in source.items():
            if is_valid_date is not None and not is_valid_date(d):
                raise ArgumentError(f"Invalid fixing provided: {d.day_name()} {d.date()}, {v}")
            if d in target.index:
                current = float(target.loc[d])
                if current != v and not force_overwrite:
                    raise ArgumentError(
                        f"Duplicated fixing provided: {d.date()}, {v} while {current} value is already present"
                    )

        merged = source.combine_first(target) if force_overwrite else target.combine_first(source)
        self._data[self._key(name)] = merged.sort_index()
        logger.debug("Stored %d fixings for %s", len(source), self._key(name))
        self.notifier(name).notify_change()

    def clear_history(self, name: str) -> None:
        key = self._key(name)
        if key in self._data:
            self._data[key] = _empty_series()
            self.notifier(name).notify_change()

    def clear_histories(self) -> None:
        names = list(self._data)
        self._data.clear()
        for key in names:
            self.notifier(key).notify_change()

    def histories(self) -> List[str]:
        return list(self._data)

    def notifier(self, name: str) -> Observable:
        """Observable notified whenever the series of `name` changes."""
        key = self._key(name)
        if key not in self._notifiers:
            self._notifiers[key] = Observable()
        return self._notifiers[key]


_default_store: contextvars.ContextVar = contextvars.ContextVar("cashflow_engine_fixing_store")


def default_fixing_store() -> FixingStore:
    """The store of the current execution context, created on first use."""
    store = _default_store.get(None)
    if store is None:
        store = FixingStore()
        _default_store.set(store)
    return store
