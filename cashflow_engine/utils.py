from __future__ import annotations

import re
import pandas as pd
from typing import List
from functools import lru_cache

from .errors import ArgumentError


DAY_COUNTS = ("ACT/365", "ACT/365F", "ACT/360", "30/360", "30/360US", "ACT/ACT")


def normalize_day_count(convention: str) -> str:
    convention = convention.upper().replace(" ", "")
    if convention not in DAY_COUNTS:
        raise ArgumentError(f"Unsupported day count convention: {convention}")
    return convention


def yearfrac(start: pd.Timestamp, end: pd.Timestamp, convention: str) -> float:
    """
    Year fraction between two dates under a day count convention.

    Supported:
    - ACT/365, ACT/365F
    - ACT/360
    - 30/360, 30/360US (US bond basis)
    - ACT/ACT (ISDA)

    Reversed dates give the negated fraction.
    """
    start = pd.Timestamp(start)
    end = pd.Timestamp(end)
    convention = normalize_day_count(convention)

    if end < start:
        return -yearfrac(end, start, convention)

    if convention in ("ACT/365", "ACT/365F"):
        return (end - start).days / 365.0

    if convention == "ACT/360":
        return (end - start).days / 360.0

    if convention in ("30/360", "30/360US"):
        y1, m1, d1 = start.year, start.month, start.day
        y2, m2, d2 = end.year, end.month, end.day

        if d1 == 31:
            d1 = 30
        if d2 == 31 and d1 == 30:
            d2 = 30

        return ((y2 - y1) * 360 + (m2 - m1) * 30 + (d2 - d1)) / 360.0

    # ACT/ACT ISDA: split at year boundaries
    if start.year == end.year:
        return (end - start).days / (366.0 if start.is_leap_year else 365.0)

    first_end = pd.Timestamp(year=start.year + 1, month=1, day=1)
    last_start = pd.Timestamp(year=end.year, month=1, day=1)
    head = (first_end - start).days / (366.0 if start.is_leap_year else 365.0)
    tail = (end - last_start).days / (366.0 if end.is_leap_year else 365.0)
    return head + (end.year - start.year - 1) + tail


_TENOR = re.compile(r"^\s*(\d+)\s*([DWMY])\s*$", re.IGNORECASE)


def parse_tenor(tenor: str) -> pd.DateOffset:
    """'2D', '1W', '3M', '10Y' -> calendar offset."""
    m = _TENOR.match(str(tenor))
    if m is None:
        raise ArgumentError(f"Invalid tenor: {tenor!r}")

    n, unit = int(m.group(1)), m.group(2).upper()
    if unit == "D":
        return pd.DateOffset(days=n)
    if unit == "W":
        return pd.DateOffset(weeks=n)
    if unit == "M":
        return pd.DateOffset(months=n)
    return pd.DateOffset(years=n)


def advance(date: pd.Timestamp, tenor) -> pd.Timestamp:
    """
    Calendar-day date arithmetic. `tenor` is a number of days or a tenor string.
    In production: use business-day calendars + holiday schedules.
    """
    date = pd.Timestamp(date)
    if isinstance(tenor, str):
        return date + parse_tenor(tenor)
    return date + pd.Timedelta(days=int(tenor))


def settlement_date(val_date: pd.Timestamp, lag_days: int = 2) -> pd.Timestamp:
    """Simplified settlement date: valuation date + lag_days (calendar days)."""
    return advance(val_date, lag_days)


def is_weekday(date: pd.Timestamp) -> bool:
    return pd.Timestamp(date).dayofweek < 5


def make_schedule(start: pd.Timestamp, end: pd.Timestamp, freq: int) -> List[pd.Timestamp]:
    """
    Regular schedule anchored at `end`, stepping back 12/freq months.
    Returned dates start with `start` (short front stub if needed) and end with `end`.
    """
    start = pd.Timestamp(start)
    end = pd.Timestamp(end)

    if end <= start:
        raise ArgumentError(f"Schedule end {end.date()} must be after start {start.date()}")
    if freq not in (1, 2, 3, 4, 6, 12):
        raise ArgumentError(f"Unsupported schedule frequency: {freq}")

    months = 12 // freq
    dates: List[pd.Timestamp] = [end]
    k = 1
    while True:
        d = end - pd.DateOffset(months=months * k)
        if d <= start:
            break
        dates.append(d)
        k += 1

    dates.append(start)
    return sorted(dates)


@lru_cache(maxsize=10_000)
def cached_schedule(start: pd.Timestamp, end: pd.Timestamp, freq: int) -> tuple:
    """Cache schedules by (start, end, freq)."""
    return tuple(make_schedule(pd.Timestamp(start), pd.Timestamp(end), int(freq)))
