from __future__ import annotations

import math
import pandas as pd
from dataclasses import dataclass
from enum import Enum, IntEnum

from .errors import ArgumentError
from .utils import normalize_day_count, yearfrac


class Compounding(Enum):
    SIMPLE = "simple"
    COMPOUNDED = "compounded"
    CONTINUOUS = "continuous"
    SIMPLE_THEN_COMPOUNDED = "simple_then_compounded"


class Frequency(IntEnum):
    NO_FREQUENCY = -1
    ONCE = 0
    ANNUAL = 1
    SEMIANNUAL = 2
    EVERY_FOURTH_MONTH = 3
    QUARTERLY = 4
    BIMONTHLY = 6
    MONTHLY = 12


def _check_time(t: float) -> None:
    if t < 0.0:
        raise ArgumentError(f"negative time not allowed: {t}")


@dataclass(frozen=True)
class InterestRate:
    """
    Rate with its conventions. Immutable.

    compound_factor(t):
      SIMPLE                 1 + r t
      COMPOUNDED             (1 + r/N)^(N t)
      CONTINUOUS             exp(r t)
      SIMPLE_THEN_COMPOUNDED simple for t <= 1/N, compounded after
    """
    rate: float
    day_count: str = "ACT/365"
    compounding: Compounding = Compounding.CONTINUOUS
    frequency: Frequency = Frequency.ANNUAL

    def __post_init__(self) -> None:
        if not isinstance(self.compounding, Compounding):
            raise ArgumentError(f"unknown compounding convention ({self.compounding})")
        object.__setattr__(self, "day_count", normalize_day_count(self.day_count))
        object.__setattr__(self, "frequency", Frequency(self.frequency))
        if self.compounding in (Compounding.COMPOUNDED, Compounding.SIMPLE_THEN_COMPOUNDED):
            if self.frequency in (Frequency.ONCE, Frequency.NO_FREQUENCY):
                raise ArgumentError(f"{self.frequency.name} frequency not allowed for this interest rate")

    @property
    def n(self) -> int:
        return int(self.frequency)

    def compound_factor(self, t: float) -> float:
        _check_time(t)
        r = self.rate
        if self.compounding is Compounding.SIMPLE:
            return 1.0 + r * t
        if self.compounding is Compounding.COMPOUNDED:
            return (1.0 + r / self.n) ** (self.n * t)
        if self.compounding is Compounding.CONTINUOUS:
            return math.exp(r * t)
        if t <= 1.0 / self.n:
            return 1.0 + r * t
        return (1.0 + r / self.n) ** (self.n * t)

    def discount_factor(self, t: float) -> float:
        return 1.0 / self.compound_factor(t)

    def compound_factor_between(self, d1: pd.Timestamp, d2: pd.Timestamp) -> float:
        return self.compound_factor(yearfrac(d1, d2, self.day_count))

    def discount_factor_between(self, d1: pd.Timestamp, d2: pd.Timestamp) -> float:
        return 1.0 / self.compound_factor_between(d1, d2)

    def equivalent_rate(self, compounding: Compounding, frequency: Frequency, t: float) -> "InterestRate":
        return implied_rate(self.compound_factor(t), self.day_count, compounding, frequency, t)

    def __str__(self) -> str:
        label = self.compounding.value
        if self.compounding in (Compounding.COMPOUNDED, Compounding.SIMPLE_THEN_COMPOUNDED):
            label += f" {self.frequency.name.lower()}"
        return f"{self.rate * 100:.6f} % {self.day_count} {label}"


def implied_rate(
    compound: float,
    day_count: str,
    compounding: Compounding,
    frequency: Frequency = Frequency.ANNUAL,
    t: float = 1.0,
) -> InterestRate:
    """Rate that produces `compound` over `t` years under the given conventions."""
    if compound <= 0.0:
        raise ArgumentError(f"positive compound factor required, got {compound}")

    if compound == 1.0:
        _check_time(t)
        return InterestRate(0.0, day_count, compounding, frequency)

    if t <= 0.0:
        raise ArgumentError(f"non-null time required, got {t}")

    n = int(frequency)
    if compounding is Compounding.SIMPLE:
        r = (compound - 1.0) / t
    elif compounding is Compounding.COMPOUNDED:
        r = (compound ** (1.0 / (n * t)) - 1.0) * n
    elif compounding is Compounding.CONTINUOUS:
        r = math.log(compound) / t
    elif compounding is Compounding.SIMPLE_THEN_COMPOUNDED:
        if t <= 1.0 / n:
            r = (compound - 1.0) / t
        else:
            r = (compound ** (1.0 / (n * t)) - 1.0) * n
    else:
        raise ArgumentError(f"unknown compounding convention ({compounding})")

    return InterestRate(r, day_count, compounding, frequency)
