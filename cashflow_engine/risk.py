"""
Yield sensitivities of a leg under a flat InterestRate.

With P = sum c_i B(t_i) over live flows, the first and second derivatives
with respect to the yield are closed-form per compounding regime:

  regime        dP/dy per flow            d2P/dy2 per flow
  SIMPLE        -c B^2 t                  2 c B^3 t^2
  COMPOUNDED    -c t B / (1 + y/N)        c B t (N t + 1) / (N (1 + y/N)^2)
  CONTINUOUS    -c B t                    c B t^2
  SIMPLE_THEN_COMPOUNDED: SIMPLE for t <= 1/N, COMPOUNDED after.

Empty legs and legs whose live flows price to zero return 0.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from enum import Enum
from typing import Optional, Tuple

from .analytics import Leg, live_flows, npv
from .config.settings import evaluation_date
from .config.tolerances import BASIS_POINT, YIELD_VALUE_SHIFT
from .errors import ArgumentError, DomainError
from .interest_rate import Compounding, InterestRate
from .utils import yearfrac


class DurationType(Enum):
    SIMPLE = "simple"
    MACAULAY = "macaulay"
    MODIFIED = "modified"


def _settlement(settlement_date: Optional[pd.Timestamp]) -> pd.Timestamp:
    return evaluation_date() if settlement_date is None else pd.Timestamp(settlement_date).normalize()


def _time_amount_discount(leg: Leg, y: InterestRate, settle: pd.Timestamp) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    flows = live_flows(leg, settle)
    t = np.array([yearfrac(settle, cf.date, y.day_count) for cf in flows], dtype=float)
    c = np.array([cf.amount() for cf in flows], dtype=float)
    B = np.array([y.discount_factor(ti) for ti in t], dtype=float)
    return t, c, B


def _first_derivative_terms(t: np.ndarray, c: np.ndarray, B: np.ndarray, y: InterestRate) -> np.ndarray:
    comp = y.compounding
    if comp is Compounding.CONTINUOUS:
        return -c * B * t

    simple = -c * B * B * t
    if comp is Compounding.SIMPLE:
        return simple

    r, N = y.rate, y.n
    compounded = -c * t * B / (1.0 + r / N)
    if comp is Compounding.COMPOUNDED:
        return compounded
    if comp is Compounding.SIMPLE_THEN_COMPOUNDED:
        return np.where(t <= 1.0 / N, simple, compounded)

    raise ArgumentError(f"unknown compounding convention ({comp})")


def _second_derivative_terms(t: np.ndarray, c: np.ndarray, B: np.ndarray, y: InterestRate) -> np.ndarray:
    comp = y.compounding
    if comp is Compounding.CONTINUOUS:
        return c * B * t * t

    simple = c * 2.0 * B * B * B * t * t
    if comp is Compounding.SIMPLE:
        return simple

    r, N = y.rate, y.n
    compounded = c * B * t * (N * t + 1) / (N * (1 + r / N) * (1 + r / N))
    if comp is Compounding.COMPOUNDED:
        return compounded
    if comp is Compounding.SIMPLE_THEN_COMPOUNDED:
        return np.where(t <= 1.0 / N, simple, compounded)

    raise ArgumentError(f"unknown compounding convention ({comp})")


def price_and_derivative(
    leg: Leg,
    y: InterestRate,
    settlement_date: Optional[pd.Timestamp] = None,
) -> Tuple[float, float]:
    """(P, dP/dy) of the live flows under the flat rate `y`."""
    t, c, B = _time_amount_discount(leg, y, _settlement(settlement_date))
    P = float(np.sum(c * B))
    dPdy = float(np.sum(_first_derivative_terms(t, c, B, y)))
    return P, dPdy


def simple_duration(leg: Leg, y: InterestRate, settlement_date: Optional[pd.Timestamp] = None) -> float:
    """sum(t c B) / sum(c B)."""
    if len(leg) == 0:
        return 0.0

    t, c, B = _time_amount_discount(leg, y, _settlement(settlement_date))
    P = float(np.sum(c * B))
    if P == 0.0:
        return 0.0
    return float(np.sum(t * c * B)) / P


def modified_duration(leg: Leg, y: InterestRate, settlement_date: Optional[pd.Timestamp] = None) -> float:
    """-1/P dP/dy."""
    if len(leg) == 0:
        return 0.0

    P, dPdy = price_and_derivative(leg, y, settlement_date)
    if P == 0.0:
        return 0.0
    return -dPdy / P


def macaulay_duration(leg: Leg, y: InterestRate, settlement_date: Optional[pd.Timestamp] = None) -> float:
    """(1 + y/N) * modified duration; compounded rates only."""
    if y.compounding is not Compounding.COMPOUNDED:
        raise DomainError(f"compounded rate required for Macaulay duration, got {y.compounding.value}")
    return (1.0 + y.rate / y.n) * modified_duration(leg, y, settlement_date)


def duration(
    leg: Leg,
    y: InterestRate,
    duration_type: DurationType = DurationType.MODIFIED,
    settlement_date: Optional[pd.Timestamp] = None,
) -> float:
    if duration_type is DurationType.SIMPLE:
        return simple_duration(leg, y, settlement_date)
    if duration_type is DurationType.MODIFIED:
        return modified_duration(leg, y, settlement_date)
    if duration_type is DurationType.MACAULAY:
        return macaulay_duration(leg, y, settlement_date)
    raise ArgumentError(f"unknown duration type ({duration_type})")


def convexity(leg: Leg, y: InterestRate, settlement_date: Optional[pd.Timestamp] = None) -> float:
    """1/P d2P/dy2."""
    if len(leg) == 0:
        return 0.0

    t, c, B = _time_amount_discount(leg, y, _settlement(settlement_date))
    P = float(np.sum(c * B))
    if P == 0.0:
        return 0.0
    return float(np.sum(_second_derivative_terms(t, c, B, y))) / P


def basis_point_value(leg: Leg, y: InterestRate, settlement_date: Optional[pd.Timestamp] = None) -> float:
    """Price change for dy = 1bp from the second-order Taylor expansion."""
    if len(leg) == 0:
        return 0.0

    settle = _settlement(settlement_date)
    dirty_price = npv(leg, y, settle)
    mod_duration = modified_duration(leg, y, settle)
    conv = convexity(leg, y, settle)

    delta = -mod_duration * dirty_price * BASIS_POINT
    gamma = (conv / 100.0) * dirty_price * BASIS_POINT * BASIS_POINT
    return delta + 0.5 * gamma


def yield_value_basis_point(leg: Leg, y: InterestRate, settlement_date: Optional[pd.Timestamp] = None) -> float:
    """Yield change for a 0.01 price change: 0.01 / (-P * D_mod)."""
    if len(leg) == 0:
        return 0.0

    settle = _settlement(settlement_date)
    dirty_price = npv(leg, y, settle)
    mod_duration = modified_duration(leg, y, settle)
    if dirty_price * mod_duration == 0.0:
        raise DomainError("null price sensitivity: yield value of a basis point undefined")
    return YIELD_VALUE_SHIFT / (-dirty_price * mod_duration)
