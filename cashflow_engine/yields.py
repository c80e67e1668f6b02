from __future__ import annotations

import logging
import numpy as np
import pandas as pd
from typing import Optional

from .analytics import Leg, live_flows, npv
from .config.settings import IRR_SOLVER, evaluation_date
from .config.tolerances import IRR_GUESS
from .errors import DomainError
from .interest_rate import Compounding, Frequency, InterestRate
from .risk import price_and_derivative
from .solvers import NewtonSafe, ObjectiveFunction

logger = logging.getLogger(__name__)


class IrrFinder(ObjectiveFunction):
    """
    market_price - NPV(y), with derivative -dP/dy from the closed forms.

    The derivative is P * modified_duration, the true slope of the objective,
    rather than the bare modified duration.
    """

    def __init__(
        self,
        leg: Leg,
        market_price: float,
        day_count: str,
        compounding: Compounding,
        frequency: Frequency,
        settlement_date: pd.Timestamp,
    ):
        self.leg = leg
        self.market_price = market_price
        self.day_count = day_count
        self.compounding = compounding
        self.frequency = frequency
        self.settlement_date = settlement_date

    def _rate(self, x: float) -> InterestRate:
        return InterestRate(x, self.day_count, self.compounding, self.frequency)

    def value(self, x: float) -> float:
        return self.market_price - npv(self.leg, self._rate(x), self.settlement_date)

    def derivative(self, x: float) -> float:
        _, dPdy = price_and_derivative(self.leg, self._rate(x), self.settlement_date)
        return -dPdy


def _sign_changes(leg: Leg, market_price: float, settle: pd.Timestamp) -> int:
    last_sign = int(np.sign(-market_price))
    changes = 0
    for cf in live_flows(leg, settle):
        this_sign = int(np.sign(cf.amount()))
        if last_sign * this_sign < 0:
            changes += 1
        if this_sign != 0:
            last_sign = this_sign
    return changes


def _aggregate_sign_changes(leg: Leg, market_price: float, settle: pd.Timestamp) -> int:
    """Norstrom criterion: sign changes of the running sum starting at the price."""
    aggregate = market_price
    changes = 0
    for cf in live_flows(leg, settle):
        nxt = aggregate + cf.amount()
        if aggregate * nxt < 0.0:
            changes += 1
        aggregate = nxt
    return changes


def irr(
    leg: Leg,
    market_price: float,
    day_count: str = "ACT/365",
    compounding: Compounding = Compounding.COMPOUNDED,
    frequency: Frequency = Frequency.ANNUAL,
    settlement_date: Optional[pd.Timestamp] = None,
    accuracy: float = IRR_SOLVER.accuracy,
    max_evaluations: int = IRR_SOLVER.max_evaluations,
    guess: float = IRR_GUESS,
) -> float:
    """
    Flat yield y such that npv(leg, y) == market_price.

    The live flows must change sign at least once against -market_price,
    otherwise no yield can reproduce the price.
    """
    settle = evaluation_date() if settlement_date is None else pd.Timestamp(settlement_date).normalize()

    changes = _sign_changes(leg, market_price, settle)
    if changes == 0:
        raise DomainError(
            f"the given cash flows cannot result in the given market price ({market_price}) due to their sign"
        )
    if changes > 1 and _aggregate_sign_changes(leg, market_price, settle) > 1:
        logger.warning("danger of non-unique IRR solution: %d sign changes in cash flows", changes)

    solver = NewtonSafe(max_evaluations=max_evaluations)
    finder = IrrFinder(leg, market_price, day_count, compounding, frequency, settle)
    result = solver.solve(finder, accuracy, guess, guess / 10.0)
    logger.debug("IRR %.10f found in %d evaluations", result, solver.evaluations)
    return result
