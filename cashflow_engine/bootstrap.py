"""
Sequential curve bootstrap.

Pillars are solved left to right: node i is moved until helper i reprices
its quote, with nodes 0..i-1 already fixed. The objective is BootstrapError,
an ordinary solver function, so any Solver1D subclass can drive it.
"""
from __future__ import annotations

import logging
import math
import numpy as np
import pandas as pd
from typing import List, Sequence, Type

from .config.settings import BOOTSTRAP_SOLVER
from .config.tolerances import (
    BOOTSTRAP_ACCURACY,
    BOOTSTRAP_GUESS_RATE,
    BOOTSTRAP_STEP,
    MIN_DISCOUNT_FACTOR,
)
from .curves import InterpolatedDiscountCurve, YieldTermStructure
from .errors import ArgumentError
from .helpers import RateHelper
from .solvers import NewtonSafe, ObjectiveFunction, Solver1D

logger = logging.getLogger(__name__)


class BootstrapError(ObjectiveFunction):
    """Quote error of `helper` with node `segment` of `curve` set to the guess."""

    def __init__(self, curve: InterpolatedDiscountCurve, helper: RateHelper, segment: int):
        self.curve = curve
        self.helper = helper
        self.segment = segment

    def value(self, guess: float) -> float:
        self.curve.update_guess(self.segment, guess)
        self.curve.interpolation_update()
        return self.helper.quote_error()


class IterativeBootstrap:
    def __init__(
        self,
        curve: "PiecewiseYieldCurve",
        accuracy: float = BOOTSTRAP_ACCURACY,
        solver: Type[Solver1D] = NewtonSafe,
        max_evaluations: int = BOOTSTRAP_SOLVER.max_evaluations,
    ):
        self.curve = curve
        self.accuracy = accuracy
        self.solver = solver
        self.max_evaluations = max_evaluations

    def setup(self) -> List[pd.Timestamp]:
        """Sort helpers by pillar and return the node dates (reference date first)."""
        ref = self.curve.reference_date()
        for h in self.curve.helpers:
            h.set_term_structure(self.curve)
        self.curve.helpers.sort(key=lambda h: h.pillar_date())

        pillars = [h.pillar_date() for h in self.curve.helpers]
        if not pillars:
            raise ArgumentError("no bootstrap helpers given")
        for h, pillar in zip(self.curve.helpers, pillars):
            if pillar <= ref:
                raise ArgumentError(f"{h!r}: pillar {pillar.date()} not after reference date {ref.date()}")
        for i in range(1, len(pillars)):
            if pillars[i] == pillars[i - 1]:
                raise ArgumentError(
                    f"more than one instrument with pillar {pillars[i].date()}: "
                    f"{self.curve.helpers[i - 1]!r}, {self.curve.helpers[i]!r}"
                )
        return [ref] + pillars

    def initial_guesses(self, times: np.ndarray) -> np.ndarray:
        return np.exp(-BOOTSTRAP_GUESS_RATE * times)

    def calculate(self) -> None:
        curve = self.curve
        times = curve._times
        curve._data = self.initial_guesses(times)
        curve.interpolation_update()

        total_evaluations = 0
        for i, helper in enumerate(curve.helpers, start=1):
            solver = self.solver(max_evaluations=self.max_evaluations, lower_bound=MIN_DISCOUNT_FACTOR)
            guess = curve._data[i - 1] * math.exp(-BOOTSTRAP_GUESS_RATE * (times[i] - times[i - 1]))
            root = solver.solve(BootstrapError(curve, helper, i), self.accuracy, guess, BOOTSTRAP_STEP)
            curve.update_guess(i, root)
            curve.interpolation_update()
            total_evaluations += solver.evaluations

        logger.info(
            "Bootstrapped %d nodes to %s with %s in %d evaluations",
            len(curve.helpers), curve.max_date().date(), self.solver.__name__, total_evaluations,
        )


class PiecewiseYieldCurve(InterpolatedDiscountCurve):
    """
    Discount curve whose nodes are implied by market instruments.

    Nodes sit at the reference date (DF = 1) and at each helper's pillar.
    The curve observes its helpers: a quote change invalidates the nodes,
    which are rebuilt on the next read.
    """

    def __init__(
        self,
        reference_date: pd.Timestamp,
        helpers: Sequence[RateHelper],
        day_count: str = "ACT/365",
        accuracy: float = BOOTSTRAP_ACCURACY,
        solver: Type[Solver1D] = NewtonSafe,
    ):
        YieldTermStructure.__init__(self, reference_date, day_count)
        self.helpers: List[RateHelper] = list(helpers)
        self.bootstrap = IterativeBootstrap(self, accuracy, solver)

        dates = self.bootstrap.setup()
        self._set_nodes(dates, self.bootstrap.initial_guesses(
            np.array([self.time_from_reference(d) for d in dates], dtype=float)
        ))
        for h in self.helpers:
            self.register_with(h)

    def perform_calculations(self) -> None:
        self.bootstrap.calculate()
