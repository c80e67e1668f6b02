"""
Process-wide settings: evaluation date and solver defaults.

The evaluation date is the default settlement date of every analytic that is
not given one explicitly. Solver configuration is frozen to keep runs
reproducible.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import pandas as pd

from .tolerances import (
    BOOTSTRAP_ACCURACY,
    DEFAULT_MAX_EVALUATIONS,
    IRR_ACCURACY,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
    """
    Immutable solver configuration.

    Attributes
    ----------
    accuracy : float
        Stopping criterion on the step (bracket width)
    max_evaluations : int
        Evaluation budget before ConvergenceError
    """

    accuracy: float = IRR_ACCURACY
    max_evaluations: int = DEFAULT_MAX_EVALUATIONS

    def __post_init__(self) -> None:
        if self.accuracy <= 0.0:
            raise ValueError(f"accuracy must be positive, got {self.accuracy}")
        if self.max_evaluations < 1:
            raise ValueError(f"max_evaluations must be >= 1, got {self.max_evaluations}")


IRR_SOLVER = SolverConfig(accuracy=IRR_ACCURACY)
BOOTSTRAP_SOLVER = SolverConfig(accuracy=BOOTSTRAP_ACCURACY)


class Settings:
    """Holder of the evaluation date. Defaults to today when never set."""

    def __init__(self) -> None:
        self._evaluation_date: Optional[pd.Timestamp] = None

    @property
    def evaluation_date(self) -> pd.Timestamp:
        if self._evaluation_date is None:
            return pd.Timestamp.today().normalize()
        return self._evaluation_date

    @evaluation_date.setter
    def evaluation_date(self, value) -> None:
        self._evaluation_date = None if value is None else pd.Timestamp(value).normalize()
        logger.debug("Evaluation date set to %s", self._evaluation_date)


settings = Settings()


def evaluation_date() -> pd.Timestamp:
    return settings.evaluation_date


@contextmanager
def saved_settings(evaluation_date=None) -> Iterator[Settings]:
    """Temporarily set the evaluation date, restoring the previous one on exit."""
    previous = settings._evaluation_date
    try:
        if evaluation_date is not None:
            settings.evaluation_date = evaluation_date
        yield settings
    finally:
        settings._evaluation_date = previous
