"""
One-dimensional root solvers.

A solver works on any object exposing ``value(x)`` and, optionally,
``derivative(x)`` (returning None when no derivative is available). It has
no knowledge of what the function computes: the same classes solve for an
IRR and for bootstrap curve nodes.

solve(f, accuracy, guess, step)
    Expands a bracket geometrically around `guess` until f changes sign,
    then refines inside it.
solve_bracketed(f, accuracy, guess, x_min, x_max)
    Refines inside a bracket supplied by the caller.

Every call to f counts against ``max_evaluations``; running out raises
ConvergenceError.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from scipy.optimize import brentq

from .config.tolerances import BRACKET_GROWTH_FACTOR, DEFAULT_MAX_EVALUATIONS
from .errors import ArgumentError, ConvergenceError

logger = logging.getLogger(__name__)


class ObjectiveFunction:
    def value(self, x: float) -> float:
        raise NotImplementedError

    def derivative(self, x: float) -> Optional[float]:
        return None


class FunctionObjective(ObjectiveFunction):
    """Adapts plain callables to the solver interface."""

    def __init__(self, value: Callable[[float], float], derivative: Optional[Callable[[float], float]] = None):
        self._value = value
        self._derivative = derivative

    def value(self, x: float) -> float:
        return self._value(x)

    def derivative(self, x: float) -> Optional[float]:
        if self._derivative is None:
            return None
        return self._derivative(x)


class Solver1D:
    def __init__(
        self,
        max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
        lower_bound: Optional[float] = None,
        upper_bound: Optional[float] = None,
    ):
        if max_evaluations < 1:
            raise ArgumentError(f"max_evaluations must be >= 1, got {max_evaluations}")
        self.max_evaluations = int(max_evaluations)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.evaluations = 0
        self._f = None

    def _enforce_bounds(self, x: float) -> float:
        if self.lower_bound is not None and x < self.lower_bound:
            return self.lower_bound
        if self.upper_bound is not None and x > self.upper_bound:
            return self.upper_bound
        return x

    def _eval(self, x: float) -> float:
        self.evaluations += 1
        return float(self._f.value(x))

    def _derivative(self, x: float) -> Optional[float]:
        derivative = getattr(self._f, "derivative", None)
        if derivative is None:
            return None
        d = derivative(x)
        return None if d is None else float(d)

    def _fail(self, message: str) -> ConvergenceError:
        return ConvergenceError(
            f"{message} after {self.evaluations} function evaluations",
            evaluations=self.evaluations,
            bracket=(self._x_min, self._x_max),
        )

    def solve(self, f, accuracy: float, guess: float, step: float) -> float:
        if accuracy <= 0.0:
            raise ArgumentError(f"accuracy ({accuracy}) must be positive")

        self._f = f
        self.evaluations = 0
        guess = self._enforce_bounds(guess)
        self._root = guess
        self._x_min = self._x_max = guess

        fx_max = self._eval(guess)
        if fx_max == 0.0:
            return guess

        if fx_max > 0.0:
            self._x_min = self._enforce_bounds(guess - step)
            self._fx_min = self._eval(self._x_min)
            self._x_max = guess
            self._fx_max = fx_max
        else:
            self._x_min = guess
            self._fx_min = fx_max
            self._x_max = self._enforce_bounds(guess + step)
            self._fx_max = self._eval(self._x_max)

        while self.evaluations <= self.max_evaluations:
            if self._fx_min * self._fx_max <= 0.0:
                if self._fx_min == 0.0:
                    return self._x_min
                if self._fx_max == 0.0:
                    return self._x_max
                self._root = 0.5 * (self._x_max + self._x_min)
                logger.debug(
                    "%s bracketed root in [%.12g, %.12g] after %d evaluations",
                    type(self).__name__, self._x_min, self._x_max, self.evaluations,
                )
                return self._solve_impl(accuracy)

            if abs(self._fx_min) < abs(self._fx_max):
                self._x_min = self._enforce_bounds(self._x_min + BRACKET_GROWTH_FACTOR * (self._x_min - self._x_max))
                self._fx_min = self._eval(self._x_min)
            else:
                self._x_max = self._enforce_bounds(self._x_max + BRACKET_GROWTH_FACTOR * (self._x_max - self._x_min))
                self._fx_max = self._eval(self._x_max)

        raise self._fail("unable to bracket root")

    def solve_bracketed(self, f, accuracy: float, guess: float, x_min: float, x_max: float) -> float:
        if accuracy <= 0.0:
            raise ArgumentError(f"accuracy ({accuracy}) must be positive")
        if x_min >= x_max:
            raise ArgumentError(f"invalid range: x_min ({x_min}) >= x_max ({x_max})")
        if self.lower_bound is not None and x_min < self.lower_bound:
            raise ArgumentError(f"x_min ({x_min}) < enforced low bound ({self.lower_bound})")
        if self.upper_bound is not None and x_max > self.upper_bound:
            raise ArgumentError(f"x_max ({x_max}) > enforced hi bound ({self.upper_bound})")
        if not x_min <= guess <= x_max:
            raise ArgumentError(f"guess ({guess}) not in [{x_min}, {x_max}]")

        self._f = f
        self.evaluations = 0
        self._x_min, self._x_max = x_min, x_max

        self._fx_min = self._eval(x_min)
        if self._fx_min == 0.0:
            return x_min
        self._fx_max = self._eval(x_max)
        if self._fx_max == 0.0:
            return x_max
        if self._fx_min * self._fx_max > 0.0:
            raise ArgumentError(
                f"root not bracketed: f[{x_min}, {x_max}] -> [{self._fx_min:.6e}, {self._fx_max:.6e}]"
            )

        self._root = guess
        return self._solve_impl(accuracy)

    def _solve_impl(self, accuracy: float) -> float:
        raise NotImplementedError


class NewtonSafe(Solver1D):
    """
    Newton iteration kept inside the bracket: a Newton step is taken when the
    derivative is available, the step lands inside [xl, xh] and it shrinks at
    least as fast as bisection would; otherwise the bracket is bisected.
    """

    def _solve_impl(self, accuracy: float) -> float:
        if self._fx_min < 0.0:
            xl, xh = self._x_min, self._x_max
        else:
            xh, xl = self._x_min, self._x_max

        dxold = self._x_max - self._x_min
        dx = dxold

        root = self._root
        froot = self._eval(root)
        dfroot = self._derivative(root)

        while self.evaluations <= self.max_evaluations:
            if froot == 0.0:
                return root

            newton_ok = dfroot is not None and not (
                ((root - xh) * dfroot - froot) * ((root - xl) * dfroot - froot) > 0.0
                or abs(2.0 * froot) > abs(dxold * dfroot)
            )
            if newton_ok:
                dxold = dx
                dx = froot / dfroot
                root -= dx
            else:
                dxold = dx
                dx = 0.5 * (xh - xl)
                root = xl + dx

            if abs(dx) < accuracy:
                logger.debug("NewtonSafe converged to %.15g in %d evaluations", root, self.evaluations)
                return root

            froot = self._eval(root)
            dfroot = self._derivative(root)
            if froot < 0.0:
                xl = root
            else:
                xh = root

        self._x_min, self._x_max = min(xl, xh), max(xl, xh)
        raise self._fail("maximum number of function evaluations exceeded")


class Brent(Solver1D):
    """Bracket search of Solver1D, refinement by scipy's Brent method."""

    def _solve_impl(self, accuracy: float) -> float:
        remaining = self.max_evaluations - self.evaluations
        if remaining < 1:
            raise self._fail("maximum number of function evaluations exceeded")

        root, result = brentq(
            self._f.value,
            self._x_min,
            self._x_max,
            xtol=accuracy,
            maxiter=remaining,
            full_output=True,
            disp=False,
        )
        self.evaluations += result.function_calls
        if not result.converged:
            raise self._fail(f"Brent did not converge ({result.flag})")

        logger.debug("Brent converged to %.15g in %d evaluations", root, self.evaluations)
        return float(root)
