import dataclasses
import math

import pytest

from cashflow_engine.config import IRR_SOLVER, SolverConfig
from cashflow_engine.errors import ArgumentError, ConvergenceError
from cashflow_engine.solvers import Brent, FunctionObjective, NewtonSafe


@pytest.fixture(scope="module")
def cubic():
    # single real root at x = 2
    return FunctionObjective(lambda x: x ** 3 - 8.0, lambda x: 3.0 * x ** 2)


@pytest.mark.parametrize("solver_cls", [NewtonSafe, Brent])
def test_solve_from_guess(solver_cls, cubic):
    root = solver_cls().solve(cubic, 1e-12, 1.0, 0.1)
    assert root == pytest.approx(2.0, abs=1e-10)


@pytest.mark.parametrize("solver_cls", [NewtonSafe, Brent])
def test_solve_bracketed(solver_cls, cubic):
    root = solver_cls().solve_bracketed(cubic, 1e-12, 1.5, 0.0, 5.0)
    assert root == pytest.approx(2.0, abs=1e-10)


def test_newton_safe_without_derivative_bisects():
    f = FunctionObjective(lambda x: math.cos(x) - x)
    solver = NewtonSafe()
    root = solver.solve(f, 1e-10, 0.5, 0.1)
    assert math.cos(root) - root == pytest.approx(0.0, abs=1e-9)


def test_newton_uses_fewer_evaluations_with_derivative(cubic):
    with_d = NewtonSafe()
    with_d.solve(cubic, 1e-12, 1.0, 0.1)

    without_d = NewtonSafe()
    without_d.solve(FunctionObjective(cubic.value), 1e-12, 1.0, 0.1)

    assert with_d.evaluations < without_d.evaluations


def test_root_at_guess_returns_immediately(cubic):
    solver = NewtonSafe()
    assert solver.solve(cubic, 1e-12, 2.0, 0.1) == 2.0
    assert solver.evaluations == 1


def test_unbracketable_function_raises_convergence_error():
    solver = NewtonSafe(max_evaluations=20)
    with pytest.raises(ConvergenceError) as exc:
        solver.solve(FunctionObjective(lambda x: x * x + 1.0), 1e-10, 0.0, 0.1)
    assert exc.value.evaluations > 20


def test_evaluation_budget_exhausted_during_refinement():
    solver = NewtonSafe(max_evaluations=5)
    f = FunctionObjective(lambda x: x - math.pi)
    with pytest.raises(ConvergenceError, match="maximum number of function evaluations"):
        solver.solve_bracketed(f, 1e-14, 1.0, 0.0, 10.0)


def test_lower_bound_is_enforced():
    seen = []

    def f(x):
        seen.append(x)
        return x - 0.5

    NewtonSafe(lower_bound=0.1).solve(FunctionObjective(f), 1e-12, 0.8, 1.0)
    assert min(seen) >= 0.1


@pytest.mark.parametrize(
    "args",
    [
        (0.0, 1.0, 0.0, 5.0),   # non-positive accuracy
        (1e-10, 1.0, 5.0, 0.0),  # inverted range
        (1e-10, 7.0, 0.0, 5.0),  # guess outside range
    ],
)
def test_bracketed_argument_checks(args, cubic):
    accuracy, guess, lo, hi = args
    with pytest.raises(ArgumentError):
        NewtonSafe().solve_bracketed(cubic, accuracy, guess, lo, hi)


def test_bracket_must_contain_sign_change(cubic):
    with pytest.raises(ArgumentError, match="root not bracketed"):
        NewtonSafe().solve_bracketed(cubic, 1e-10, 3.5, 3.0, 5.0)


def test_solver_config_is_validated_and_frozen():
    assert IRR_SOLVER.accuracy == 1e-10
    with pytest.raises(ValueError):
        SolverConfig(accuracy=0.0)
    with pytest.raises(ValueError):
        SolverConfig(max_evaluations=0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        IRR_SOLVER.accuracy = 1e-6
