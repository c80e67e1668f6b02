from __future__ import annotations

from typing import Optional, Tuple


class CashflowEngineError(Exception):
    """Base class for every error raised by the engine."""


class ArgumentError(CashflowEngineError, ValueError):
    """Structurally invalid input (empty leg, unknown enum value, bad dates)."""


class ConsistencyError(CashflowEngineError):
    """Incompatible objects combined together (e.g. coupons sharing a date)."""


class DomainError(ArgumentError):
    """Economically ill-posed request (no IRR, Macaulay on a simple rate)."""


class ConvergenceError(CashflowEngineError, RuntimeError):
    """Root solver ran out of evaluations before reaching the accuracy."""

    def __init__(
        self,
        message: str,
        evaluations: int = 0,
        bracket: Optional[Tuple[float, float]] = None,
    ):
        super().__init__(message)
        self.evaluations = evaluations
        self.bracket = bracket
