"""
Cash Flow Analytics Engine

Modules:
- cashflows: cash flow model (simple flows, principal, fixed/floating/capped-floored coupons) + leg builders
- observable: observer pattern + lazy cached objects
- quotes / fixings / indexes: market quotes, fixing store, rate indexes
- interest_rate: rate with day count / compounding / frequency
- curves: discount curves (flat, interpolated) + QC report
- analytics: NPV, cash, bps, ATM rate, leg date queries
- risk: durations, convexity, BPV, yield value of a basis point
- yields: internal rate of return
- solvers: 1-D root finders (NewtonSafe, Brent)
- helpers / bootstrap: calibrating instruments + piecewise curve bootstrap
- config: evaluation date + numerical tolerances
"""
from .errors import (
    ArgumentError,
    CashflowEngineError,
    ConsistencyError,
    ConvergenceError,
    DomainError,
)

__version__ = "0.1.0"

__all__ = [
    "ArgumentError",
    "CashflowEngineError",
    "ConsistencyError",
    "ConvergenceError",
    "DomainError",
]
