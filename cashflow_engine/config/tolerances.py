"""
Numerical constants and default tolerances.

Tiers:
    Analytical: closed-form quantities, machine-precision achievable
    Solver: stopping criteria for the 1-D root solver
    Bootstrap: node accuracy for piecewise curve construction
"""

from typing import Final

# =============================================================================
# Analytical
# =============================================================================

#: One basis point in rate units
BASIS_POINT: Final[float] = 1.0e-4

#: Price shift used by the yield value of a basis point (1 cent per 100)
YIELD_VALUE_SHIFT: Final[float] = 0.01

#: Closed-form comparisons (duration identities, curve repricing)
ANALYTICAL_TOLERANCE: Final[float] = 1e-9


# =============================================================================
# Solver
# =============================================================================

#: Default evaluation budget for Solver1D
DEFAULT_MAX_EVALUATIONS: Final[int] = 100

#: Geometric growth of the bracket during the root search
BRACKET_GROWTH_FACTOR: Final[float] = 1.6

#: IRR defaults
IRR_ACCURACY: Final[float] = 1.0e-10
IRR_GUESS: Final[float] = 0.05


# =============================================================================
# Bootstrap
# =============================================================================

#: Accuracy on each discount-factor node
BOOTSTRAP_ACCURACY: Final[float] = 1.0e-12

#: Discount factors are kept strictly positive during the node search
MIN_DISCOUNT_FACTOR: Final[float] = 1.0e-8

#: Flat rate used to decay the previous node into the next node's guess
BOOTSTRAP_GUESS_RATE: Final[float] = 0.05

#: Initial search step around the guess, in discount-factor units
BOOTSTRAP_STEP: Final[float] = 0.01
