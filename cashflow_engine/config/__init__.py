from .settings import (
    BOOTSTRAP_SOLVER,
    IRR_SOLVER,
    Settings,
    SolverConfig,
    evaluation_date,
    saved_settings,
    settings,
)
from .tolerances import BASIS_POINT

__all__ = [
    "BASIS_POINT",
    "BOOTSTRAP_SOLVER",
    "IRR_SOLVER",
    "Settings",
    "SolverConfig",
    "evaluation_date",
    "saved_settings",
    "settings",
]
