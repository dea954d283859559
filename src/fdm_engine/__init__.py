"""
fdm_engine

Finite-difference PDE rollback engine.

This package exposes the everyday pricing entry points at the top level, so
you can write, for example:

    from fdm_engine import fd_black_scholes_solver

    solver = fd_black_scholes_solver(spot=36, strike=40, r=0.06, q=0.0,
                                     sigma=0.2, maturity=1.0, option_type="put",
                                     scheme="crank_nicolson")
    solver.value_at(36.0)

The numerical building blocks live in :mod:`fdm_engine.numerics`.
"""

from .config import DEFAULT_KRYLOV, KrylovConfig, SolverType
from .exceptions import (
    ConfigurationError,
    ConvergenceError,
    FdmError,
    NumericalError,
    PreconditionError,
    ResultValidationError,
    ThetaUndefinedError,
)
from .numerics.pde import (
    Fdm1DimSolver,
    Fdm2DimSolver,
    FdmBackwardSolver,
    FdmSolverDesc,
    SchemeDesc,
    available_schemes,
    register_scheme,
    resolve_scheme,
)
from .payoffs import CashOrNothingPayoff, ExerciseType, OptionType, PlainVanillaPayoff
from .pricers import (
    FdPriceResult,
    fd_black_scholes_price,
    fd_black_scholes_solver,
    fd_heston_solver,
)

__all__ = [
    # Config
    "KrylovConfig",
    "SolverType",
    "DEFAULT_KRYLOV",
    # Errors
    "FdmError",
    "PreconditionError",
    "ConfigurationError",
    "NumericalError",
    "ConvergenceError",
    "ResultValidationError",
    "ThetaUndefinedError",
    # Payoffs
    "OptionType",
    "ExerciseType",
    "PlainVanillaPayoff",
    "CashOrNothingPayoff",
    # Schemes
    "SchemeDesc",
    "register_scheme",
    "available_schemes",
    "resolve_scheme",
    # Rollback / facades
    "FdmBackwardSolver",
    "FdmSolverDesc",
    "Fdm1DimSolver",
    "Fdm2DimSolver",
    # Pricers
    "fd_black_scholes_solver",
    "fd_heston_solver",
    "fd_black_scholes_price",
    "FdPriceResult",
]
