"""Finite-difference engines wiring meshers, operators and conditions together.

These are the everyday entry points:

    solver = fd_black_scholes_solver(spot=36, strike=40, r=0.06, q=0.0,
                                     sigma=0.2, maturity=1.0, option_type="put")
    solver.value_at(36.0)
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..config import DEFAULT_KRYLOV, KrylovConfig
from ..exceptions import PreconditionError
from ..numerics.pde.boundary import FdmBoundaryConditionSet
from ..numerics.pde.inner_value import FdmLogInnerValue
from ..numerics.pde.meshers import (
    FdmBlackScholesMesher,
    FdmHestonVarianceMesher,
    FdmMesherComposite,
    Uniform1dMesher,
)
from ..numerics.pde.operators import FdmBlackScholesOp, FdmHestonOp
from ..numerics.pde.schemes import SchemeDesc, resolve_scheme
from ..numerics.pde.solvers import Fdm1DimSolver, Fdm2DimSolver, FdmSolverDesc
from ..numerics.pde.step_conditions import vanilla_composite
from ..payoffs import ExerciseType, OptionType, PlainVanillaPayoff

__all__ = [
    "fd_black_scholes_solver",
    "fd_heston_solver",
    "FdPriceResult",
    "fd_black_scholes_price",
]


def _exercise(american: bool, exercise: ExerciseType | str | None) -> ExerciseType:
    if exercise is not None:
        return ExerciseType(exercise)
    return ExerciseType.AMERICAN if american else ExerciseType.EUROPEAN


def fd_black_scholes_solver(
    *,
    spot: float,
    strike: float,
    r: float,
    q: float,
    sigma: float,
    maturity: float,
    option_type: OptionType | str = OptionType.CALL,
    x_grid: int = 200,
    t_grid: int = 200,
    damping_steps: int = 0,
    scheme: str | SchemeDesc = "douglas",
    american: bool = False,
    exercise: ExerciseType | str | None = None,
    exercise_times: Sequence[float] = (),
    dividend_times: Sequence[float] = (),
    dividends: Sequence[float] = (),
    payoff: Callable | None = None,
    krylov: KrylovConfig = DEFAULT_KRYLOV,
    c_point: float | None = None,
    density: float | None = None,
) -> Fdm1DimSolver:
    """Build a lazy 1-D Black-Scholes solver in log spot.

    ``payoff`` overrides the plain vanilla payoff built from ``option_type``
    and ``strike`` (e.g. a :class:`~fdm_engine.payoffs.CashOrNothingPayoff`).
    """
    if payoff is None:
        payoff = PlainVanillaPayoff(OptionType(option_type), strike)

    mesher = FdmMesherComposite(
        FdmBlackScholesMesher(
            x_grid,
            spot,
            r,
            q,
            sigma,
            maturity,
            strike=strike,
            c_point=c_point,
            density=density,
        )
    )
    calculator = FdmLogInnerValue(payoff, mesher, 0)
    condition = vanilla_composite(
        mesher,
        calculator,
        maturity,
        exercise=_exercise(american, exercise),
        exercise_times=exercise_times,
        dividend_times=dividend_times,
        dividends=dividends,
    )
    desc = FdmSolverDesc(
        mesher=mesher,
        bc_set=FdmBoundaryConditionSet(),
        condition=condition,
        calculator=calculator,
        maturity=maturity,
        time_steps=t_grid,
        damping_steps=damping_steps,
    )
    op = FdmBlackScholesOp(mesher, r, q, sigma)
    return Fdm1DimSolver(desc, resolve_scheme(scheme), op, krylov)


def fd_heston_solver(
    *,
    spot: float,
    strike: float,
    r: float,
    q: float,
    v0: float,
    kappa: float,
    theta: float,
    sigma: float,
    rho: float,
    maturity: float,
    option_type: OptionType | str = OptionType.CALL,
    x_grid: int = 100,
    v_grid: int = 50,
    t_grid: int = 100,
    damping_steps: int = 0,
    scheme: str | SchemeDesc = "hundsdorfer",
    american: bool = False,
    exercise: ExerciseType | str | None = None,
    exercise_times: Sequence[float] = (),
    payoff: Callable | None = None,
    krylov: KrylovConfig = DEFAULT_KRYLOV,
    variance_mesher: str = "quantile",
) -> Fdm2DimSolver:
    """Build a lazy 2-D Heston solver on (log spot, variance).

    The log-spot mesher uses the long-run volatility ``sqrt(theta)`` for its
    width; ``variance_mesher="uniform"`` swaps the distribution-based variance
    mesher for an equidistant one.
    """
    if payoff is None:
        payoff = PlainVanillaPayoff(OptionType(option_type), strike)

    vol = math.sqrt(max(v0, theta))
    x_mesher = FdmBlackScholesMesher(
        x_grid, spot, r, q, vol, maturity, strike=strike
    )
    if variance_mesher == "quantile":
        v_mesher = FdmHestonVarianceMesher(v_grid, v0, kappa, theta, sigma, maturity)
    elif variance_mesher == "uniform":
        v_max = max(5.0 * max(v0, theta), v0 + 4.0 * sigma * math.sqrt(maturity))
        v_mesher = Uniform1dMesher(0.0, v_max, v_grid)
    else:
        raise PreconditionError(
            f"unknown variance mesher '{variance_mesher}', use 'quantile' or 'uniform'"
        )

    mesher = FdmMesherComposite(x_mesher, v_mesher)
    calculator = FdmLogInnerValue(payoff, mesher, 0)
    condition = vanilla_composite(
        mesher,
        calculator,
        maturity,
        exercise=_exercise(american, exercise),
        exercise_times=exercise_times,
    )
    desc = FdmSolverDesc(
        mesher=mesher,
        bc_set=FdmBoundaryConditionSet(),
        condition=condition,
        calculator=calculator,
        maturity=maturity,
        time_steps=t_grid,
        damping_steps=damping_steps,
    )
    op = FdmHestonOp(mesher, r, q, kappa, theta, sigma, rho)
    return Fdm2DimSolver(desc, resolve_scheme(scheme), op, krylov)


@dataclass(frozen=True, slots=True)
class FdPriceResult:
    price: float
    delta: float
    gamma: float
    theta: float


def fd_black_scholes_price(**kwargs) -> FdPriceResult:
    """Price and Greeks at the spot, see :func:`fd_black_scholes_solver`."""
    solver = fd_black_scholes_solver(**kwargs)
    s = float(kwargs["spot"])
    return FdPriceResult(
        price=float(solver.value_at(s)),
        delta=float(solver.delta_at(s)),
        gamma=float(solver.gamma_at(s)),
        theta=float(solver.theta_at(math.log(s))),
    )
