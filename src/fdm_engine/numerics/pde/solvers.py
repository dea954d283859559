"""Lazy 1-D / 2-D solver facades.

A facade rolls the initial values back from maturity to zero once, caches an
interpolant of the result and answers value / derivative / theta queries from
it. ``update()`` drops the cache so the next query recomputes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ...config import DEFAULT_KRYLOV, KrylovConfig
from ...exceptions import PreconditionError, ResultValidationError, ThetaUndefinedError
from ..interpolation import BicubicSpline2D, CubicSpline1D
from .backward_solver import FdmBackwardSolver
from .boundary import FdmBoundaryConditionSet
from .inner_value import FdmInnerValueCalculator
from .meshers import FdmMesherComposite
from .operators.base import FdmLinearOpComposite
from .schemes.desc import SchemeDesc
from .step_conditions import (
    FdmSnapshotCondition,
    FdmStepConditionComposite,
    join_conditions,
)

logger = logging.getLogger(__name__)

__all__ = ["FdmSolverDesc", "Fdm1DimSolver", "Fdm2DimSolver", "MAX_ABS_VALUE"]

MAX_ABS_VALUE = 1e100


@dataclass(frozen=True, slots=True)
class FdmSolverDesc:
    """Everything a facade needs besides the operator and the scheme."""

    mesher: FdmMesherComposite
    bc_set: FdmBoundaryConditionSet
    condition: FdmStepConditionComposite | None
    calculator: FdmInnerValueCalculator
    maturity: float
    time_steps: int
    damping_steps: int = 0

    def __post_init__(self) -> None:
        if not self.maturity > 0.0:
            raise PreconditionError("maturity must be > 0")
        if self.time_steps <= 0:
            raise PreconditionError("time_steps must be > 0")
        if self.damping_steps < 0:
            raise PreconditionError("damping_steps must be >= 0")


def _snapshot_time(desc: FdmSolverDesc) -> float:
    times = desc.condition.stopping_times() if desc.condition is not None else ()
    first = times[0] if times else desc.maturity
    return 0.99 * min(1.0 / 365.0, first)


def _validate(values: NDArray[np.floating]) -> NDArray[np.floating]:
    if not np.all(np.isfinite(values)):
        raise ResultValidationError("rolled back values contain non-finite entries")
    if values.size and float(np.max(np.abs(values))) > MAX_ABS_VALUE:
        raise ResultValidationError(
            f"rolled back values exceed {MAX_ABS_VALUE:g} in magnitude"
        )
    return values


class _FdmSolverBase:
    _ndim: int = 0

    def __init__(
        self,
        solver_desc: FdmSolverDesc,
        scheme_desc: SchemeDesc,
        op: FdmLinearOpComposite,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        if solver_desc.mesher.ndim != self._ndim:
            raise PreconditionError(
                f"{type(self).__name__} needs a {self._ndim}-dimensional mesher, "
                f"got {solver_desc.mesher.ndim}"
            )
        self.solver_desc = solver_desc
        self.scheme_desc = scheme_desc
        self.op = op
        self.krylov = krylov

        self.theta_condition = FdmSnapshotCondition(_snapshot_time(solver_desc))
        self.conditions = join_conditions(self.theta_condition, solver_desc.condition)
        self.initial_values = np.asarray(
            solver_desc.calculator.avg_inner_value(solver_desc.maturity), dtype=float
        )
        if self.initial_values.shape != (solver_desc.mesher.size(),):
            raise PreconditionError(
                "inner value calculator returned "
                f"{self.initial_values.shape}, expected ({solver_desc.mesher.size()},)"
            )

        self.rollback_count = 0
        self._values: NDArray[np.floating] | None = None

    def update(self) -> None:
        """Invalidate the cached result."""
        self._values = None
        self._reset_interpolation()

    recalculate = update

    def _reset_interpolation(self) -> None:  # pragma: no cover
        raise NotImplementedError

    def _build_interpolation(self, values: NDArray[np.floating]) -> None:  # pragma: no cover
        raise NotImplementedError

    def calculate(self) -> None:
        if self._values is not None:
            return
        desc = self.solver_desc
        logger.debug(
            "%s: rolling back %s from %g to 0 (%d steps, %d damping)",
            type(self).__name__,
            self.scheme_desc.name,
            desc.maturity,
            desc.time_steps,
            desc.damping_steps,
        )
        self.theta_condition.reset()
        solver = FdmBackwardSolver(
            self.op, desc.bc_set, self.conditions, self.scheme_desc, self.krylov
        )
        values = solver.rollback(
            self.initial_values.copy(),
            desc.maturity,
            0.0,
            desc.time_steps,
            desc.damping_steps,
        )
        self.rollback_count += 1
        values = _validate(np.asarray(values, dtype=float))
        self._build_interpolation(values)
        self._values = values

    @property
    def result_values(self) -> NDArray[np.floating]:
        self.calculate()
        assert self._values is not None
        return self._values.copy()

    def _snapshot_values(self) -> NDArray[np.floating]:
        t = self.theta_condition.get_time()
        if t <= 0.0:
            raise ThetaUndefinedError(
                "theta is not defined: the first stopping time is at zero"
            )
        self.calculate()
        snap = self.theta_condition.get_values()
        if snap is None:
            raise ThetaUndefinedError("the snapshot time was never reached")
        return _validate(np.asarray(snap, dtype=float))


class Fdm1DimSolver(_FdmSolverBase):
    """Facade over a 1-D mesher, interpolating with a natural cubic spline.

    The ``*_at(s)`` helpers assume the mesher is in log spot.
    """

    _ndim = 1

    def __init__(
        self,
        solver_desc: FdmSolverDesc,
        scheme_desc: SchemeDesc,
        op: FdmLinearOpComposite,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        super().__init__(solver_desc, scheme_desc, op, krylov)
        self.locations = solver_desc.mesher.get_1d_mesher(0).locations
        self._interp: CubicSpline1D | None = None
        self._theta_interp: CubicSpline1D | None = None

    def _reset_interpolation(self) -> None:
        self._interp = None
        self._theta_interp = None

    def _build_interpolation(self, values: NDArray[np.floating]) -> None:
        self._interp = CubicSpline1D(self.locations, values)
        self._theta_interp = None

    def _spline(self) -> CubicSpline1D:
        self.calculate()
        assert self._interp is not None
        return self._interp

    def interpolate_at(self, x):
        return self._spline()(x)

    def derivative_x(self, x):
        return self._spline().derivative(x)

    def derivative_xx(self, x):
        return self._spline().second_derivative(x)

    def theta_at(self, x):
        """dV/dt (calendar time) from the snapshot taken just after t = 0."""
        snap = self._snapshot_values()
        if self._theta_interp is None:
            self._theta_interp = CubicSpline1D(self.locations, snap)
        t = self.theta_condition.get_time()
        return (self._theta_interp(x) - self.interpolate_at(x)) / t

    # --- spot space helpers for log-spot meshers ---

    def value_at(self, s):
        return self.interpolate_at(np.log(s))

    def delta_at(self, s):
        return self.derivative_x(np.log(s)) / s

    def gamma_at(self, s):
        x = np.log(s)
        return (self.derivative_xx(x) - self.derivative_x(x)) / (s * s)


class Fdm2DimSolver(_FdmSolverBase):
    """Facade over a 2-D mesher, interpolating with a bicubic spline.

    The ``*_at(s, v)`` helpers assume direction 0 is log spot.
    """

    _ndim = 2

    def __init__(
        self,
        solver_desc: FdmSolverDesc,
        scheme_desc: SchemeDesc,
        op: FdmLinearOpComposite,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        super().__init__(solver_desc, scheme_desc, op, krylov)
        mesher = solver_desc.mesher
        self.x = mesher.get_1d_mesher(0).locations
        self.y = mesher.get_1d_mesher(1).locations
        self._interp: BicubicSpline2D | None = None
        self._theta_interp: BicubicSpline2D | None = None

    def _grid(self, values: NDArray[np.floating]) -> NDArray[np.floating]:
        # x varies fastest, so rows are y
        return values.reshape(self.y.size, self.x.size)

    def _reset_interpolation(self) -> None:
        self._interp = None
        self._theta_interp = None

    def _build_interpolation(self, values: NDArray[np.floating]) -> None:
        self._interp = BicubicSpline2D(self.x, self.y, self._grid(values))
        self._theta_interp = None

    def _spline(self) -> BicubicSpline2D:
        self.calculate()
        assert self._interp is not None
        return self._interp

    def interpolate_at(self, x, y):
        return self._spline()(x, y)

    def derivative_x(self, x, y):
        return self._spline().derivative_x(x, y)

    def derivative_y(self, x, y):
        return self._spline().derivative_y(x, y)

    def derivative_xx(self, x, y):
        return self._spline().derivative_xx(x, y)

    def derivative_yy(self, x, y):
        return self._spline().derivative_yy(x, y)

    def derivative_xy(self, x, y):
        return self._spline().derivative_xy(x, y)

    def theta_at(self, x, y):
        snap = self._snapshot_values()
        if self._theta_interp is None:
            self._theta_interp = BicubicSpline2D(self.x, self.y, self._grid(snap))
        t = self.theta_condition.get_time()
        return (self._theta_interp(x, y) - self.interpolate_at(x, y)) / t

    # --- spot space helpers for a log-spot first direction ---

    def value_at(self, s, v):
        return self.interpolate_at(np.log(s), v)

    def delta_at(self, s, v):
        return self.derivative_x(np.log(s), v) / s

    def gamma_at(self, s, v):
        x = np.log(s)
        return (self.derivative_xx(x, v) - self.derivative_x(x, v)) / (s * s)
