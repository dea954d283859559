from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from ....config import DEFAULT_KRYLOV, KrylovConfig
from ....exceptions import PreconditionError
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite
from .base import FdmScheme, FdmTimeStepper, krylov_solve

__all__ = ["TrBDF2Scheme", "TRBDF2_ALPHA"]

TRBDF2_ALPHA = 2.0 - math.sqrt(2.0)


class TrBDF2Scheme(FdmScheme):
    """TR-BDF2: trapezoidal sub-step of ``alpha * dt`` then a BDF2 step.

        f* = trapezoidal step of f_n over alpha * dt
        (I - beta A) f_{n+1} = (f* / alpha - (1 - alpha)^2 / alpha f_n) / (2 - alpha)
        beta = (1 - alpha) / (2 - alpha) * dt

    The BDF2 system is solved directly for single-direction operators and
    with a Krylov method otherwise.
    """

    def __init__(
        self,
        alpha: float,
        op: FdmLinearOpComposite,
        trapezoidal_scheme: FdmTimeStepper,
        bc_set: FdmBoundaryConditionSet | None = None,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        if not (0.0 < alpha < 1.0):
            raise PreconditionError("alpha must be in (0, 1)")
        super().__init__(op, bc_set)
        self.alpha = float(alpha)
        self.trapezoidal_scheme = trapezoidal_scheme
        self.krylov = krylov
        self.beta: float | None = None
        self._iterations = 0

    def set_step(self, dt: float) -> None:
        super().set_step(dt)
        self.beta = (1.0 - self.alpha) / (2.0 - self.alpha) * self.dt

    def number_of_iterations(self) -> int:
        return self._iterations

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:
        fn, dt = self._begin_step(a, t)
        assert self.beta is not None
        alpha = self.alpha
        beta = self.beta

        self.trapezoidal_scheme.set_step(alpha * dt)
        f_star = self.trapezoidal_scheme.step(fn, t)

        t_lo = max(0.0, t - dt)
        self.op.set_time(t_lo, max(t_lo, t - alpha * dt))
        self.bc_set.set_time(t_lo)
        self.bc_set.apply_before_solving(self.op, fn)

        f = (f_star / alpha - (1.0 - alpha) ** 2 / alpha * fn) / (2.0 - alpha)

        if self.op.size() == 1:
            out = self.op.solve_splitting(0, f, -beta)
        else:
            out, its = krylov_solve(
                lambda r: r - beta * self.op.apply(r),
                lambda r: self.op.preconditioner(r, -beta),
                f,
                fn,
                self.krylov,
            )
            self._iterations += its

        return self.bc_set.apply_after_solving(out)
