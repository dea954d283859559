from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray
from scipy.integrate import solve_ivp

from ....exceptions import NumericalError, PreconditionError
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite
from .base import FdmScheme

logger = logging.getLogger(__name__)

__all__ = ["MethodOfLinesScheme"]

# width of the operator time window seen by the right-hand side
_WINDOW = 1e-4


class MethodOfLinesScheme(FdmScheme):
    """Integrate the semi-discrete system ``dx/dt = -A x`` backwards in time.

    Uses an adaptive embedded Runge-Kutta method (``scipy.integrate.solve_ivp``
    with ``RK45``) with ``rtol = atol = eps`` and an initial step of
    ``rel_init_step * dt``.
    """

    def __init__(
        self,
        eps: float,
        rel_init_step: float,
        op: FdmLinearOpComposite,
        bc_set: FdmBoundaryConditionSet | None = None,
    ) -> None:
        if eps <= 0.0:
            raise PreconditionError("eps must be > 0")
        if not (0.0 < rel_init_step <= 1.0):
            raise PreconditionError("rel_init_step must be in (0, 1]")
        super().__init__(op, bc_set)
        self.eps = float(eps)
        self.rel_init_step = float(rel_init_step)

    def _rhs(self, tt: float, y: NDArray[np.floating]) -> NDArray[np.floating]:
        self.op.set_time(tt, tt + _WINDOW)
        self.bc_set.apply_before_applying(self.op)
        return -self.op.apply(y)

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:
        a, dt = self._begin_step(a, t)
        t_end = max(0.0, t - dt)
        if t_end >= t:
            return self.bc_set.apply_after_solving(a.copy())

        sol = solve_ivp(
            self._rhs,
            (t, t_end),
            a,
            method="RK45",
            rtol=self.eps,
            atol=self.eps,
            first_step=self.rel_init_step * (t - t_end),
        )
        if not sol.success:
            raise NumericalError(f"method of lines integration failed: {sol.message}")
        logger.debug("method of lines step [%g, %g] used %d evaluations", t_end, t, sol.nfev)
        return self.bc_set.apply_after_solving(np.asarray(sol.y[:, -1], dtype=float))
