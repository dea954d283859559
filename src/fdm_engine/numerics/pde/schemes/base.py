"""Shared machinery of the time-stepping schemes.

A scheme rolls a state from ``t`` back to ``t - dt``:

    scheme.set_step(dt)
    a = scheme.step(a, t)

``step`` always returns a new array and never mutates its input.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ....config import DEFAULT_KRYLOV, KrylovConfig, SolverType
from ....exceptions import ConfigurationError, ConvergenceError, PreconditionError
from ...krylov import GMRES, BiCGStab
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite

logger = logging.getLogger(__name__)

__all__ = ["FdmTimeStepper", "FdmScheme", "krylov_solve"]

# tolerance for rolling slightly past zero
TIME_EPS = 1e-8


@runtime_checkable
class FdmTimeStepper(Protocol):
    def set_step(self, dt: float) -> None: ...

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]: ...


class FdmScheme:
    """Base class holding the operator, the boundary set and the step size."""

    def __init__(
        self,
        op: FdmLinearOpComposite,
        bc_set: FdmBoundaryConditionSet | None = None,
    ) -> None:
        self.op = op
        self.bc_set = bc_set if bc_set is not None else FdmBoundaryConditionSet()
        self.dt: float | None = None

    def set_step(self, dt: float) -> None:
        if not dt > 0.0:
            raise PreconditionError(f"time step must be > 0, got {dt}")
        self.dt = float(dt)

    def _begin_step(self, a: NDArray[np.floating], t: float) -> tuple[NDArray[np.floating], float]:
        """Validate the step and set operator / boundary times for ``[t - dt, t]``."""
        if self.dt is None:
            raise PreconditionError("set_step must be called before step")
        dt = self.dt
        if t - dt <= -TIME_EPS:
            raise PreconditionError(
                f"a step towards negative times given: t={t}, dt={dt}"
            )
        a = np.asarray(a, dtype=float)
        if a.ndim != 1:
            raise PreconditionError("state must be a 1D array")
        t_lo = max(0.0, t - dt)
        self.op.set_time(t_lo, t)
        self.bc_set.set_time(t_lo)
        return a, dt

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:  # pragma: no cover
        raise NotImplementedError


def krylov_solve(
    apply_a: Callable[[NDArray[np.floating]], NDArray[np.floating]],
    preconditioner: Callable[[NDArray[np.floating]], NDArray[np.floating]] | None,
    rhs: NDArray[np.floating],
    x0: NDArray[np.floating],
    config: KrylovConfig = DEFAULT_KRYLOV,
) -> tuple[NDArray[np.floating], int]:
    """Solve ``A x = rhs`` with the configured Krylov method.

    Returns ``(x, iterations)``; raises :class:`ConvergenceError` carrying the
    solver result when the tolerance is not reached.
    """
    n = int(np.asarray(rhs).size)
    max_iter = config.iteration_bound(n)

    if config.solver is SolverType.BICGSTAB:
        res = BiCGStab(apply_a, max_iter, config.rel_tol, preconditioner).solve(rhs, x0)
        if not res.converged:
            raise ConvergenceError(
                f"BiCGStab did not converge after {res.iterations} iterations "
                f"(relative residual {res.error:.3e})",
                result=res,
            )
        return res.x, res.iterations

    if config.solver is SolverType.GMRES:
        gres = GMRES(apply_a, max_iter, config.rel_tol, preconditioner).solve(rhs, x0)
        if not gres.converged:
            last = gres.errors[-1] if gres.errors else float("nan")
            raise ConvergenceError(
                f"GMRES did not converge after {gres.iterations} iterations "
                f"(relative residual {last:.3e})",
                result=gres,
            )
        return gres.x, gres.iterations

    raise ConfigurationError(f"unknown Krylov solver type: {config.solver!r}")
