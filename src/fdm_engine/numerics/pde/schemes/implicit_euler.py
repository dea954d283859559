from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from ....config import DEFAULT_KRYLOV, KrylovConfig
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite
from .base import FdmScheme, krylov_solve

__all__ = ["ImplicitEulerScheme"]


class ImplicitEulerScheme(FdmScheme):
    """Solve (I - theta * dt * A) a(t - dt) = a(t).

    Single-direction operators are inverted directly by ``solve_splitting``;
    otherwise a preconditioned Krylov method is used and its iterations are
    accumulated in :meth:`number_of_iterations`.
    """

    def __init__(
        self,
        op: FdmLinearOpComposite,
        bc_set: FdmBoundaryConditionSet | None = None,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        super().__init__(op, bc_set)
        self.krylov = krylov
        self._iterations = 0

    def number_of_iterations(self) -> int:
        return self._iterations

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:
        a, dt = self._begin_step(a, t)
        self.bc_set.apply_before_solving(self.op, a)

        scale = theta * dt
        if self.op.size() == 1:
            out = self.op.solve_splitting(0, a, -scale)
        else:
            out, its = krylov_solve(
                lambda r: r - scale * self.op.apply(r),
                lambda r: self.op.preconditioner(r, -scale),
                a,
                a,
                self.krylov,
            )
            self._iterations += its

        return self.bc_set.apply_after_solving(out)
