from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from ....config import DEFAULT_KRYLOV, KrylovConfig
from ....exceptions import PreconditionError
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite
from .base import FdmScheme
from .explicit_euler import ExplicitEulerScheme
from .implicit_euler import ImplicitEulerScheme

__all__ = ["CrankNicolsonScheme"]


class CrankNicolsonScheme(FdmScheme):
    """Theta scheme: explicit part weighted ``1 - theta``, implicit part ``theta``.

    ``theta=0.5`` is Crank-Nicolson, ``theta=1`` pure implicit Euler and
    ``theta=0`` pure explicit Euler.
    """

    def __init__(
        self,
        theta: float,
        op: FdmLinearOpComposite,
        bc_set: FdmBoundaryConditionSet | None = None,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        if not (0.0 <= theta <= 1.0):
            raise PreconditionError("theta must be in [0, 1]")
        super().__init__(op, bc_set)
        self.theta = float(theta)
        self.explicit = ExplicitEulerScheme(op, self.bc_set)
        self.implicit = ImplicitEulerScheme(op, self.bc_set, krylov)

    def set_step(self, dt: float) -> None:
        super().set_step(dt)
        self.explicit.set_step(dt)
        self.implicit.set_step(dt)

    def number_of_iterations(self) -> int:
        return self.implicit.number_of_iterations()

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:
        a, _ = self._begin_step(a, t)
        if self.theta != 1.0:
            a = self.explicit.step(a, t, 1.0 - self.theta)
        if self.theta != 0.0:
            a = self.implicit.step(a, t, self.theta)
        return a
