from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from ....exceptions import PreconditionError
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite
from .base import FdmScheme
from .douglas import directional_corrections

__all__ = ["HundsdorferScheme"]


class HundsdorferScheme(FdmScheme):
    """Hundsdorfer-Verwer ADI.

    Like Craig-Sneyd but the corrector uses the full operator and the second
    round of directional corrections is centred on the first-stage result.
    """

    def __init__(
        self,
        theta: float,
        mu: float,
        op: FdmLinearOpComposite,
        bc_set: FdmBoundaryConditionSet | None = None,
    ) -> None:
        if not (0.0 <= theta <= 1.0):
            raise PreconditionError("theta must be in [0, 1]")
        super().__init__(op, bc_set)
        self.theta = float(theta)
        self.mu = float(mu)

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:
        a, dt = self._begin_step(a, t)
        self.bc_set.apply_before_applying(self.op)
        y0 = a + dt * self.op.apply(a)
        y0 = self.bc_set.apply_after_applying(y0)

        self.bc_set.apply_before_solving(self.op, a)
        y = directional_corrections(self.op, y0, a, self.theta, dt)

        self.bc_set.apply_before_applying(self.op)
        yt = y0 + (self.mu * dt) * self.op.apply(y - a)
        yt = self.bc_set.apply_after_applying(yt)

        yt = directional_corrections(self.op, yt, y, self.theta, dt)
        return self.bc_set.apply_after_solving(yt)
