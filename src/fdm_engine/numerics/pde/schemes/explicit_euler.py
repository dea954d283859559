from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .base import FdmScheme

__all__ = ["ExplicitEulerScheme"]


class ExplicitEulerScheme(FdmScheme):
    """a(t - dt) = a(t) + theta * dt * A a(t)."""

    def step(
        self, a: NDArray[np.floating], t: float, theta: float = 1.0
    ) -> NDArray[np.floating]:
        a, dt = self._begin_step(a, t)
        self.bc_set.apply_before_applying(self.op)
        out = a + (theta * dt) * self.op.apply(a)
        return self.bc_set.apply_after_applying(out)
