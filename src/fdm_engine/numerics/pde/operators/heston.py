from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

from ....exceptions import PreconditionError
from ..meshers import FdmMesherComposite
from .derivatives import (
    FirstDerivativeOp,
    SecondDerivativeOp,
    SecondOrderMixedDerivativeOp,
)
from .triple_band import TripleBandLinearOp

__all__ = ["FdmHestonOp"]


class FdmHestonOp:
    """Heston generator on a (log-spot, variance) mesh.

    Split into an equity part along direction 0, a variance part along
    direction 1 and the correlation term:

        A_0 = (r - q - v/2) d/dx + v/2 d^2/dx^2 - r/2
        A_1 = sigma^2 v/2 d^2/dv^2 + kappa (theta - v) d/dv - r/2
        A_mixed = rho sigma v d^2/(dx dv)
    """

    def __init__(
        self,
        mesher: FdmMesherComposite,
        r: float,
        q: float,
        kappa: float,
        theta: float,
        sigma: float,
        rho: float,
    ) -> None:
        if mesher.ndim != 2:
            raise PreconditionError("Heston operator needs a 2-dimensional mesher")
        if not (-1.0 <= rho <= 1.0):
            raise PreconditionError("rho must be in [-1, 1]")
        if sigma <= 0.0 or kappa <= 0.0 or theta <= 0.0:
            raise PreconditionError("kappa, theta and sigma must be > 0")

        self.mesher = mesher
        self.r = float(r)
        self.q = float(q)
        self.kappa = float(kappa)
        self.theta = float(theta)
        self.sigma = float(sigma)
        self.rho = float(rho)

        v = mesher.locations(1)
        layout = mesher.layout
        x_coord = layout.coordinate(0)
        half_var = 0.5 * v
        # no drift correction on the log-spot edges
        half_var = np.where(
            (x_coord == 0) | (x_coord == layout.dim[0] - 1), 0.0, half_var
        )

        dx = FirstDerivativeOp(0, mesher)
        dxx = SecondDerivativeOp(0, mesher).mult(0.5 * v)
        self._x_map: TripleBandLinearOp = dx.axpyb(
            self.r - self.q - half_var, dx, dxx, -0.5 * self.r
        )

        dy = (
            SecondDerivativeOp(1, mesher)
            .mult(0.5 * self.sigma**2 * v)
            .add(FirstDerivativeOp(1, mesher).mult(self.kappa * (self.theta - v)))
        )
        self._y_map: TripleBandLinearOp = dy.add_diag(-0.5 * self.r)

        self._correlation = SecondOrderMixedDerivativeOp(0, 1, mesher).mult(
            self.rho * self.sigma * v
        )

    def size(self) -> int:
        return 2

    def set_time(self, t1: float, t2: float) -> None:
        if t2 < t1:
            raise PreconditionError(f"invalid time window [{t1}, {t2}]")

    def apply(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._x_map.apply(r) + self._y_map.apply(r) + self._correlation.apply(r)

    def apply_mixed(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._correlation.apply(r)

    def _direction_map(self, direction: int) -> TripleBandLinearOp:
        if direction == 0:
            return self._x_map
        if direction == 1:
            return self._y_map
        raise PreconditionError(f"direction too large: {direction}")

    def apply_direction(
        self, direction: int, r: NDArray[np.floating]
    ) -> NDArray[np.floating]:
        return self._direction_map(direction).apply(r)

    def solve_splitting(
        self, direction: int, r: NDArray[np.floating], a: float
    ) -> NDArray[np.floating]:
        return self._direction_map(direction).solve_splitting(r, a, 1.0)

    def preconditioner(
        self, r: NDArray[np.floating], a: float
    ) -> NDArray[np.floating]:
        return self.solve_splitting(0, r, a)

    def to_matrix_decomp(self) -> list[sparse.csr_matrix]:
        return [
            self._x_map.to_matrix(),
            self._y_map.to_matrix(),
            self._correlation.to_matrix(),
        ]

    def to_matrix(self) -> sparse.csr_matrix:
        a, b, c = self.to_matrix_decomp()
        return (a + b + c).tocsr()
