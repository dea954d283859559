from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

from ....exceptions import PreconditionError
from ..meshers import FdmMesherComposite
from .derivatives import FirstDerivativeOp, SecondDerivativeOp
from .triple_band import TripleBandLinearOp

__all__ = ["FdmBlackScholesOp"]


class FdmBlackScholesOp:
    """Black-Scholes generator in log-spot ``x = log(S)``.

        A = (r - q - sigma^2/2) d/dx + sigma^2/2 d^2/dx^2 - r

    Rates and volatility are flat, so ``set_time`` only checks the window.
    The operator has a single splitting direction (``direction`` on the mesher).
    """

    def __init__(
        self,
        mesher: FdmMesherComposite,
        r: float,
        q: float,
        sigma: float,
        direction: int = 0,
    ) -> None:
        if sigma <= 0.0:
            raise PreconditionError("sigma must be > 0")
        self.mesher = mesher
        self.r = float(r)
        self.q = float(q)
        self.sigma = float(sigma)
        self.direction = int(direction)

        self._dx = FirstDerivativeOp(direction, mesher)
        self._dxx = SecondDerivativeOp(direction, mesher)
        self._map = self._build_map()

    def _build_map(self) -> TripleBandLinearOp:
        var = self.sigma * self.sigma
        return self._dx.axpyb(
            self.r - self.q - 0.5 * var, self._dx, self._dxx.mult(0.5 * var), -self.r
        )

    def size(self) -> int:
        return 1

    def set_time(self, t1: float, t2: float) -> None:
        if t2 < t1:
            raise PreconditionError(f"invalid time window [{t1}, {t2}]")

    def apply(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._map.apply(r)

    def apply_mixed(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        return np.zeros_like(np.asarray(r, dtype=float))

    def apply_direction(
        self, direction: int, r: NDArray[np.floating]
    ) -> NDArray[np.floating]:
        if direction == self.direction:
            return self._map.apply(r)
        return np.zeros_like(np.asarray(r, dtype=float))

    def solve_splitting(
        self, direction: int, r: NDArray[np.floating], a: float
    ) -> NDArray[np.floating]:
        if direction == self.direction:
            return self._map.solve_splitting(r, a, 1.0)
        return np.array(r, dtype=float)

    def preconditioner(
        self, r: NDArray[np.floating], a: float
    ) -> NDArray[np.floating]:
        return self.solve_splitting(self.direction, r, a)

    def to_matrix(self) -> sparse.csr_matrix:
        return self._map.to_matrix()
