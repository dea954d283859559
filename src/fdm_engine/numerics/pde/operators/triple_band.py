# src/fdm_engine/numerics/pde/operators/triple_band.py
from __future__ import annotations

from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

from ....exceptions import PreconditionError
from ...tridiag import solve_tridiag_lines
from ..meshers import FdmMesherComposite

__all__ = ["TripleBandLinearOp"]

Coeff: TypeAlias = float | NDArray[np.floating] | None


def _as_node_vector(name: str, v, size: int) -> NDArray[np.floating]:
    arr = np.asarray(v, dtype=float)
    if arr.ndim == 0:
        return np.full(size, float(arr))
    if arr.shape != (size,):
        raise PreconditionError(f"{name} must be scalar or have shape {(size,)}")
    return arr


class TripleBandLinearOp:
    """Operator with three bands along one mesh direction.

    Row ``i`` couples node ``i`` to its neighbours ``i0[i]`` and ``i2[i]``
    along ``direction``:

        (A r)[i] = lower[i] * r[i0[i]] + diag[i] * r[i] + upper[i] * r[i2[i]]

    Instances are treated as values: ``mult``, ``add``, ``axpyb`` return new
    operators and never modify ``self``.
    """

    def __init__(
        self,
        direction: int,
        mesher: FdmMesherComposite,
        lower: NDArray[np.floating] | None = None,
        diag: NDArray[np.floating] | None = None,
        upper: NDArray[np.floating] | None = None,
    ) -> None:
        layout = mesher.layout
        if not (0 <= direction < layout.ndim):
            raise PreconditionError(
                f"direction {direction} out of range for {layout.ndim}-dimensional mesher"
            )
        n = layout.size()
        self.direction = int(direction)
        self.mesher = mesher
        self.i0 = layout.neighbourhood(direction, -1)
        self.i2 = layout.neighbourhood(direction, 1)
        self.lower = np.zeros(n) if lower is None else _as_node_vector("lower", lower, n)
        self.diag = np.zeros(n) if diag is None else _as_node_vector("diag", diag, n)
        self.upper = np.zeros(n) if upper is None else _as_node_vector("upper", upper, n)

    def _with_bands(self, lower, diag, upper) -> TripleBandLinearOp:
        return TripleBandLinearOp(self.direction, self.mesher, lower, diag, upper)

    def size(self) -> int:
        return self.mesher.layout.size()

    def _check_rhs(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        r = np.asarray(r, dtype=float)
        if r.shape != (self.size(),):
            raise PreconditionError(
                f"inconsistent length of r: {r.shape} vs ({self.size()},)"
            )
        return r

    def apply(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        r = self._check_rhs(r)
        return self.lower * r[self.i0] + self.diag * r + self.upper * r[self.i2]

    def mult(self, u: Coeff) -> TripleBandLinearOp:
        """Row scaling: ``diag(u) @ A``."""
        s = _as_node_vector("u", u, self.size())
        return self._with_bands(self.lower * s, self.diag * s, self.upper * s)

    def mult_r(self, u: Coeff) -> TripleBandLinearOp:
        """Column scaling: ``A @ diag(u)``."""
        s = _as_node_vector("u", u, self.size())
        return self._with_bands(
            self.lower * s[self.i0], self.diag * s, self.upper * s[self.i2]
        )

    def add(self, other: TripleBandLinearOp) -> TripleBandLinearOp:
        if other.direction != self.direction or other.size() != self.size():
            raise PreconditionError("can only add operators on the same direction")
        return self._with_bands(
            self.lower + other.lower, self.diag + other.diag, self.upper + other.upper
        )

    def add_diag(self, u: Coeff) -> TripleBandLinearOp:
        s = _as_node_vector("u", u, self.size())
        return self._with_bands(self.lower.copy(), self.diag + s, self.upper.copy())

    def axpyb(
        self, a: Coeff, x: TripleBandLinearOp, y: TripleBandLinearOp, b: Coeff
    ) -> TripleBandLinearOp:
        """Return ``a * x + y + b`` (``a``/``b`` per node or scalar, ``None`` = 0).

        The result lives on ``self``'s direction and mesher.
        """
        n = self.size()
        lower = y.lower.copy()
        diag = y.diag.copy()
        upper = y.upper.copy()
        if a is not None:
            s = _as_node_vector("a", a, n)
            lower = lower + s * x.lower
            diag = diag + s * x.diag
            upper = upper + s * x.upper
        if b is not None:
            diag = diag + _as_node_vector("b", b, n)
        return self._with_bands(lower, diag, upper)

    def solve_splitting(
        self, r: NDArray[np.floating], a: float, b: float = 1.0
    ) -> NDArray[np.floating]:
        """Solve ``(a * A + b * I) x = r`` line by line along ``direction``.

        The bands must not reach across the mesh edge, i.e. ``lower`` is zero
        on the first and ``upper`` zero on the last node of every line.
        """
        r = self._check_rhs(r)
        layout = self.mesher.layout
        coord = layout.coordinate(self.direction)
        last = layout.dim[self.direction] - 1
        if np.any(self.lower[coord == 0] != 0.0) or np.any(
            self.upper[coord == last] != 0.0
        ):
            raise PreconditionError("removing non zero entry!")

        dims = layout.dim
        d = self.direction

        def lines(v: NDArray[np.floating]) -> NDArray[np.floating]:
            return np.moveaxis(v.reshape(dims, order="F"), d, -1)

        x = solve_tridiag_lines(
            lines(a * self.lower),
            lines(a * self.diag + b),
            lines(a * self.upper),
            lines(r),
        )
        return np.moveaxis(x, -1, d).reshape(-1, order="F")

    def to_matrix(self) -> sparse.csr_matrix:
        n = self.size()
        rows = np.arange(n)
        m = sparse.coo_matrix(
            (
                np.concatenate([self.lower, self.diag, self.upper]),
                (np.concatenate([rows, rows, rows]), np.concatenate([self.i0, rows, self.i2])),
            ),
            shape=(n, n),
        )
        # duplicates are summed on conversion
        return m.tocsr()
