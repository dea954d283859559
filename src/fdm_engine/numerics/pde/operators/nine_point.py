# src/fdm_engine/numerics/pde/operators/nine_point.py
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

from ....exceptions import PreconditionError
from ..meshers import FdmMesherComposite

__all__ = ["NinePointLinearOp"]

_OFFSETS = (-1, 0, 1)


class NinePointLinearOp:
    """Operator coupling every node to its 3x3 neighbourhood in two directions.

    ``coeff[j, k]`` multiplies the neighbour shifted by ``_OFFSETS[j]`` along
    ``d0`` and ``_OFFSETS[k]`` along ``d1``.
    """

    def __init__(
        self,
        d0: int,
        d1: int,
        mesher: FdmMesherComposite,
        coeff: NDArray[np.floating] | None = None,
    ) -> None:
        layout = mesher.layout
        if d0 == d1 or not (0 <= d0 < layout.ndim) or not (0 <= d1 < layout.ndim):
            raise PreconditionError("inconsistent derivative directions")
        self.d0 = int(d0)
        self.d1 = int(d1)
        self.mesher = mesher

        n = layout.size()
        self.index = np.empty((3, 3, n), dtype=np.intp)
        for j, o0 in enumerate(_OFFSETS):
            for k, o1 in enumerate(_OFFSETS):
                self.index[j, k] = layout.neighbourhood2(d0, o0, d1, o1)

        if coeff is None:
            self.coeff = np.zeros((3, 3, n))
        else:
            self.coeff = np.asarray(coeff, dtype=float)
            if self.coeff.shape != (3, 3, n):
                raise PreconditionError(f"coeff must have shape {(3, 3, n)}")

    def size(self) -> int:
        return self.mesher.layout.size()

    def apply(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        r = np.asarray(r, dtype=float)
        if r.shape != (self.size(),):
            raise PreconditionError(
                f"inconsistent length of r: {r.shape} vs ({self.size()},)"
            )
        return np.einsum("jkn,jkn->n", self.coeff, r[self.index])

    def mult(self, u: float | NDArray[np.floating]) -> NinePointLinearOp:
        s = np.broadcast_to(np.asarray(u, dtype=float), (self.size(),))
        return NinePointLinearOp(self.d0, self.d1, self.mesher, self.coeff * s)

    def to_matrix(self) -> sparse.csr_matrix:
        n = self.size()
        rows = np.broadcast_to(np.arange(n), (3, 3, n))
        m = sparse.coo_matrix(
            (self.coeff.ravel(), (rows.ravel(), self.index.ravel())), shape=(n, n)
        )
        return m.tocsr()
