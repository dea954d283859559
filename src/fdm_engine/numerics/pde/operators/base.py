from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

__all__ = ["FdmLinearOp", "FdmLinearOpComposite"]


@runtime_checkable
class FdmLinearOp(Protocol):
    """Anything that maps a state vector to a state vector."""

    def apply(self, r: NDArray[np.floating]) -> NDArray[np.floating]: ...

    def to_matrix(self) -> sparse.csr_matrix: ...


@runtime_checkable
class FdmLinearOpComposite(Protocol):
    """Spatial operator ``A`` consumed by the time-stepping schemes.

    ``A`` is split into per-direction parts ``A_i`` and a mixed (cross
    derivative) remainder so that ``A = sum_i A_i + A_mixed``.

    - ``size()``: number of splitting directions.
    - ``set_time(t1, t2)``: time window of the next step (``t1 <= t2``).
    - ``apply(r)``: ``A r``.
    - ``apply_direction(i, r)``: ``A_i r``.
    - ``apply_mixed(r)``: ``A_mixed r``.
    - ``solve_splitting(i, r, a)``: solve ``(I + a A_i) x = r``; schemes pass
      ``a = -theta * dt``.
    - ``preconditioner(r, a)``: cheap approximation to ``(I + a A)^{-1} r``.
    - ``to_matrix()``: the full operator as a sparse CSR matrix.
    """

    def size(self) -> int: ...

    def set_time(self, t1: float, t2: float) -> None: ...

    def apply(self, r: NDArray[np.floating]) -> NDArray[np.floating]: ...

    def apply_direction(
        self, direction: int, r: NDArray[np.floating]
    ) -> NDArray[np.floating]: ...

    def apply_mixed(self, r: NDArray[np.floating]) -> NDArray[np.floating]: ...

    def solve_splitting(
        self, direction: int, r: NDArray[np.floating], a: float
    ) -> NDArray[np.floating]: ...

    def preconditioner(
        self, r: NDArray[np.floating], a: float
    ) -> NDArray[np.floating]: ...

    def to_matrix(self) -> sparse.csr_matrix: ...
