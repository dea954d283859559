# src/fdm_engine/numerics/pde/layout.py
from __future__ import annotations

from collections.abc import Sequence
from functools import cached_property

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError

__all__ = ["FdmLinearOpLayout"]


class FdmLinearOpLayout:
    """Bijection between multi-index mesh coordinates and flat state indices.

    The first dimension varies fastest: for ``dim = (n0, n1)`` the flat index of
    ``(i, j)`` is ``i + n0 * j``. State vectors reshaped with
    ``order="F"`` therefore have shape ``dim``.
    """

    def __init__(self, dim: Sequence[int]) -> None:
        dims = tuple(int(d) for d in dim)
        if not dims:
            raise PreconditionError("layout needs at least one dimension")
        if any(d < 1 for d in dims):
            raise PreconditionError(f"dimensions must be >= 1, got {dims}")
        self._dim = dims
        spacing = [1]
        for d in dims[:-1]:
            spacing.append(spacing[-1] * d)
        self._spacing = tuple(spacing)
        self._size = int(np.prod(dims))

    @property
    def dim(self) -> tuple[int, ...]:
        return self._dim

    @property
    def spacing(self) -> tuple[int, ...]:
        return self._spacing

    @property
    def ndim(self) -> int:
        return len(self._dim)

    def size(self) -> int:
        return self._size

    def index(self, coordinates: Sequence[int]) -> int:
        if len(coordinates) != self.ndim:
            raise PreconditionError(
                f"expected {self.ndim} coordinates, got {len(coordinates)}"
            )
        idx = 0
        for c, d, s in zip(coordinates, self._dim, self._spacing):
            if not (0 <= int(c) < d):
                raise PreconditionError(f"coordinate {c} out of range [0, {d})")
            idx += int(c) * s
        return idx

    def coordinates(self, index: int) -> tuple[int, ...]:
        if not (0 <= int(index) < self._size):
            raise PreconditionError(f"index {index} out of range [0, {self._size})")
        return tuple(int(c) for c in np.unravel_index(int(index), self._dim, order="F"))

    @cached_property
    def _grid(self) -> NDArray[np.intp]:
        # (ndim, size): coordinate of every flat index along every direction
        return np.stack(
            np.unravel_index(np.arange(self._size), self._dim, order="F"), axis=0
        )

    def coordinate_grid(self) -> NDArray[np.intp]:
        """Return an ``(ndim, size)`` array with the coordinates of every node."""
        return self._grid.copy()

    def coordinate(self, direction: int) -> NDArray[np.intp]:
        """Coordinate along ``direction`` for every flat index."""
        self._check_direction(direction)
        return self._grid[direction]

    def neighbourhood(self, direction: int, offset: int) -> NDArray[np.intp]:
        """Flat indices of the neighbour ``offset`` steps away along ``direction``.

        Out-of-range neighbours are reflected back into the mesh, so every entry
        is a valid index; the operators that use these arrays carry zero
        coefficients at the reflected positions.
        """
        return self.neighbourhood2(direction, offset, None, 0)

    def neighbourhood2(
        self, i1: int, off1: int, i2: int | None, off2: int
    ) -> NDArray[np.intp]:
        """Flat indices of the neighbour shifted along two directions at once."""
        self._check_direction(i1)
        idx = np.arange(self._size, dtype=np.intp)
        idx = idx + self._shift(i1, off1)
        if i2 is not None:
            self._check_direction(i2)
            idx = idx + self._shift(i2, off2)
        return idx

    def _shift(self, direction: int, offset: int) -> NDArray[np.intp]:
        c = self._grid[direction]
        n = self._dim[direction]
        target = c + int(offset)
        target = np.where(target < 0, -target, target)
        target = np.where(target >= n, 2 * (n - 1) - target, target)
        # reflection can overshoot on tiny dimensions
        target = np.clip(target, 0, n - 1)
        return (target - c) * self._spacing[direction]

    def _check_direction(self, direction: int) -> None:
        if not (0 <= int(direction) < self.ndim):
            raise PreconditionError(
                f"direction {direction} out of range for {self.ndim}-dimensional layout"
            )

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FdmLinearOpLayout) and other._dim == self._dim

    def __hash__(self) -> int:
        return hash(self._dim)

    def __repr__(self) -> str:
        return f"FdmLinearOpLayout(dim={self._dim})"
