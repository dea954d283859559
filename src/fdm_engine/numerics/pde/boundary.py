from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError
from ..fd.stencils import d1_one_sided_left_weights, d1_one_sided_right_weights
from .meshers import FdmMesherComposite
from .operators.base import FdmLinearOpComposite

BoundaryFn = Callable[[float], float]  # t -> scalar

__all__ = [
    "Side",
    "BoundaryCondition",
    "FdmDirichletBoundary",
    "FdmTimeDepDirichletBoundary",
    "RobinBCSide",
    "dirichlet_side",
    "neumann_side",
    "FdmRobinBoundary",
    "FdmBoundaryConditionSet",
]


class Side(str, Enum):
    LOWER = "lower"
    UPPER = "upper"


class BoundaryCondition:
    """Hooks called by the schemes around every operator application / solve.

    The default implementation does nothing; ``apply_after_*`` return the
    (possibly adjusted) array and never modify their input.
    """

    def set_time(self, t: float) -> None:
        pass

    def apply_before_applying(self, op: FdmLinearOpComposite) -> None:
        pass

    def apply_before_solving(
        self, op: FdmLinearOpComposite, rhs: NDArray[np.floating]
    ) -> None:
        pass

    def apply_after_applying(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        return a

    def apply_after_solving(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        return a


def _side_indices(
    mesher: FdmMesherComposite, direction: int, side: Side
) -> NDArray[np.intp]:
    layout = mesher.layout
    if not (0 <= direction < layout.ndim):
        raise PreconditionError(f"direction {direction} out of range")
    coord = layout.coordinate(direction)
    target = 0 if Side(side) is Side.LOWER else layout.dim[direction] - 1
    return np.flatnonzero(coord == target)


class FdmDirichletBoundary(BoundaryCondition):
    """Pin every node on one side of ``direction`` to a constant value."""

    def __init__(
        self, mesher: FdmMesherComposite, value: float, direction: int, side: Side
    ) -> None:
        self.mesher = mesher
        self.value = float(value)
        self.direction = int(direction)
        self.side = Side(side)
        self.indices = _side_indices(mesher, self.direction, self.side)
        self.x_extreme = float(
            mesher.get_1d_mesher(self.direction).locations[
                0 if self.side is Side.LOWER else -1
            ]
        )

    def _current_value(self) -> float:
        return self.value

    def _pin(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        out = np.array(a, dtype=float)
        out[self.indices] = self._current_value()
        return out

    def apply_after_applying(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._pin(a)

    def apply_after_solving(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._pin(a)


class FdmTimeDepDirichletBoundary(FdmDirichletBoundary):
    """Dirichlet side whose value ``value_fn(t)`` follows the boundary time."""

    def __init__(
        self,
        mesher: FdmMesherComposite,
        value_fn: BoundaryFn,
        direction: int,
        side: Side,
    ) -> None:
        super().__init__(mesher, float("nan"), direction, side)
        self.value_fn = value_fn
        self._t: float | None = None

    def set_time(self, t: float) -> None:
        self._t = float(t)
        self.value = float(self.value_fn(self._t))

    def _current_value(self) -> float:
        if self._t is None:
            raise PreconditionError("set_time must be called before the boundary is applied")
        return self.value


# --- General linear Robin BC: alpha(t) u + beta(t) u_x = gamma(t) ---


@dataclass(frozen=True, slots=True)
class RobinBCSide:
    alpha: BoundaryFn
    beta: BoundaryFn
    gamma: BoundaryFn


def dirichlet_side(g: BoundaryFn) -> RobinBCSide:
    """Dirichlet u = g(t) as Robin with beta=0."""
    return RobinBCSide(alpha=lambda t: 1.0, beta=lambda t: 0.0, gamma=g)


def neumann_side(q: BoundaryFn) -> RobinBCSide:
    """Neumann u_x = q(t) as Robin with alpha=0, beta=1."""
    return RobinBCSide(alpha=lambda t: 0.0, beta=lambda t: 1.0, gamma=q)


class FdmRobinBoundary(BoundaryCondition):
    """Robin side ``alpha u + beta u_x = gamma`` enforced by elimination.

    After every update the edge node is recovered from the two nearest
    interior nodes of its line with a second-order one-sided derivative:
    ``u_edge = p1 * u_1 + p2 * u_2 + q``.
    """

    def __init__(
        self,
        mesher: FdmMesherComposite,
        side_spec: RobinBCSide,
        direction: int,
        side: Side,
    ) -> None:
        self.mesher = mesher
        self.side_spec = side_spec
        self.direction = int(direction)
        self.side = Side(side)

        n = mesher.layout.dim[self.direction]
        if n < 4:
            raise PreconditionError(
                "need at least 4 grid points for second order boundary recovery"
            )
        self.indices = _side_indices(mesher, self.direction, self.side)
        step = mesher.layout.spacing[self.direction]
        sign = 1 if self.side is Side.LOWER else -1
        self._n1 = self.indices + sign * step
        self._n2 = self.indices + 2 * sign * step

        x = mesher.get_1d_mesher(self.direction).locations
        if self.side is Side.LOWER:
            self._h0 = float(x[1] - x[0])
            self._h1 = float(x[2] - x[1])
        else:
            self._h0 = float(x[-1] - x[-2])
            self._h1 = float(x[-2] - x[-3])
        self._t: float | None = None

    def set_time(self, t: float) -> None:
        self._t = float(t)

    def elimination(self, t: float) -> tuple[float, float, float]:
        """Return (p1, p2, q) with ``u_edge = p1 * u_1 + p2 * u_2 + q``."""
        alpha = float(self.side_spec.alpha(t))
        beta = float(self.side_spec.beta(t))
        gamma = float(self.side_spec.gamma(t))
        if self.side is Side.LOWER:
            w_edge, w1, w2 = d1_one_sided_left_weights(self._h0, self._h1)
        else:
            w2, w1, w_edge = d1_one_sided_right_weights(self._h0, self._h1)
        denom = alpha + beta * w_edge
        if abs(denom) < 1e-14:
            raise PreconditionError(
                f"{self.side.value} Robin BC is singular: alpha + beta*w_edge ~ 0"
            )
        return -(beta * w1) / denom, -(beta * w2) / denom, gamma / denom

    def _recover(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        if self._t is None:
            raise PreconditionError("set_time must be called before the boundary is applied")
        p1, p2, q = self.elimination(self._t)
        out = np.array(a, dtype=float)
        out[self.indices] = p1 * out[self._n1] + p2 * out[self._n2] + q
        return out

    def apply_after_applying(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._recover(a)

    def apply_after_solving(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        return self._recover(a)


class FdmBoundaryConditionSet:
    """Ordered collection of boundary conditions; every hook fans out."""

    def __init__(self, conditions: Iterable[BoundaryCondition] = ()) -> None:
        self._conditions = tuple(conditions)

    def __iter__(self) -> Iterator[BoundaryCondition]:
        return iter(self._conditions)

    def __len__(self) -> int:
        return len(self._conditions)

    def set_time(self, t: float) -> None:
        for bc in self._conditions:
            bc.set_time(t)

    def apply_before_applying(self, op: FdmLinearOpComposite) -> None:
        for bc in self._conditions:
            bc.apply_before_applying(op)

    def apply_before_solving(
        self, op: FdmLinearOpComposite, rhs: NDArray[np.floating]
    ) -> None:
        for bc in self._conditions:
            bc.apply_before_solving(op, rhs)

    def apply_after_applying(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        for bc in self._conditions:
            a = bc.apply_after_applying(a)
        return a

    def apply_after_solving(self, a: NDArray[np.floating]) -> NDArray[np.floating]:
        for bc in self._conditions:
            a = bc.apply_after_solving(a)
        return a
