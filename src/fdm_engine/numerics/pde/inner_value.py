# src/fdm_engine/numerics/pde/inner_value.py
from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import Protocol, cast, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ...typing import FloatArray, ScalarFn
from .meshers import FdmMesherComposite

__all__ = [
    "FdmInnerValueCalculator",
    "FdmLogInnerValue",
    "cell_average",
]


@runtime_checkable
class FdmInnerValueCalculator(Protocol):
    """Exercise value per mesh node (whole mesh, flat-index order)."""

    def inner_value(self, t: float) -> FloatArray: ...

    def avg_inner_value(self, t: float) -> FloatArray: ...


def _midpoints(x: FloatArray) -> FloatArray:
    return cast(FloatArray, 0.5 * (x[:-1] + x[1:]))


def _split_interval(
    a: float, b: float, breaks: Sequence[float]
) -> list[tuple[float, float]]:
    pts = [float(p) for p in breaks if a < float(p) < b]
    pts = [a] + sorted(pts) + [b]
    return [(pts[j], pts[j + 1]) for j in range(len(pts) - 1)]


def _gauss3(f: ScalarFn, a: float, b: float) -> float:
    xs = np.array([-math.sqrt(3.0 / 5.0), 0.0, math.sqrt(3.0 / 5.0)], dtype=np.float64)
    ws = np.array([5.0 / 9.0, 8.0 / 9.0, 5.0 / 9.0], dtype=np.float64)
    m = 0.5 * (a + b)
    h = 0.5 * (b - a)

    vals = np.array([f(m + h * float(xi)) for xi in xs], dtype=np.float64)
    return float(h * float(np.sum(ws * vals)))


def cell_average(
    x: NDArray[np.floating],
    f: ScalarFn,
    *,
    breakpoints: Sequence[float] = (),
) -> FloatArray:
    """Average ``f`` over each node's cell (midpoint to midpoint).

    Each cell is split at ``breakpoints`` and integrated piecewise with
    3-point Gauss-Legendre, so kinks and jumps at a breakpoint are resolved
    exactly for piecewise-polynomial payoffs of low degree.
    """
    x = cast(FloatArray, np.asarray(x, dtype=np.float64))
    Nx = int(x.size)
    if Nx == 0:
        return cast(FloatArray, np.empty((0,), dtype=np.float64))
    if Nx == 1:
        return cast(FloatArray, np.array([f(float(x[0]))], dtype=np.float64))

    xm = _midpoints(x)

    u = np.empty(Nx, dtype=np.float64)
    for i in range(Nx):
        if i == 0:
            a, b = float(x[0]), float(xm[0])
        elif i == Nx - 1:
            a, b = float(xm[-1]), float(x[-1])
        else:
            a, b = float(xm[i - 1]), float(xm[i])

        pieces = _split_interval(a, b, breakpoints)
        integ = sum(_gauss3(f, aa, bb) for aa, bb in pieces)
        u[i] = float(integ / (b - a))

    return cast(FloatArray, u)


class FdmLogInnerValue:
    """Payoff of ``exp(x)`` along a log-spot direction of the mesher.

    ``breakpoints`` are log-space points where the payoff is not smooth;
    they default to ``log(strike)`` when the payoff carries a strike.
    """

    def __init__(
        self,
        payoff: Callable,
        mesher: FdmMesherComposite,
        direction: int = 0,
        breakpoints: Sequence[float] | None = None,
    ) -> None:
        self.payoff = payoff
        self.mesher = mesher
        self.direction = int(direction)
        if breakpoints is None:
            strike = getattr(payoff, "strike", None)
            breakpoints = () if strike is None else (math.log(strike),)
        self.breakpoints = tuple(float(b) for b in breakpoints)

        self._coord = mesher.layout.coordinate(self.direction)
        self._x = mesher.get_1d_mesher(self.direction).locations
        self._avg_line: FloatArray | None = None

    def inner_value(self, t: float) -> FloatArray:
        line = np.asarray(self.payoff(np.exp(self._x)), dtype=np.float64)
        return cast(FloatArray, line[self._coord])

    def avg_inner_value(self, t: float) -> FloatArray:
        if self._avg_line is None:
            self._avg_line = cell_average(
                self._x,
                lambda x: float(self.payoff(math.exp(x))),
                breakpoints=self.breakpoints,
            )
        return cast(FloatArray, self._avg_line[self._coord])
