"""Spline wrappers used to turn node values into continuous queries."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import CubicSpline, PchipInterpolator, RectBivariateSpline

from ..exceptions import PreconditionError

__all__ = ["CubicSpline1D", "BicubicSpline2D", "monotone_cubic"]


def _strictly_increasing(name: str, x: NDArray[np.floating]) -> NDArray[np.floating]:
    x = np.asarray(x, dtype=float)
    if x.ndim != 1 or x.size < 2:
        raise PreconditionError(f"{name} must be a 1D array with at least 2 points")
    if np.any(np.diff(x) <= 0.0):
        raise PreconditionError(f"{name} must be strictly increasing")
    return x


def _as_output(v: NDArray[np.floating], like) -> float | NDArray[np.floating]:
    if np.ndim(like) == 0:
        return float(np.asarray(v).reshape(()))
    return np.asarray(v, dtype=float)


class CubicSpline1D:
    """Natural cubic spline through (x, y) with first/second derivatives."""

    def __init__(self, x: NDArray[np.floating], y: NDArray[np.floating]) -> None:
        self.x = _strictly_increasing("x", x)
        self.y = np.asarray(y, dtype=float)
        if self.y.shape != self.x.shape:
            raise PreconditionError(
                f"y must have shape {self.x.shape} got {self.y.shape}"
            )
        self._spline = CubicSpline(self.x, self.y, bc_type="natural")

    def __call__(self, xq):
        return _as_output(self._spline(xq), xq)

    def derivative(self, xq):
        return _as_output(self._spline(xq, 1), xq)

    def second_derivative(self, xq):
        return _as_output(self._spline(xq, 2), xq)


class BicubicSpline2D:
    """Bicubic interpolating spline on a rectangular grid.

    ``z`` is laid out with one row per ``y`` value: ``z.shape == (len(y), len(x))``.
    """

    def __init__(
        self,
        x: NDArray[np.floating],
        y: NDArray[np.floating],
        z: NDArray[np.floating],
    ) -> None:
        self.x = _strictly_increasing("x", x)
        self.y = _strictly_increasing("y", y)
        self.z = np.asarray(z, dtype=float)
        if self.z.shape != (self.y.size, self.x.size):
            raise PreconditionError(
                f"z must have shape {(self.y.size, self.x.size)} got {self.z.shape}"
            )
        kx = min(3, self.x.size - 1)
        ky = min(3, self.y.size - 1)
        self._spline = RectBivariateSpline(self.x, self.y, self.z.T, kx=kx, ky=ky, s=0)

    def _ev(self, xq, yq, dx: int = 0, dy: int = 0):
        out = self._spline.ev(xq, yq, dx=dx, dy=dy)
        if np.ndim(xq) == 0 and np.ndim(yq) == 0:
            return float(np.asarray(out).reshape(()))
        return np.asarray(out, dtype=float)

    def __call__(self, xq, yq):
        return self._ev(xq, yq)

    def derivative_x(self, xq, yq):
        return self._ev(xq, yq, dx=1)

    def derivative_y(self, xq, yq):
        return self._ev(xq, yq, dy=1)

    def derivative_xx(self, xq, yq):
        return self._ev(xq, yq, dx=2)

    def derivative_yy(self, xq, yq):
        return self._ev(xq, yq, dy=2)

    def derivative_xy(self, xq, yq):
        return self._ev(xq, yq, dx=1, dy=1)


def monotone_cubic(
    x: NDArray[np.floating], y: NDArray[np.floating]
) -> PchipInterpolator:
    """Shape-preserving piecewise cubic (PCHIP) through (x, y)."""
    return PchipInterpolator(_strictly_increasing("x", x), np.asarray(y, dtype=float))
