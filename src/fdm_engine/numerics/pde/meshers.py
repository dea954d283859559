"""1-D meshers and their tensor-product composite.

A mesher owns node locations and spacings; the composite adds the layout that
maps mesh coordinates to flat state indices.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.stats import ncx2, norm

from ...exceptions import PreconditionError
from .layout import FdmLinearOpLayout

logger = logging.getLogger(__name__)

__all__ = [
    "Fdm1dMesher",
    "Uniform1dMesher",
    "Concentrating1dMesher",
    "Predefined1dMesher",
    "FdmBlackScholesMesher",
    "FdmHestonVarianceMesher",
    "FdmMesherComposite",
]


class Fdm1dMesher:
    """Strictly increasing node locations with forward/backward spacings.

    ``dplus[i] = x[i+1] - x[i]`` (NaN at the last node) and
    ``dminus[i] = x[i] - x[i-1]`` (NaN at the first node).
    """

    def __init__(self, locations: NDArray[np.floating]) -> None:
        x = np.asarray(locations, dtype=float)
        if x.ndim != 1 or x.size < 2:
            raise PreconditionError("a 1d mesher needs at least 2 locations")
        if not np.all(np.isfinite(x)):
            raise PreconditionError("mesher locations must be finite")
        if not np.all(np.diff(x) > 0.0):
            raise PreconditionError("mesher locations must be strictly increasing")
        self._x = x
        self._x.setflags(write=False)

        h = np.diff(x)
        dplus = np.full(x.size, np.nan)
        dminus = np.full(x.size, np.nan)
        dplus[:-1] = h
        dminus[1:] = h
        dplus.setflags(write=False)
        dminus.setflags(write=False)
        self._dplus = dplus
        self._dminus = dminus

    def size(self) -> int:
        return int(self._x.size)

    @property
    def locations(self) -> NDArray[np.floating]:
        return self._x

    @property
    def dplus(self) -> NDArray[np.floating]:
        return self._dplus

    @property
    def dminus(self) -> NDArray[np.floating]:
        return self._dminus

    def location(self, i: int) -> float:
        return float(self._x[i])

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={self.size()}, "
            f"start={self._x[0]:.6g}, end={self._x[-1]:.6g})"
        )


class Uniform1dMesher(Fdm1dMesher):
    def __init__(self, start: float, end: float, size: int) -> None:
        if not end > start:
            raise PreconditionError("end must be larger than start")
        if size < 2:
            raise PreconditionError("size must be >= 2")
        super().__init__(np.linspace(float(start), float(end), int(size)))


class Predefined1dMesher(Fdm1dMesher):
    def __init__(self, locations: Sequence[float] | NDArray[np.floating]) -> None:
        super().__init__(np.asarray(locations, dtype=float))


class Concentrating1dMesher(Fdm1dMesher):
    """Mesh concentrated around ``c_point`` with an asinh/sinh transform.

    ``density`` is relative to ``end - start``; smaller values concentrate
    harder. With ``require_c_point`` the node nearest to ``c_point`` is moved
    onto it.
    """

    def __init__(
        self,
        start: float,
        end: float,
        size: int,
        c_point: float | None = None,
        density: float | None = None,
        require_c_point: bool = False,
    ) -> None:
        start = float(start)
        end = float(end)
        size = int(size)
        if not end > start:
            raise PreconditionError("end must be larger than start")
        if size < 2:
            raise PreconditionError("size must be >= 2")
        if c_point is not None and not (start <= c_point <= end):
            raise PreconditionError("c_point must be between start and end")
        if c_point is not None and density is None:
            raise PreconditionError("density must be given if c_point is given")
        if density is not None and density <= 0.0:
            raise PreconditionError("density > 0 required")
        if require_c_point and c_point is None:
            raise PreconditionError("c_point is required in grid but not given")

        u = np.linspace(0.0, 1.0, size)
        if c_point is None:
            x = start + (end - start) * u
        else:
            assert density is not None
            d = float(density) * (end - start)
            c1 = math.asinh((start - c_point) / d)
            c2 = math.asinh((end - c_point) / d)
            x = c_point + d * np.sinh(c1 * (1.0 - u) + c2 * u)

        x[0] = start
        x[-1] = end

        if require_c_point and c_point is not None and size > 2:
            j = int(np.argmin(np.abs(x - c_point)))
            if 0 < j < size - 1:
                x[j] = c_point

        super().__init__(x)


class FdmBlackScholesMesher(Fdm1dMesher):
    """Log-spot mesher for a Black-Scholes process.

    Spans ``scale_factor * N^{-1}(1 - eps) * sigma * sqrt(T)`` around the
    smallest/largest of the log spot and the log forward. ``log(spot)`` is
    always a node.
    """

    def __init__(
        self,
        size: int,
        spot: float,
        r: float,
        q: float,
        sigma: float,
        maturity: float,
        strike: float | None = None,
        eps: float = 1e-4,
        scale_factor: float = 1.5,
        c_point: float | None = None,
        density: float | None = None,
    ) -> None:
        if spot <= 0.0:
            raise PreconditionError("spot must be > 0")
        if sigma <= 0.0:
            raise PreconditionError("sigma must be > 0")
        if maturity <= 0.0:
            raise PreconditionError("maturity must be > 0")
        if not (0.0 < eps < 0.5):
            raise PreconditionError("eps must be in (0, 0.5)")

        self.spot = float(spot)
        self.strike = None if strike is None else float(strike)

        x0 = math.log(spot)
        xf = x0 + (r - q) * maturity
        x_min = min(x0, xf)
        x_max = max(x0, xf)
        if strike is not None:
            xs = math.log(strike)
            x_min = min(x_min, xs)
            x_max = max(x_max, xs)

        width = scale_factor * float(norm.ppf(1.0 - eps)) * sigma * math.sqrt(maturity)
        lo = x_min - width
        hi = x_max + width

        if c_point is not None and density is not None:
            x = Concentrating1dMesher(
                lo, hi, size, c_point=c_point, density=density
            ).locations.copy()
        else:
            x = Uniform1dMesher(lo, hi, size).locations.copy()

        # shift the grid so that the spot sits exactly on a node
        j = int(np.argmin(np.abs(x - x0)))
        if 0 < j < size - 1:
            x[j] = x0
        else:
            x = x + (x0 - x[j])

        super().__init__(x)


class FdmHestonVarianceMesher(Fdm1dMesher):
    """Variance mesher following the square-root process distribution.

    Quantile grids of the non-central chi-square law of ``v_t`` are built on
    ``t_avg_steps`` horizons up to maturity, pooled, and averaged bucket-wise.
    ``v0`` is always a node. Falls back to a uniform ``v0``/``theta`` centred
    grid if the quantiles are not finite.
    """

    def __init__(
        self,
        size: int,
        v0: float,
        kappa: float,
        theta: float,
        sigma: float,
        maturity: float,
        t_avg_steps: int = 10,
        eps: float = 1e-4,
    ) -> None:
        if size < 3:
            raise PreconditionError("size must be >= 3")
        if min(v0, kappa, theta, sigma) <= 0.0:
            raise PreconditionError("v0, kappa, theta and sigma must be > 0")
        if maturity <= 0.0:
            raise PreconditionError("maturity must be > 0")

        try:
            v = self._quantile_grid(
                size, v0, kappa, theta, sigma, maturity, t_avg_steps, eps
            )
        except (ValueError, FloatingPointError) as exc:
            logger.debug("falling back to a uniform variance mesh: %s", exc)
            vol = sigma * math.sqrt(theta / (2.0 * kappa))
            upper = max(v0 + 4.0 * vol, theta + 4.0 * vol)
            lower = max(0.0, min(v0 - 4.0 * vol, theta - 4.0 * vol))
            v = np.linspace(lower, upper, size)

        if v0 < v[0]:
            v[0] = v0
        elif v0 > v[-1]:
            v[-1] = v0
        else:
            for i in range(1, v.size):
                if v[i - 1] <= v0 <= v[i]:
                    if abs(v[i - 1] - v0) < abs(v[i] - v0):
                        v[i - 1] = v0
                    else:
                        v[i] = v0
                    break

        self.v0 = float(v0)
        super().__init__(v)

    @staticmethod
    def _quantile_grid(
        size: int,
        v0: float,
        kappa: float,
        theta: float,
        sigma: float,
        maturity: float,
        t_avg_steps: int,
        eps: float,
    ) -> NDArray[np.floating]:
        df = 4.0 * kappa * theta / sigma**2
        pooled: list[float] = []
        for step in range(1, t_avg_steps + 1):
            t = maturity * step / t_avg_steps
            decay = math.exp(-kappa * t)
            k = sigma**2 * (1.0 - decay) / (4.0 * kappa)
            nc = v0 * decay / k

            q_max = max(v0, k * float(ncx2.ppf(1.0 - eps, df, nc)))
            if not math.isfinite(q_max):
                raise ValueError("non-finite variance quantile")
            min_step = q_max / (50.0 * size)

            pooled.append(0.0)
            p = 0.0
            v_prev = 0.0
            for i in range(1, size):
                p += (1.0 - eps - p) / (size - i)
                vx = max(v_prev + min_step, k * float(ncx2.ppf(p, df, nc)))
                if not math.isfinite(vx):
                    raise ValueError("non-finite variance quantile")
                p = float(ncx2.cdf(vx / k, df, nc))
                v_prev = vx
                pooled.append(vx)

        grid = np.sort(np.asarray(pooled, dtype=float))
        n = grid.size
        v = np.empty(size, dtype=float)
        for i in range(size):
            b = (i * n) // size
            e = ((i + 1) * n) // size
            v[i] = grid[b:e].mean()
        if not np.all(np.diff(v) > 0.0):
            raise ValueError("variance quantile grid is not strictly increasing")
        return v


class FdmMesherComposite:
    """Tensor product of 1-D meshers; direction ``i`` is ``meshers[i]``."""

    def __init__(self, *meshers: Fdm1dMesher) -> None:
        if not meshers:
            raise PreconditionError("at least one 1d mesher is required")
        self._meshers = tuple(meshers)
        self._layout = FdmLinearOpLayout([m.size() for m in meshers])

        coords = self._layout.coordinate_grid()
        self._locations = tuple(
            m.locations[coords[d]] for d, m in enumerate(self._meshers)
        )
        self._dplus = tuple(m.dplus[coords[d]] for d, m in enumerate(self._meshers))
        self._dminus = tuple(m.dminus[coords[d]] for d, m in enumerate(self._meshers))

    @property
    def layout(self) -> FdmLinearOpLayout:
        return self._layout

    @property
    def ndim(self) -> int:
        return len(self._meshers)

    def size(self) -> int:
        return self._layout.size()

    def get_1d_mesher(self, direction: int) -> Fdm1dMesher:
        return self._meshers[direction]

    def locations(self, direction: int) -> NDArray[np.floating]:
        """Location along ``direction`` of every node, in flat-index order."""
        return self._locations[direction]

    def dplus(self, direction: int) -> NDArray[np.floating]:
        return self._dplus[direction]

    def dminus(self, direction: int) -> NDArray[np.floating]:
        return self._dminus[direction]

    def __repr__(self) -> str:
        inner = ", ".join(repr(m) for m in self._meshers)
        return f"FdmMesherComposite({inner})"
