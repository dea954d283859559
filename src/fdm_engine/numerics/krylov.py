"""Matrix-free Krylov solvers (BiCGStab, GMRES).

Both solvers only need a callable ``apply_a(x) -> A x`` and, optionally, a
preconditioner ``m(x) ≈ A^{-1} x``. They never raise on non-convergence: the
returned result carries ``converged=False`` together with the best iterate so
that the caller decides what to do with it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

from ..exceptions import PreconditionError

logger = logging.getLogger(__name__)

LinearMap: TypeAlias = Callable[[NDArray[np.floating]], NDArray[np.floating]]

__all__ = ["BiCGStab", "BiCGStabResult", "GMRES", "GMRESResult"]


@dataclass(frozen=True, slots=True)
class BiCGStabResult:
    x: NDArray[np.floating]
    iterations: int
    error: float
    converged: bool


@dataclass(frozen=True, slots=True)
class GMRESResult:
    x: NDArray[np.floating]
    errors: list[float] = field(default_factory=list)
    converged: bool = False

    @property
    def iterations(self) -> int:
        # first entry is the initial residual
        return max(len(self.errors) - 1, 0)


def _prepare(
    b: NDArray[np.floating], x0: NDArray[np.floating] | None
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    b = np.asarray(b, dtype=float)
    if b.ndim != 1:
        raise PreconditionError("rhs must be a 1D array")
    if x0 is None:
        x = np.zeros_like(b)
    else:
        x = np.array(x0, dtype=float)
        if x.shape != b.shape:
            raise PreconditionError(
                f"initial guess must have shape {b.shape} got {x.shape}"
            )
    return b, x


class BiCGStab:
    """Biconjugate gradient stabilized method with right preconditioning."""

    def __init__(
        self,
        apply_a: LinearMap,
        max_iter: int,
        rel_tol: float,
        preconditioner: LinearMap | None = None,
    ) -> None:
        if max_iter <= 0:
            raise ValueError("max_iter must be > 0")
        if rel_tol <= 0:
            raise ValueError("rel_tol must be > 0")
        self._a = apply_a
        self._m = preconditioner
        self._max_iter = int(max_iter)
        self._rel_tol = float(rel_tol)

    def _precondition(self, v: NDArray[np.floating]) -> NDArray[np.floating]:
        return v if self._m is None else np.asarray(self._m(v), dtype=float)

    def solve(
        self, b: NDArray[np.floating], x0: NDArray[np.floating] | None = None
    ) -> BiCGStabResult:
        b, x = _prepare(b, x0)

        bnorm2 = float(np.linalg.norm(b))
        if bnorm2 == 0.0:
            return BiCGStabResult(x=np.zeros_like(b), iterations=0, error=0.0, converged=True)

        r = b - self._a(x)
        r_tld = r.copy()
        p = np.zeros_like(b)
        v = np.zeros_like(b)
        omega = 1.0
        rho_tld = 1.0
        alpha = 0.0
        error = float(np.linalg.norm(r)) / bnorm2

        i = 0
        while i < self._max_iter and error >= self._rel_tol:
            rho = float(np.dot(r_tld, r))
            if rho == 0.0 or omega == 0.0:
                break

            if i > 0:
                beta = (rho / rho_tld) * (alpha / omega)
                p = r + beta * (p - omega * v)
            else:
                p = r.copy()

            p_tld = self._precondition(p)
            v = self._a(p_tld)
            denom = float(np.dot(r_tld, v))
            if denom == 0.0 or not np.isfinite(denom):
                break
            alpha = rho / denom

            s = r - alpha * v
            i += 1
            if float(np.linalg.norm(s)) < self._rel_tol * bnorm2:
                x = x + alpha * p_tld
                error = float(np.linalg.norm(s)) / bnorm2
                break

            s_tld = self._precondition(s)
            t = self._a(s_tld)
            tt = float(np.dot(t, t))
            if tt == 0.0:
                break
            omega = float(np.dot(t, s)) / tt

            x = x + alpha * p_tld + omega * s_tld
            r = s - omega * t
            error = float(np.linalg.norm(r)) / bnorm2
            rho_tld = rho

        converged = bool(np.isfinite(error) and error < self._rel_tol)
        if not converged:
            logger.debug(
                "BiCGStab stopped after %d iterations with relative residual %.3e",
                i,
                error,
            )
        return BiCGStabResult(x=x, iterations=i, error=error, converged=converged)


class GMRES:
    """Generalized minimal residual method with right preconditioning."""

    def __init__(
        self,
        apply_a: LinearMap,
        max_iter: int,
        rel_tol: float,
        preconditioner: LinearMap | None = None,
    ) -> None:
        if max_iter <= 0:
            raise ValueError("max_iter must be > 0")
        if rel_tol <= 0:
            raise ValueError("rel_tol must be > 0")
        self._a = apply_a
        self._m = preconditioner
        self._max_iter = int(max_iter)
        self._rel_tol = float(rel_tol)

    def _precondition(self, v: NDArray[np.floating]) -> NDArray[np.floating]:
        return v if self._m is None else np.asarray(self._m(v), dtype=float)

    def solve(
        self, b: NDArray[np.floating], x0: NDArray[np.floating] | None = None
    ) -> GMRESResult:
        b, x = _prepare(b, x0)
        return self._solve_impl(b, x)

    def solve_with_restart(
        self,
        restart: int,
        b: NDArray[np.floating],
        x0: NDArray[np.floating] | None = None,
    ) -> GMRESResult:
        """Run up to ``restart`` GMRES cycles, each warm-started from the last."""
        if restart <= 0:
            raise ValueError("restart must be > 0")
        b, x = _prepare(b, x0)

        result = self._solve_impl(b, x)
        errors = list(result.errors)
        for _ in range(1, restart):
            if result.converged:
                break
            result = self._solve_impl(b, result.x)
            errors.extend(result.errors)
        return GMRESResult(x=result.x, errors=errors, converged=result.converged)

    def _solve_impl(
        self, b: NDArray[np.floating], x: NDArray[np.floating]
    ) -> GMRESResult:
        bn = float(np.linalg.norm(b))
        if bn == 0.0:
            return GMRESResult(x=np.zeros_like(b), errors=[0.0], converged=True)

        r = b - self._a(x)
        g = float(np.linalg.norm(r))
        errors = [g / bn]
        if g / bn < self._rel_tol:
            return GMRESResult(x=x, errors=errors, converged=True)

        m = self._max_iter
        V = [r / g]
        H = np.zeros((m + 1, m), dtype=float)
        cs = np.zeros(m, dtype=float)
        sn = np.zeros(m, dtype=float)
        z = np.zeros(m + 1, dtype=float)
        z[0] = g

        k = 0
        singular = False
        for j in range(m):
            w = np.asarray(self._a(self._precondition(V[j])), dtype=float)
            for i in range(j + 1):
                H[i, j] = float(np.dot(w, V[i]))
                w = w - H[i, j] * V[i]
            h_next = float(np.linalg.norm(w))
            H[j + 1, j] = h_next

            for i in range(j):
                h0 = cs[i] * H[i, j] + sn[i] * H[i + 1, j]
                h1 = -sn[i] * H[i, j] + cs[i] * H[i + 1, j]
                H[i, j] = h0
                H[i + 1, j] = h1

            nu = float(np.hypot(H[j, j], H[j + 1, j]))
            if nu == 0.0 or not np.isfinite(nu):
                singular = True
                break

            cs[j] = H[j, j] / nu
            sn[j] = H[j + 1, j] / nu
            H[j, j] = nu
            H[j + 1, j] = 0.0
            z[j + 1] = -sn[j] * z[j]
            z[j] = cs[j] * z[j]
            errors.append(abs(z[j + 1]) / bn)
            k = j + 1

            if errors[-1] < self._rel_tol:
                break
            # invariant Krylov space: the current iterate is final
            if h_next < np.finfo(float).eps ** 2:
                break
            V.append(w / h_next)

        if k == 0:
            logger.debug("GMRES broke down before the first iteration (singular system)")
            return GMRESResult(x=x, errors=errors, converged=False)

        y = np.zeros(k, dtype=float)
        for i in range(k - 1, -1, -1):
            y[i] = (z[i] - float(np.dot(H[i, i + 1 : k], y[i + 1 : k]))) / H[i, i]

        xm = np.zeros_like(b)
        for i in range(k):
            xm = xm + y[i] * V[i]
        x = x + self._precondition(xm)

        converged = (not singular) and errors[-1] < self._rel_tol
        if not converged:
            logger.debug(
                "GMRES stopped after %d iterations with relative residual %.3e",
                k,
                errors[-1],
            )
        return GMRESResult(x=x, errors=errors, converged=bool(converged))
