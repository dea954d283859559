# src/fdm_engine/numerics/tridiag.py
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

__all__ = ["solve_tridiag_lines"]


def solve_tridiag_lines(
    lower: NDArray[np.floating],
    diag: NDArray[np.floating],
    upper: NDArray[np.floating],
    rhs: NDArray[np.floating],
) -> NDArray[np.floating]:
    """Solve many independent tridiagonal systems laid out along the last axis.

    All four arrays share the shape ``(..., M)``; ``lower[..., 0]`` and
    ``upper[..., M-1]`` are ignored. The Thomas sweep runs over ``M`` and is
    vectorized over the leading axes, so a multi-dimensional operator can be
    inverted along one direction in a single call. Inputs are never modified.

    Raises np.linalg.LinAlgError on (near-)zero pivots.
    """
    rhs = np.asarray(rhs, dtype=float)
    shape = rhs.shape
    if np.shape(lower) != shape or np.shape(diag) != shape or np.shape(upper) != shape:
        raise ValueError(f"bands and rhs must share shape {shape}")

    M = int(shape[-1]) if rhs.ndim else 0
    if M == 0:
        return rhs.copy()

    lower = np.asarray(lower, dtype=float)
    diag = np.asarray(diag, dtype=float)
    upper = np.asarray(upper, dtype=float)

    tol = 100.0 * np.finfo(float).eps
    c = np.empty(shape, dtype=float)
    d = np.empty(shape, dtype=float)

    denom = diag[..., 0]
    if np.any(np.abs(denom) < tol):
        raise np.linalg.LinAlgError("Near-zero pivot at row 0")
    c[..., 0] = upper[..., 0] / denom
    d[..., 0] = rhs[..., 0] / denom

    for i in range(1, M):
        denom = diag[..., i] - lower[..., i] * c[..., i - 1]
        if np.any(np.abs(denom) < tol):
            raise np.linalg.LinAlgError(f"Near-zero pivot at row {i}")
        c[..., i] = upper[..., i] / denom
        d[..., i] = (rhs[..., i] - lower[..., i] * d[..., i - 1]) / denom

    x = np.empty(shape, dtype=float)
    x[..., M - 1] = d[..., M - 1]
    for i in range(M - 2, -1, -1):
        x[..., i] = d[..., i] - c[..., i] * x[..., i + 1]
    return x
