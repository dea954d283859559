# src/fdm_engine/numerics/__init__.py
"""
Numerical building blocks (advanced API).

Top-level package `fdm_engine` exposes the everyday pricing API.
This subpackage exposes reusable numerical primitives.
"""

from .interpolation import BicubicSpline2D, CubicSpline1D, monotone_cubic
from .krylov import GMRES, BiCGStab, BiCGStabResult, GMRESResult
from .tridiag import solve_tridiag_lines

__all__ = [
    # Krylov
    "BiCGStab",
    "BiCGStabResult",
    "GMRES",
    "GMRESResult",
    # Interpolation
    "CubicSpline1D",
    "BicubicSpline2D",
    "monotone_cubic",
    # Tridiagonal
    "solve_tridiag_lines",
]
