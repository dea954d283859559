"""
numerics/fd/stencils.py (pure coefficients/weights)
Responsibility: return stencil coefficients; no "apply along axis" logic.

The derivative operators multiply these by node coefficients to build triple
band and nine point operators; the Robin boundary uses the one-sided weights
to recover edge values from interior nodes.
"""

from __future__ import annotations


def d1_central_nonuniform_coeffs(hm, hp):
    """Central 3-point coefficients for the first derivative on a nonuniform grid.

    Given grid spacings:
        hm = x_i - x_{i-1}
        hp = x_{i+1} - x_i

    returns coefficients (dl, dd, du) such that:
        y'(x_i) ≈ dl*y_{i-1} + dd*y_i + du*y_{i+1}

    Second-order accurate for smooth functions. Vectorized over ``hm``/``hp``.
    """
    denom = hm * hp * (hm + hp)
    dl = -hp * hp / denom
    dd = (hp * hp - hm * hm) / denom
    du = hm * hm / denom
    return dl, dd, du


def d2_central_nonuniform_coeffs(hm, hp):
    """Central 3-point coefficients for the second derivative on a nonuniform grid.

    returns (dl, dd, du) such that:
        y''(x_i) ≈ dl*y_{i-1} + dd*y_i + du*y_{i+1}
    """
    dl = 2.0 / (hm * (hm + hp))
    dd = -2.0 / (hm * hp)
    du = 2.0 / (hp * (hm + hp))
    return dl, dd, du


def d1_backward_coeffs(hm):  # (u_i - u_{i-1})/hm
    return -1.0 / hm, 1.0 / hm, 0.0


def d1_forward_coeffs(hp):  # (u_{i+1} - u_i)/hp
    return 0.0, -1.0 / hp, 1.0 / hp


def d1_one_sided_left_weights(h0: float, h1: float) -> tuple[float, float, float]:
    """Second-order weights for y'(x0) from (x0, x1, x2), h0 = x1-x0, h1 = x2-x1."""
    w0 = -(2.0 * h0 + h1) / (h0 * (h0 + h1))
    w1 = (h0 + h1) / (h0 * h1)
    w2 = -h0 / (h1 * (h0 + h1))
    return w0, w1, w2


def d1_one_sided_right_weights(h0: float, h1: float) -> tuple[float, float, float]:
    """Second-order weights for y'(xN) from (x_{N-2}, x_{N-1}, x_N).

    h0 = xN - x_{N-1}, h1 = x_{N-1} - x_{N-2}; returns (w_{N-2}, w_{N-1}, w_N).
    """
    w_m2 = h0 / (h1 * (h0 + h1))
    w_m1 = -(h0 + h1) / (h0 * h1)
    w_0 = (2.0 * h0 + h1) / (h0 * (h0 + h1))
    return w_m2, w_m1, w_0
