"""Finite-difference derivative operators on (possibly non-uniform) meshes.

Interior rows use the central non-uniform stencils. On the mesh edges the
first derivative falls back to one-sided differences and the second
derivative is zero, so the bands never reach across an edge.
"""

from __future__ import annotations

import numpy as np

from ...fd.stencils import (
    d1_backward_coeffs,
    d1_central_nonuniform_coeffs,
    d1_forward_coeffs,
    d2_central_nonuniform_coeffs,
)
from ..meshers import FdmMesherComposite
from .nine_point import NinePointLinearOp
from .triple_band import TripleBandLinearOp

__all__ = [
    "FirstDerivativeOp",
    "SecondDerivativeOp",
    "SecondOrderMixedDerivativeOp",
]


def _edge_masks(mesher: FdmMesherComposite, direction: int):
    layout = mesher.layout
    coord = layout.coordinate(direction)
    first = coord == 0
    last = coord == layout.dim[direction] - 1
    return first, last, ~(first | last)


def _central_d1(mesher: FdmMesherComposite, direction: int):
    """Central d1 coefficients per node with one-sided rows on the edges."""
    first, last, interior = _edge_masks(mesher, direction)
    hm = mesher.dminus(direction)
    hp = mesher.dplus(direction)
    n = mesher.size()

    lower = np.zeros(n)
    diag = np.zeros(n)
    upper = np.zeros(n)

    dl, dd, du = d1_central_nonuniform_coeffs(hm[interior], hp[interior])
    lower[interior] = dl
    diag[interior] = dd
    upper[interior] = du

    _, fd, fu = d1_forward_coeffs(hp[first])
    diag[first] = fd
    upper[first] = fu

    bl, bd, _ = d1_backward_coeffs(hm[last])
    lower[last] = bl
    diag[last] = bd
    return lower, diag, upper, interior


class FirstDerivativeOp(TripleBandLinearOp):
    def __init__(self, direction: int, mesher: FdmMesherComposite) -> None:
        lower, diag, upper, _ = _central_d1(mesher, direction)
        super().__init__(direction, mesher, lower, diag, upper)


class SecondDerivativeOp(TripleBandLinearOp):
    def __init__(self, direction: int, mesher: FdmMesherComposite) -> None:
        _, _, interior = _edge_masks(mesher, direction)
        hm = mesher.dminus(direction)[interior]
        hp = mesher.dplus(direction)[interior]
        n = mesher.size()

        lower = np.zeros(n)
        diag = np.zeros(n)
        upper = np.zeros(n)
        dl, dd, du = d2_central_nonuniform_coeffs(hm, hp)
        lower[interior] = dl
        diag[interior] = dd
        upper[interior] = du
        super().__init__(direction, mesher, lower, diag, upper)


class SecondOrderMixedDerivativeOp(NinePointLinearOp):
    """Cross derivative d^2/(dx_d0 dx_d1) as the product of central d1 stencils.

    Rows of nodes on an edge of either direction are zero.
    """

    def __init__(self, d0: int, d1: int, mesher: FdmMesherComposite) -> None:
        super().__init__(d0, d1, mesher)
        l0, c0, u0, in0 = _central_d1(mesher, d0)
        l1, c1, u1, in1 = _central_d1(mesher, d1)
        interior = in0 & in1

        w0 = np.stack([l0, c0, u0])
        w1 = np.stack([l1, c1, u1])
        coeff = w0[:, None, :] * w1[None, :, :]
        coeff[:, :, ~interior] = 0.0
        self.coeff = coeff
