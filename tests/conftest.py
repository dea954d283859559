"""Pytest helpers for the fdm_engine library."""

from __future__ import annotations

import numpy as np
import pytest

from fdm_engine.numerics.pde import (
    FdmBlackScholesMesher,
    FdmMesherComposite,
    Predefined1dMesher,
    Uniform1dMesher,
)


@pytest.fixture
def bs_put_params() -> dict:
    """The classic American/European put test case (S=36, K=40)."""
    return {
        "spot": 36.0,
        "strike": 40.0,
        "r": 0.06,
        "q": 0.0,
        "sigma": 0.2,
        "maturity": 1.0,
        "option_type": "put",
    }


@pytest.fixture
def atm_call_params() -> dict:
    return {
        "spot": 100.0,
        "strike": 100.0,
        "r": 0.05,
        "q": 0.02,
        "sigma": 0.25,
        "maturity": 1.0,
        "option_type": "call",
    }


@pytest.fixture
def heston_params() -> dict:
    return {
        "spot": 100.0,
        "strike": 100.0,
        "r": 0.03,
        "q": 0.0,
        "v0": 0.04,
        "kappa": 1.5,
        "theta": 0.04,
        "sigma": 0.3,
        "rho": -0.7,
        "maturity": 1.0,
        "option_type": "call",
    }


@pytest.fixture
def rng():
    """Seeded RNG factory."""

    def _rng(seed: int) -> np.random.Generator:
        return np.random.default_rng(seed)

    return _rng


@pytest.fixture
def mesher_1d() -> FdmMesherComposite:
    return FdmMesherComposite(Uniform1dMesher(-1.0, 1.0, 21))


@pytest.fixture
def mesher_2d() -> FdmMesherComposite:
    x = Predefined1dMesher([0.0, 0.1, 0.3, 0.45, 0.7, 1.0])
    y = Uniform1dMesher(0.0, 2.0, 5)
    return FdmMesherComposite(x, y)


@pytest.fixture
def bs_mesher() -> FdmMesherComposite:
    return FdmMesherComposite(
        FdmBlackScholesMesher(100, 36.0, 0.06, 0.0, 0.2, 1.0, strike=40.0)
    )


class CountingOp:
    """Operator wrapper that counts calls to ``apply`` / ``solve_splitting``."""

    def __init__(self, op) -> None:
        self._op = op
        self.apply_calls = 0
        self.solve_calls = 0

    def size(self) -> int:
        return self._op.size()

    def set_time(self, t1: float, t2: float) -> None:
        self._op.set_time(t1, t2)

    def apply(self, r):
        self.apply_calls += 1
        return self._op.apply(r)

    def apply_direction(self, direction, r):
        self.apply_calls += 1
        return self._op.apply_direction(direction, r)

    def apply_mixed(self, r):
        return self._op.apply_mixed(r)

    def solve_splitting(self, direction, r, a):
        self.solve_calls += 1
        return self._op.solve_splitting(direction, r, a)

    def preconditioner(self, r, a):
        return self._op.preconditioner(r, a)

    def to_matrix(self):
        return self._op.to_matrix()


@pytest.fixture
def counting_op():
    """Factory wrapping an operator in :class:`CountingOp`."""
    return CountingOp
