import math

import numpy as np
import pytest

from fdm_engine.exceptions import (
    PreconditionError,
    ResultValidationError,
    ThetaUndefinedError,
)
from fdm_engine.models.black_scholes import vanilla_greeks, vanilla_price
from fdm_engine.numerics.pde import (
    Fdm1DimSolver,
    Fdm2DimSolver,
    FdmBlackScholesMesher,
    FdmBlackScholesOp,
    FdmBoundaryConditionSet,
    FdmLogInnerValue,
    FdmMesherComposite,
    FdmSolverDesc,
    SchemeDesc,
    Uniform1dMesher,
)
from fdm_engine.payoffs import PlainVanillaPayoff
from fdm_engine.pricers import fd_black_scholes_solver, fd_heston_solver


def _bs_desc(mesher, strike=40.0, maturity=1.0, time_steps=50, condition=None):
    return FdmSolverDesc(
        mesher=mesher,
        bc_set=FdmBoundaryConditionSet(),
        condition=condition,
        calculator=FdmLogInnerValue(PlainVanillaPayoff("put", strike), mesher),
        maturity=maturity,
        time_steps=time_steps,
    )


class ExplodingOp:
    """Black-Scholes operator scaled far beyond any stable step size."""

    def __init__(self, op) -> None:
        self._op = op

    def size(self) -> int:
        return 1

    def set_time(self, t1, t2) -> None:
        self._op.set_time(t1, t2)

    def apply(self, r):
        return 1e120 * np.asarray(r)

    def apply_direction(self, direction, r):
        return self.apply(r)

    def apply_mixed(self, r):
        return np.zeros_like(r)

    def solve_splitting(self, direction, r, a):
        return self._op.solve_splitting(direction, r, a)

    def preconditioner(self, r, a):
        return self._op.preconditioner(r, a)


def test_crank_nicolson_prices_the_european_put(bs_put_params) -> None:
    p = bs_put_params
    solver = fd_black_scholes_solver(**p, x_grid=200, t_grid=200, scheme="crank_nicolson")
    ref = vanilla_price(
        "put",
        spot=p["spot"],
        strike=p["strike"],
        r=p["r"],
        q=p["q"],
        sigma=p["sigma"],
        tau=p["maturity"],
    )
    assert solver.value_at(p["spot"]) == pytest.approx(ref, abs=1e-2)
    assert isinstance(solver.value_at(p["spot"]), float)
    assert solver.value_at(np.array([p["spot"]])).shape == (1,)


def test_facade_greeks_match_black_scholes(atm_call_params) -> None:
    p = atm_call_params
    solver = fd_black_scholes_solver(**p, x_grid=300, t_grid=200, scheme="crank_nicolson")
    greeks = vanilla_greeks(
        "call",
        spot=p["spot"],
        strike=p["strike"],
        r=p["r"],
        q=p["q"],
        sigma=p["sigma"],
        tau=p["maturity"],
    )
    s = p["spot"]
    assert solver.value_at(s) == pytest.approx(greeks["price"], abs=2e-2)
    assert solver.delta_at(s) == pytest.approx(greeks["delta"], abs=2e-3)
    assert solver.gamma_at(s) == pytest.approx(greeks["gamma"], abs=2e-3)
    assert solver.theta_at(math.log(s)) == pytest.approx(greeks["theta"], rel=2e-2)


def test_queries_roll_back_only_once(bs_mesher, counting_op) -> None:
    mesher = bs_mesher
    op = counting_op(FdmBlackScholesOp(mesher, 0.06, 0.0, 0.2))
    solver = Fdm1DimSolver(_bs_desc(mesher), SchemeDesc.douglas(), op)
    assert op.apply_calls == 0

    x = math.log(36.0)
    first = solver.interpolate_at(x)
    calls = op.apply_calls
    assert calls > 0

    assert solver.interpolate_at(x) == first
    solver.derivative_x(x)
    solver.derivative_xx(x)
    solver.theta_at(x)
    assert op.apply_calls == calls
    assert solver.rollback_count == 1

    solver.update()
    assert solver.interpolate_at(x) == pytest.approx(first)
    assert solver.rollback_count == 2
    assert op.apply_calls == 2 * calls


def test_result_values_are_a_copy(bs_mesher) -> None:
    mesher = bs_mesher
    solver = Fdm1DimSolver(
        _bs_desc(mesher), SchemeDesc.douglas(), FdmBlackScholesOp(mesher, 0.06, 0.0, 0.2)
    )
    values = solver.result_values
    values[:] = 0.0
    assert np.max(solver.result_values) > 0.0
    np.testing.assert_array_equal(solver.locations, bs_mesher.locations(0))


def test_theta_is_undefined_for_a_stopping_time_at_zero(bs_put_params) -> None:
    solver = fd_black_scholes_solver(
        **bs_put_params, x_grid=50, t_grid=20, dividend_times=[0.0], dividends=[0.5]
    )
    with pytest.raises(ThetaUndefinedError):
        solver.theta_at(math.log(36.0))


@pytest.mark.filterwarnings("ignore::RuntimeWarning")
def test_unstable_rollback_fails_validation(bs_mesher) -> None:
    mesher = bs_mesher
    op = ExplodingOp(FdmBlackScholesOp(mesher, 0.06, 0.0, 0.2))
    solver = Fdm1DimSolver(
        _bs_desc(mesher, time_steps=5), SchemeDesc.explicit_euler(), op
    )
    with pytest.raises(ResultValidationError):
        solver.interpolate_at(math.log(36.0))
    assert solver.rollback_count == 0


def test_facades_check_mesher_dimensions(bs_mesher) -> None:
    mesher_1d = bs_mesher
    op = FdmBlackScholesOp(mesher_1d, 0.06, 0.0, 0.2)
    with pytest.raises(PreconditionError):
        Fdm2DimSolver(_bs_desc(mesher_1d), SchemeDesc.douglas(), op)

    with pytest.raises(PreconditionError):
        _bs_desc(mesher_1d, maturity=0.0)
    with pytest.raises(PreconditionError):
        _bs_desc(mesher_1d, time_steps=0)


def test_two_dimensional_facade(heston_params) -> None:
    solver = fd_heston_solver(
        **heston_params, x_grid=50, v_grid=20, t_grid=40, variance_mesher="uniform"
    )
    s, v = heston_params["spot"], heston_params["v0"]

    price = solver.value_at(s, v)
    assert 5.0 < price < 15.0
    assert solver.interpolate_at(math.log(s), v) == pytest.approx(price)
    assert 0.3 < solver.delta_at(s, v) < 0.9
    assert solver.gamma_at(s, v) > 0.0
    # calls gain value with variance
    assert solver.derivative_y(math.log(s), v) > 0.0
    assert np.isfinite(solver.derivative_xy(math.log(s), v))
    assert np.isfinite(solver.derivative_yy(math.log(s), v))
    assert solver.theta_at(math.log(s), v) < 0.0

    assert solver.rollback_count == 1
    assert solver.result_values.shape == (solver.x.size * solver.y.size,)


def test_one_dimensional_facade_rejects_a_two_dimensional_mesh() -> None:
    mesher = FdmMesherComposite(
        FdmBlackScholesMesher(40, 100.0, 0.03, 0.0, 0.2, 0.5, strike=100.0),
        Uniform1dMesher(0.0, 1.0, 4),
    )
    with pytest.raises(PreconditionError):
        Fdm1DimSolver(
            _bs_desc(mesher, strike=100.0, maturity=0.5),
            SchemeDesc.douglas(),
            FdmBlackScholesOp(FdmMesherComposite(mesher.get_1d_mesher(0)), 0.03, 0.0, 0.2),
        )
