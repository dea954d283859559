import math

import numpy as np
import pytest

from fdm_engine.exceptions import PreconditionError
from fdm_engine.models.black_scholes import (
    call_price,
    cash_or_nothing_price,
    d1_d2_from_spot,
    forward,
    put_price,
    vanilla_greeks,
    vanilla_price,
)
from fdm_engine.numerics.interpolation import BicubicSpline2D, CubicSpline1D, monotone_cubic
from fdm_engine.payoffs import CashOrNothingPayoff, PlainVanillaPayoff


def test_put_call_parity_with_dividends() -> None:
    """C - P = S e^{-qT} - K e^{-rT}."""
    kw = dict(spot=100.0, strike=105.0, r=0.03, q=0.01, sigma=0.25, tau=1.2)
    c = call_price(**kw)
    p = put_price(**kw)
    parity = 100.0 * math.exp(-0.01 * 1.2) - 105.0 * math.exp(-0.03 * 1.2)
    assert c - p == pytest.approx(parity, abs=1e-10)
    assert vanilla_price("call", **kw) == c
    assert forward(100.0, 0.03, 0.01, 1.2) == pytest.approx(100.0 * math.exp(0.024))


def test_digital_prices_sum_to_discount_factor() -> None:
    kw = dict(spot=90.0, strike=100.0, r=0.04, q=0.0, sigma=0.3, tau=0.75)
    total = cash_or_nothing_price("call", **kw) + cash_or_nothing_price("put", **kw)
    assert total == pytest.approx(math.exp(-0.04 * 0.75))
    assert cash_or_nothing_price("call", cash=2.0, **kw) == pytest.approx(
        2.0 * cash_or_nothing_price("call", **kw)
    )


@pytest.mark.parametrize("option_type", ["call", "put"])
def test_greeks_match_finite_differences(option_type) -> None:
    kw = dict(strike=100.0, r=0.05, q=0.02, sigma=0.25)
    s, tau, h = 100.0, 1.0, 1e-3
    g = vanilla_greeks(option_type, spot=s, tau=tau, **kw)

    def price(spot, t):
        return vanilla_price(option_type, spot=spot, tau=t, **kw)

    assert g["price"] == pytest.approx(price(s, tau))
    assert g["delta"] == pytest.approx((price(s + h, tau) - price(s - h, tau)) / (2 * h), rel=1e-6)
    assert g["gamma"] == pytest.approx(
        (price(s + h, tau) - 2 * price(s, tau) + price(s - h, tau)) / h**2, rel=1e-4
    )
    # calendar theta: one day closer to expiry
    assert g["theta"] == pytest.approx((price(s, tau - h) - price(s, tau + h)) / (2 * h), rel=1e-5)


def test_model_input_validation() -> None:
    with pytest.raises(PreconditionError):
        d1_d2_from_spot(spot=-1.0, strike=100.0, r=0.0, q=0.0, sigma=0.2, tau=1.0)
    with pytest.raises(PreconditionError):
        call_price(spot=100.0, strike=100.0, r=0.0, q=0.0, sigma=0.2, tau=0.0)


def test_payoffs() -> None:
    call = PlainVanillaPayoff("call", 100.0)
    put = PlainVanillaPayoff("put", 100.0)
    s = np.array([80.0, 100.0, 120.0])

    np.testing.assert_array_equal(call(s), [0.0, 0.0, 20.0])
    np.testing.assert_array_equal(put(s), [20.0, 0.0, 0.0])
    assert isinstance(call(130.0), float)

    digital = CashOrNothingPayoff("put", 100.0, cash=3.0)
    np.testing.assert_array_equal(digital(s), [3.0, 0.0, 0.0])
    assert digital(99.0) == 3.0

    with pytest.raises(PreconditionError):
        PlainVanillaPayoff("call", 0.0)
    with pytest.raises(ValueError):
        PlainVanillaPayoff("straddle", 100.0)


# --- interpolation --------------------------------------------------------------


def test_cubic_spline_reproduces_nodes_and_derivatives() -> None:
    x = np.linspace(0.0, 2.0, 41)
    spline = CubicSpline1D(x, np.sin(x))

    np.testing.assert_allclose(spline(x), np.sin(x), atol=1e-14)
    assert isinstance(spline(1.0), float)
    assert spline.derivative(1.0) == pytest.approx(math.cos(1.0), abs=1e-4)
    assert spline.second_derivative(1.0) == pytest.approx(-math.sin(1.0), abs=1e-3)

    with pytest.raises(PreconditionError):
        CubicSpline1D(x[::-1], np.sin(x))
    with pytest.raises(PreconditionError):
        CubicSpline1D(x, np.sin(x[:-1]))


def test_bicubic_spline_on_a_product() -> None:
    x = np.linspace(0.0, 1.0, 21)
    y = np.linspace(-1.0, 1.0, 15)
    z = np.outer(y**2, np.exp(x))  # rows are y
    spline = BicubicSpline2D(x, y, z)

    assert spline(0.5, 0.3) == pytest.approx(0.09 * math.exp(0.5), rel=1e-4)
    assert spline.derivative_x(0.5, 0.3) == pytest.approx(0.09 * math.exp(0.5), rel=1e-3)
    assert spline.derivative_y(0.5, 0.3) == pytest.approx(0.6 * math.exp(0.5), rel=1e-3)
    assert spline.derivative_yy(0.5, 0.3) == pytest.approx(2.0 * math.exp(0.5), rel=1e-2)
    assert spline.derivative_xy(0.5, 0.3) == pytest.approx(0.6 * math.exp(0.5), rel=1e-2)
    assert spline(np.array([0.5, 0.6]), np.array([0.3, 0.3])).shape == (2,)

    with pytest.raises(PreconditionError):
        BicubicSpline2D(x, y, z.T)


def test_monotone_cubic_does_not_overshoot() -> None:
    x = np.array([0.0, 1.0, 2.0, 3.0])
    y = np.array([0.0, 0.0, 1.0, 1.0])
    xs = np.linspace(0.0, 3.0, 61)
    vals = monotone_cubic(x, y)(xs)
    assert vals.min() >= 0.0
    assert vals.max() <= 1.0
    assert np.all(np.diff(vals) >= -1e-15)
