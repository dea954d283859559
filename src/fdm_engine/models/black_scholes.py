from __future__ import annotations

import math

from scipy.stats import norm

from ..exceptions import PreconditionError
from ..payoffs import OptionType

__all__ = [
    "discount_factor",
    "forward",
    "d1_d2_from_spot",
    "call_price",
    "put_price",
    "vanilla_price",
    "cash_or_nothing_price",
    "vanilla_greeks",
]


def _validate_scalar_inputs(
    *, spot: float, strike: float, sigma: float, tau: float
) -> None:
    if spot <= 0.0:
        raise PreconditionError("spot must be positive")
    if strike <= 0.0:
        raise PreconditionError("strike must be positive")
    if sigma <= 0.0:
        raise PreconditionError("sigma must be positive")
    if tau <= 0.0:
        raise PreconditionError("tau must be positive")


def discount_factor(rate: float, tau: float) -> float:
    return math.exp(-rate * tau)


def forward(spot: float, r: float, q: float, tau: float) -> float:
    # F = S * e^{(r-q) tau}
    return spot * math.exp((r - q) * tau)


def d1_d2_from_spot(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> tuple[float, float]:
    _validate_scalar_inputs(spot=spot, strike=strike, sigma=sigma, tau=tau)
    vol_sqrt_t = sigma * math.sqrt(tau)
    num = math.log(spot / strike) + (r - q + 0.5 * sigma * sigma) * tau
    d1 = num / vol_sqrt_t
    d2 = d1 - vol_sqrt_t
    return float(d1), float(d2)


def call_price(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    """
    Black-Scholes European call with continuous dividend yield q.
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    df_r = discount_factor(r, tau)
    df_q = discount_factor(q, tau)
    return float(spot * df_q * norm.cdf(d1) - strike * df_r * norm.cdf(d2))


def put_price(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    """
    Black-Scholes European put with continuous dividend yield q.
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    df_r = discount_factor(r, tau)
    df_q = discount_factor(q, tau)
    return float(strike * df_r * norm.cdf(-d2) - spot * df_q * norm.cdf(-d1))


def vanilla_price(
    option_type: OptionType,
    *,
    spot: float,
    strike: float,
    r: float,
    q: float,
    sigma: float,
    tau: float,
) -> float:
    kw = dict(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    if OptionType(option_type) is OptionType.CALL:
        return call_price(**kw)
    return put_price(**kw)


def cash_or_nothing_price(
    option_type: OptionType,
    *,
    spot: float,
    strike: float,
    r: float,
    q: float,
    sigma: float,
    tau: float,
    cash: float = 1.0,
) -> float:
    """Digital paying ``cash`` at expiry if in the money: cash * e^{-r tau} N(+-d2)."""
    _, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    sign = 1.0 if OptionType(option_type) is OptionType.CALL else -1.0
    return float(cash * discount_factor(r, tau) * norm.cdf(sign * d2))


def vanilla_greeks(
    option_type: OptionType,
    *,
    spot: float,
    strike: float,
    r: float,
    q: float,
    sigma: float,
    tau: float,
) -> dict[str, float]:
    """
    Analytic price, delta, gamma and theta of a European call/put.

    theta is dPrice/dt (calendar time, holding expiry fixed), per year.
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    sqrt_tau = math.sqrt(tau)
    df_r = discount_factor(r, tau)
    df_q = discount_factor(q, tau)
    phi_d1 = norm.pdf(d1)
    gamma = df_q * phi_d1 / (spot * sigma * sqrt_tau)
    decay = -(spot * df_q * phi_d1 * sigma) / (2.0 * sqrt_tau)

    if OptionType(option_type) is OptionType.CALL:
        Nd1 = norm.cdf(d1)
        Nd2 = norm.cdf(d2)
        price = spot * df_q * Nd1 - strike * df_r * Nd2
        delta = df_q * Nd1
        theta = decay - r * strike * df_r * Nd2 + q * spot * df_q * Nd1
    else:
        Nmd1 = norm.cdf(-d1)
        Nmd2 = norm.cdf(-d2)
        price = strike * df_r * Nmd2 - spot * df_q * Nmd1
        delta = -df_q * Nmd1
        theta = decay + r * strike * df_r * Nmd2 - q * spot * df_q * Nmd1

    return {
        "price": float(price),
        "delta": float(delta),
        "gamma": float(gamma),
        "theta": float(theta),
    }
