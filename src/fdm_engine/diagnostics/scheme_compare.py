"""Scheme-vs-analytic convergence tables.

Each row of :func:`scheme_convergence_table` is one (case, scheme, grid)
rollback priced at the spot and compared against the closed form:

    df = scheme_convergence_table(
        [ConvergenceCase("atm_put", spot=36, strike=40, r=0.06, q=0.0,
                         sigma=0.2, maturity=1.0, option_type="put")],
        schemes=["douglas", "crank_nicolson", "hundsdorfer"],
        grids=[(50, 50), (100, 100), (200, 200, 2)],
    )
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, is_dataclass
from time import perf_counter
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike

from ..exceptions import PreconditionError
from ..models.black_scholes import cash_or_nothing_price, vanilla_price
from ..numerics.pde.schemes import SchemeDesc, resolve_scheme
from ..payoffs import CashOrNothingPayoff, OptionType, PlainVanillaPayoff
from ..pricers.fd_engines import fd_black_scholes_solver

logger = logging.getLogger(__name__)

__all__ = [
    "ConvergenceCase",
    "to_frame",
    "scheme_convergence_table",
    "max_second_difference",
]

TABLE_COLUMNS = (
    "case",
    "scheme",
    "x_grid",
    "t_grid",
    "damping_steps",
    "price",
    "ref",
    "abs_err",
    "rel_err",
    "runtime_ms",
)


@dataclass(frozen=True, slots=True)
class ConvergenceCase:
    """A European Black-Scholes contract with a closed-form reference."""

    name: str
    spot: float
    strike: float
    r: float
    q: float
    sigma: float
    maturity: float
    option_type: OptionType | str = OptionType.CALL
    payoff: str = "vanilla"

    def __post_init__(self) -> None:
        object.__setattr__(self, "option_type", OptionType(self.option_type))
        if self.payoff not in ("vanilla", "digital"):
            raise PreconditionError(
                f"payoff must be 'vanilla' or 'digital', got '{self.payoff}'"
            )
        if self.spot <= 0.0 or self.strike <= 0.0:
            raise PreconditionError("spot and strike must be > 0")
        if self.sigma <= 0.0 or self.maturity <= 0.0:
            raise PreconditionError("sigma and maturity must be > 0")

    def reference(self) -> float:
        kw = dict(
            spot=self.spot,
            strike=self.strike,
            r=self.r,
            q=self.q,
            sigma=self.sigma,
            tau=self.maturity,
        )
        if self.payoff == "digital":
            return cash_or_nothing_price(self.option_type, **kw)
        return vanilla_price(self.option_type, **kw)

    def solver_kwargs(self) -> dict[str, Any]:
        if self.payoff == "digital":
            payoff = CashOrNothingPayoff(self.option_type, self.strike)
        else:
            payoff = PlainVanillaPayoff(self.option_type, self.strike)
        return dict(
            spot=self.spot,
            strike=self.strike,
            r=self.r,
            q=self.q,
            sigma=self.sigma,
            maturity=self.maturity,
            option_type=self.option_type,
            payoff=payoff,
        )


def to_frame(items: Sequence[object]) -> pd.DataFrame:
    """Coerce a sequence of dicts or dataclasses into a DataFrame."""

    rows: list[dict[str, Any]] = []
    for it in items:
        if isinstance(it, dict):
            rows.append(dict(it))
        elif is_dataclass(it) and not isinstance(it, type):
            rows.append(asdict(it))
        else:
            raise TypeError(f"Unsupported item type: {type(it)}")
    return pd.DataFrame(rows)


def _grid_triplet(g: Sequence[int]) -> tuple[int, int, int]:
    if len(g) == 2:
        return int(g[0]), int(g[1]), 0
    if len(g) == 3:
        return int(g[0]), int(g[1]), int(g[2])
    raise PreconditionError(
        f"grid entries must be (x_grid, t_grid) or (x_grid, t_grid, damping_steps), got {g!r}"
    )


def scheme_convergence_table(
    cases: Sequence[ConvergenceCase],
    schemes: Sequence[str | SchemeDesc],
    grids: Sequence[Sequence[int]],
) -> pd.DataFrame:
    """Price every case with every scheme on every grid.

    Returns one row per run with columns ``case, scheme, x_grid, t_grid,
    damping_steps, price, ref, abs_err, rel_err, runtime_ms``.
    """
    records: list[dict[str, object]] = []
    for case in cases:
        ref = float(case.reference())
        kw = case.solver_kwargs()
        for scheme in schemes:
            desc = resolve_scheme(scheme)
            for g in grids:
                x_grid, t_grid, damping = _grid_triplet(g)

                t0 = perf_counter()
                solver = fd_black_scholes_solver(
                    **kw,
                    x_grid=x_grid,
                    t_grid=t_grid,
                    damping_steps=damping,
                    scheme=desc,
                )
                price = float(solver.value_at(case.spot))
                runtime_ms = (perf_counter() - t0) * 1e3

                abs_err = abs(price - ref)
                rel_err = abs_err / abs(ref) if ref != 0.0 else np.nan
                logger.debug(
                    "%s %s %dx%d (+%d): price=%.6g err=%.3g",
                    case.name,
                    desc.name,
                    x_grid,
                    t_grid,
                    damping,
                    price,
                    abs_err,
                )
                records.append(
                    {
                        "case": case.name,
                        "scheme": desc.name,
                        "x_grid": x_grid,
                        "t_grid": t_grid,
                        "damping_steps": damping,
                        "price": price,
                        "ref": ref,
                        "abs_err": float(abs_err),
                        "rel_err": float(rel_err),
                        "runtime_ms": float(runtime_ms),
                    }
                )

    df = to_frame(records)
    if df.empty:
        return pd.DataFrame(columns=list(TABLE_COLUMNS))
    return df[list(TABLE_COLUMNS)]


def max_second_difference(
    values: ArrayLike,
    locations: ArrayLike,
    window: tuple[float, float] | None = None,
) -> float:
    """Largest absolute second difference ``|v[i-1] - 2 v[i] + v[i+1]|``.

    Only interior nodes whose location lies inside ``window`` (inclusive)
    are considered; ``None`` uses the whole grid. Spurious oscillations near
    a payoff discontinuity show up as a large value here.
    """
    v = np.asarray(values, dtype=float)
    x = np.asarray(locations, dtype=float)
    if v.ndim != 1 or v.shape != x.shape:
        raise PreconditionError("values and locations must be 1D arrays of equal length")
    if v.size < 3:
        raise PreconditionError("need at least 3 nodes")

    d2 = np.abs(v[:-2] - 2.0 * v[1:-1] + v[2:])
    xi = x[1:-1]
    if window is not None:
        lo, hi = window
        mask = (xi >= lo) & (xi <= hi)
        if not np.any(mask):
            raise PreconditionError(f"no interior nodes inside window {window}")
        d2 = d2[mask]
    return float(np.max(d2))
