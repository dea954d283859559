import math

import numpy as np
import pandas as pd
import pytest

from fdm_engine.diagnostics import (
    ConvergenceCase,
    max_second_difference,
    plot_convergence,
    scheme_convergence_table,
    to_frame,
)
from fdm_engine.diagnostics._mpl import require_columns
from fdm_engine.exceptions import PreconditionError

COLUMNS = [
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
]


@pytest.fixture
def put_case() -> ConvergenceCase:
    return ConvergenceCase(
        "otm_put", spot=36.0, strike=40.0, r=0.06, q=0.0, sigma=0.2, maturity=1.0,
        option_type="put",
    )


def test_convergence_table_shape_and_errors(put_case) -> None:
    df = scheme_convergence_table(
        [put_case], schemes=["douglas", "cn"], grids=[(50, 25), (100, 50, 2)]
    )
    assert list(df.columns) == COLUMNS
    assert len(df) == 4
    assert set(df["scheme"]) == {"douglas", "crank_nicolson"}
    assert df["damping_steps"].tolist() == [0, 2, 0, 2]
    assert np.all(df["abs_err"] < 0.1)
    assert np.all(df["runtime_ms"] >= 0.0)
    np.testing.assert_allclose(df["ref"], put_case.reference())


def test_convergence_table_for_a_digital() -> None:
    case = ConvergenceCase(
        "digital", spot=100.0, strike=100.0, r=0.03, q=0.0, sigma=0.25, maturity=0.5,
        payoff="digital",
    )
    df = scheme_convergence_table([case], ["crank_nicolson"], [(150, 50, 2)])
    assert df["ref"].iloc[0] == pytest.approx(case.reference())
    assert df["rel_err"].iloc[0] < 2e-2


def test_convergence_table_input_checks(put_case) -> None:
    empty = scheme_convergence_table([], ["douglas"], [(10, 10)])
    assert empty.empty
    assert list(empty.columns) == COLUMNS

    with pytest.raises(PreconditionError):
        scheme_convergence_table([put_case], ["douglas"], [(10,)])
    with pytest.raises(PreconditionError):
        ConvergenceCase("bad", 100.0, 100.0, 0.0, 0.0, 0.2, 1.0, payoff="asian")
    with pytest.raises(PreconditionError):
        ConvergenceCase("bad", 100.0, 100.0, 0.0, 0.0, 0.0, 1.0)


def test_to_frame_accepts_dicts_and_dataclasses(put_case) -> None:
    df = to_frame([put_case, {"name": "extra", "spot": 1.0}])
    assert df["name"].tolist() == ["otm_put", "extra"]
    with pytest.raises(TypeError):
        to_frame([object()])


def test_max_second_difference() -> None:
    x = np.linspace(0.0, 1.0, 11)
    assert max_second_difference(2.0 * x + 1.0, x) == pytest.approx(0.0, abs=1e-12)

    v = x**2
    assert max_second_difference(v, x) == pytest.approx(0.02)

    spike = np.zeros_like(x)
    spike[8] = 1.0
    assert max_second_difference(spike, x) == pytest.approx(2.0)
    assert max_second_difference(spike, x, window=(0.0, 0.5)) == 0.0

    with pytest.raises(PreconditionError):
        max_second_difference(v[:5], x)
    with pytest.raises(PreconditionError):
        max_second_difference(v[:2], x[:2])
    with pytest.raises(PreconditionError):
        max_second_difference(v, x, window=(2.0, 3.0))


def test_plot_convergence() -> None:
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    df = pd.DataFrame(
        {
            "case": ["a"] * 4 + ["b"] * 2,
            "scheme": ["douglas", "douglas", "cn", "cn", "cn", "cn"],
            "t_grid": [25, 50, 25, 50, 25, 50],
            "abs_err": [4e-3, 1e-3, 2e-3, 5e-4, 1e-2, 3e-3],
        }
    )
    fig, ax = plot_convergence(df, case="a", tol=1e-3, title="put")
    try:
        assert ax.get_xscale() == "log"
        assert ax.get_title() == "put"
        labels = [line.get_label() for line in ax.get_lines()]
        assert labels == ["douglas", "cn", "tol"]
    finally:
        plt.close(fig)

    with pytest.raises(PreconditionError):
        plot_convergence(df, err_col="rel_err")


def test_require_columns() -> None:
    df = pd.DataFrame({"a": [1.0]})
    require_columns(df, ["a"])
    with pytest.raises(PreconditionError, match=r"\['b'\]"):
        require_columns(df, ["a", "b"])


def test_case_solver_kwargs_price_at_spot(put_case) -> None:
    kw = put_case.solver_kwargs()
    assert kw["payoff"](30.0) == pytest.approx(10.0)
    assert kw["maturity"] == 1.0
    assert math.isfinite(put_case.reference())
