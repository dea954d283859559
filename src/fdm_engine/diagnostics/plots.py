"""Convergence plots for :func:`scheme_convergence_table` output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import pandas as pd

from ._mpl import get_plt, pretty_ax, require_columns

if TYPE_CHECKING:
    from matplotlib.axes import Axes
    from matplotlib.figure import Figure

__all__ = ["plot_convergence"]


def plot_convergence(
    df: pd.DataFrame,
    *,
    x: Literal["x_grid", "t_grid"] = "t_grid",
    err_col: Literal["abs_err", "rel_err"] = "abs_err",
    case: str | None = None,
    tol: float | None = None,
    ax: Axes | None = None,
    figsize: tuple[float, float] = (7, 4.5),
    title: str | None = None,
) -> tuple[Figure, Axes]:
    """Log-log plot of error vs grid size, one line per scheme.

    Parameters
    ----------
    df:
        Output of :func:`~fdm_engine.diagnostics.scheme_convergence_table`.
    case:
        Restrict to one case name; required when the table holds several.
    tol:
        Optional horizontal tolerance line. Pass None to disable.
    """
    require_columns(df, ["scheme", x, err_col])

    d = df
    if case is not None:
        require_columns(df, ["case"])
        d = df[df["case"] == case]

    plt = get_plt()
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    for scheme, g in d.groupby("scheme", sort=False):
        g = g.sort_values(x)
        ax.plot(
            g[x].to_numpy(dtype=float),
            g[err_col].to_numpy(dtype=float),
            marker="o",
            label=str(scheme),
        )

    if tol is not None:
        ax.axhline(float(tol), linestyle="--", linewidth=1.0, color="0.4", label="tol")

    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_xlabel(x)
    ax.set_ylabel(err_col)
    ax.set_title(title or "Scheme convergence")
    ax.legend()
    pretty_ax(ax)
    return fig, ax
