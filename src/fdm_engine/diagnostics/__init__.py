"""Diagnostics: scheme convergence tables and plots.

Plotting needs matplotlib, which is imported on first use only.
"""

from .plots import plot_convergence
from .scheme_compare import (
    ConvergenceCase,
    max_second_difference,
    scheme_convergence_table,
    to_frame,
)

__all__ = [
    "ConvergenceCase",
    "scheme_convergence_table",
    "max_second_difference",
    "to_frame",
    "plot_convergence",
]
