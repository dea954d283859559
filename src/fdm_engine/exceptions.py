"""Exception hierarchy for the fdm_engine library.

All library-specific exceptions inherit from :class:`FdmError`, so callers can
catch any engine failure with a single ``except`` clause::

    try:
        value = solver.interpolate_at(x)
    except FdmError as exc:
        log.error("FD solve failed: %s", exc)

Precondition and configuration errors also derive from :class:`ValueError`,
numerical errors from :class:`ArithmeticError`, so generic handlers keep
working.
"""

from __future__ import annotations

from typing import Any


class FdmError(Exception):
    """Base exception for all library errors."""


# ── Caller mistakes ────────────────────────────────────────────────


class PreconditionError(FdmError, ValueError):
    """Violated precondition (negative time step, size mismatch, missing setup)."""


class ConfigurationError(FdmError, ValueError):
    """Unknown or unsupported scheme / solver selection."""


# ── Numerical issues ────────────────────────────────────────────────


class NumericalError(FdmError, ArithmeticError):
    """Base for errors arising from numerical computation."""


class ConvergenceError(NumericalError):
    """An iterative solver failed to reach its tolerance within the iteration bound.

    The solver result (approximate solution, iteration count or residual
    history) is attached as :attr:`result` so callers can decide whether the
    approximation is usable.
    """

    def __init__(self, message: str, *, result: Any = None) -> None:
        super().__init__(message)
        self.result = result


class ResultValidationError(NumericalError):
    """A rolled-back solution contains non-finite or overflowing values."""


class ThetaUndefinedError(FdmError):
    """Theta requested while the snapshot condition sits at time zero."""
