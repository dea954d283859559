"""Step conditions applied by the rollback at (or after) each time step.

A condition maps the rolled-back state at time ``t`` to an adjusted state;
conditions that only act at specific times advertise them through
``stopping_times()`` so that the rollback lands on them exactly.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError
from ...payoffs import ExerciseType
from ..interpolation import monotone_cubic
from .inner_value import FdmInnerValueCalculator
from .meshers import FdmMesherComposite

logger = logging.getLogger(__name__)

__all__ = [
    "StepCondition",
    "FdmSnapshotCondition",
    "FdmAmericanStepCondition",
    "FdmBermudanStepCondition",
    "FdmDividendHandler",
    "FdmKnockOutCondition",
    "FdmStepConditionComposite",
    "join_conditions",
    "vanilla_composite",
]

_TIME_RTOL = 1e-12
_TIME_ATOL = 1e-14


def _same_time(t1: float, t2: float) -> bool:
    return math.isclose(t1, t2, rel_tol=_TIME_RTOL, abs_tol=_TIME_ATOL)


def _hits(t: float, times: Sequence[float]) -> int | None:
    for i, ti in enumerate(times):
        if _same_time(t, ti):
            return i
    return None


def _sorted_times(name: str, times: Iterable[float]) -> tuple[float, ...]:
    out = tuple(sorted(float(t) for t in times))
    if any(t < 0.0 for t in out):
        raise PreconditionError(f"{name} must be non-negative")
    return out


@runtime_checkable
class StepCondition(Protocol):
    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]: ...


class FdmSnapshotCondition:
    """Record a copy of the state when the rollback passes ``t``."""

    def __init__(self, t: float) -> None:
        self._t = float(t)
        self._values: NDArray[np.floating] | None = None

    def get_time(self) -> float:
        return self._t

    def get_values(self) -> NDArray[np.floating] | None:
        return self._values

    def reset(self) -> None:
        self._values = None

    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        if _same_time(t, self._t):
            self._values = np.array(a, dtype=float, copy=True)
        return a


class FdmAmericanStepCondition:
    """Early exercise at every step: ``max(a, inner value)``."""

    def __init__(
        self, mesher: FdmMesherComposite, calculator: FdmInnerValueCalculator
    ) -> None:
        self.mesher = mesher
        self.calculator = calculator

    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        return np.maximum(a, self.calculator.inner_value(t))


class FdmBermudanStepCondition:
    """Early exercise only at the given exercise times."""

    def __init__(
        self,
        exercise_times: Iterable[float],
        mesher: FdmMesherComposite,
        calculator: FdmInnerValueCalculator,
    ) -> None:
        self._times = _sorted_times("exercise times", exercise_times)
        self.mesher = mesher
        self.calculator = calculator

    def exercise_times(self) -> tuple[float, ...]:
        return self._times

    def stopping_times(self) -> tuple[float, ...]:
        return self._times

    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        if _hits(t, self._times) is None:
            return a
        return np.maximum(a, self.calculator.inner_value(t))


class FdmDividendHandler:
    """Cash dividends on a log-spot direction.

    Across a dividend ``D`` paid at ``t`` the value just before is the value
    just after at ``S - D``:  ``a(x) <- a(log(max(e^x - D, e^x_min)))``,
    evaluated line by line with a monotone cubic through the mesh values.
    """

    def __init__(
        self,
        dividend_times: Sequence[float],
        dividends: Sequence[float],
        mesher: FdmMesherComposite,
        equity_direction: int = 0,
    ) -> None:
        if len(dividend_times) != len(dividends):
            raise PreconditionError(
                "dividend times and amounts must have the same length"
            )
        order = np.argsort(np.asarray(dividend_times, dtype=float), kind="stable")
        self._times = tuple(float(dividend_times[i]) for i in order)
        self._amounts = tuple(float(dividends[i]) for i in order)
        if any(t < 0.0 for t in self._times):
            raise PreconditionError("dividend times must be non-negative")
        if any(d < 0.0 for d in self._amounts):
            raise PreconditionError("dividends must be non-negative")

        self.mesher = mesher
        self.equity_direction = int(equity_direction)
        self._x = mesher.get_1d_mesher(self.equity_direction).locations

    def dividend_times(self) -> tuple[float, ...]:
        return self._times

    def dividends(self) -> tuple[float, ...]:
        return self._amounts

    def stopping_times(self) -> tuple[float, ...]:
        return self._times

    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        i = _hits(t, self._times)
        if i is None:
            return a
        dividend = self._amounts[i]
        if dividend == 0.0:
            return a
        logger.debug("applying dividend %.6g at t=%.6g", dividend, t)

        x = self._x
        spot_after = np.exp(x) - dividend
        x_shift = np.where(
            spot_after > 0.0, np.log(np.maximum(spot_after, np.finfo(float).tiny)), x[0]
        )
        x_shift = np.maximum(x_shift, x[0])

        dims = self.mesher.layout.dim
        d = self.equity_direction
        lines = np.moveaxis(np.asarray(a, dtype=float).reshape(dims, order="F"), d, -1)
        shifted = monotone_cubic(x, np.moveaxis(lines, -1, 0))(x_shift)
        # interpolator puts the query axis first
        out = np.moveaxis(np.moveaxis(shifted, 0, -1), -1, d)
        return out.reshape(-1, order="F")


class FdmKnockOutCondition:
    """Discretely monitored knock-out barrier on one mesh direction.

    At each monitoring time nodes with location below ``lower`` or above
    ``upper`` (in mesher units along ``direction``) are set to ``rebate``.
    """

    def __init__(
        self,
        monitoring_times: Iterable[float],
        mesher: FdmMesherComposite,
        direction: int = 0,
        lower: float | None = None,
        upper: float | None = None,
        rebate: float = 0.0,
    ) -> None:
        if lower is None and upper is None:
            raise PreconditionError("at least one barrier level is required")
        if lower is not None and upper is not None and not lower < upper:
            raise PreconditionError("lower barrier must be below upper barrier")
        self._times = _sorted_times("monitoring times", monitoring_times)
        self.mesher = mesher
        self.direction = int(direction)
        self.lower = lower
        self.upper = upper
        self.rebate = float(rebate)

        loc = mesher.locations(self.direction)
        knocked = np.zeros(loc.shape, dtype=bool)
        if lower is not None:
            knocked |= loc < lower
        if upper is not None:
            knocked |= loc > upper
        self._knocked = knocked

    def stopping_times(self) -> tuple[float, ...]:
        return self._times

    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        if _hits(t, self._times) is None:
            return a
        out = np.array(a, dtype=float)
        out[self._knocked] = self.rebate
        return out


class FdmStepConditionComposite:
    """Ordered list of conditions with the union of their stopping times."""

    def __init__(
        self,
        stopping_times: Iterable[Iterable[float] | float],
        conditions: Iterable[StepCondition],
    ) -> None:
        flat: list[float] = []
        for item in stopping_times:
            if isinstance(item, (int, float, np.floating)):
                flat.append(float(item))
            else:
                flat.extend(float(t) for t in item)
        times = sorted(set(flat))
        if any(t < 0.0 for t in times):
            raise PreconditionError("stopping times must be non-negative")
        self._stopping_times = tuple(times)
        self._conditions = tuple(conditions)

    def stopping_times(self) -> tuple[float, ...]:
        return self._stopping_times

    def conditions(self) -> tuple[StepCondition, ...]:
        return self._conditions

    def apply_to(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        for c in self._conditions:
            a = c.apply_to(a, t)
        return a


def join_conditions(
    snapshot: FdmSnapshotCondition,
    composite: FdmStepConditionComposite | None,
) -> FdmStepConditionComposite:
    """Append a snapshot to ``composite`` so it sees the fully adjusted state."""
    if composite is None:
        return FdmStepConditionComposite([[snapshot.get_time()]], [snapshot])
    return FdmStepConditionComposite(
        [composite.stopping_times(), [snapshot.get_time()]],
        [composite, snapshot],
    )


def vanilla_composite(
    mesher: FdmMesherComposite,
    calculator: FdmInnerValueCalculator,
    maturity: float,
    *,
    exercise: ExerciseType | str = ExerciseType.EUROPEAN,
    exercise_times: Sequence[float] = (),
    dividend_times: Sequence[float] = (),
    dividends: Sequence[float] = (),
    equity_direction: int = 0,
) -> FdmStepConditionComposite:
    """Conditions of a vanilla option: dividends first, then early exercise."""
    exercise = ExerciseType(exercise)
    stopping: list[Sequence[float]] = []
    conditions: list[StepCondition] = []

    if len(dividend_times) != len(dividends):
        raise PreconditionError("dividend times and amounts must have the same length")
    if len(dividend_times) > 0:
        handler = FdmDividendHandler(
            [t for t in dividend_times if 0.0 <= t <= maturity],
            [d for t, d in zip(dividend_times, dividends) if 0.0 <= t <= maturity],
            mesher,
            equity_direction,
        )
        stopping.append(handler.stopping_times())
        conditions.append(handler)

    if exercise is ExerciseType.AMERICAN:
        conditions.append(FdmAmericanStepCondition(mesher, calculator))
    elif exercise is ExerciseType.BERMUDAN:
        if not exercise_times:
            raise PreconditionError("bermudan exercise needs exercise times")
        bermudan = FdmBermudanStepCondition(
            [t for t in exercise_times if 0.0 <= t <= maturity], mesher, calculator
        )
        stopping.append(bermudan.stopping_times())
        conditions.append(bermudan)

    return FdmStepConditionComposite(stopping, conditions)
