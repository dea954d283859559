"""Backward rollback of a state vector through time.

:class:`FiniteDifferenceModel` drives one scheme over a uniform time grid and
lands exactly on every stopping time of the step condition.
:class:`FdmBackwardSolver` picks the scheme from a :class:`SchemeDesc` and
optionally runs a few implicit Euler damping steps first to smooth
non-smooth payoffs.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence

import numpy as np
from numpy.typing import NDArray

from ...config import DEFAULT_KRYLOV, KrylovConfig
from ...exceptions import PreconditionError
from .boundary import FdmBoundaryConditionSet
from .operators.base import FdmLinearOpComposite
from .schemes.base import FdmTimeStepper
from .schemes.desc import FdmSchemeType, SchemeDesc, make_scheme
from .schemes.implicit_euler import ImplicitEulerScheme
from .step_conditions import StepCondition

logger = logging.getLogger(__name__)

__all__ = ["FiniteDifferenceModel", "FdmBackwardSolver", "build_time_grid"]

_SNAP_TOL = math.sqrt(np.finfo(float).eps)


def _same_time(t1: float, t2: float) -> bool:
    return math.isclose(t1, t2, rel_tol=1e-12, abs_tol=1e-14)


def _step_plan(
    from_: float, to: float, steps: int, stopping_times: Sequence[float]
) -> Iterator[tuple[float, float, float, bool]]:
    """Yield ``(now, target, step_size, is_split)`` for a rollback.

    Regular steps use the uniform ``dt``; a step containing stopping times is
    split so that every stopping time is hit exactly.
    """
    dt = (from_ - to) / steps
    t = from_
    for _ in range(steps):
        now = t
        nxt = t - dt
        if abs(to - nxt) < _SNAP_TOL:
            nxt = to

        hit = False
        for st in reversed(stopping_times):
            if nxt <= st < now:
                hit = True
                yield now, st, now - st, True
                now = st

        if hit:
            if now > nxt:
                yield now, nxt, now - nxt, True
        else:
            yield now, nxt, dt, False
        t -= dt


class FiniteDifferenceModel:
    """Roll a state back with one scheme, honouring stopping times."""

    def __init__(
        self, evolver: FdmTimeStepper, stopping_times: Sequence[float] = ()
    ) -> None:
        self.evolver = evolver
        self.stopping_times = tuple(sorted(float(t) for t in stopping_times))

    def rollback(
        self,
        a: NDArray[np.floating],
        from_: float,
        to: float,
        steps: int,
        condition: StepCondition | None = None,
    ) -> NDArray[np.floating]:
        if from_ < to:
            raise PreconditionError(
                f"trying to roll back from {from_} to {to}: from must be >= to"
            )
        if steps <= 0:
            raise PreconditionError("steps must be > 0")
        a = np.array(a, dtype=float)

        if (
            condition is not None
            and self.stopping_times
            and _same_time(self.stopping_times[-1], from_)
        ):
            a = condition.apply_to(a, from_)
        if from_ == to:
            return a

        dt = (from_ - to) / steps
        self.evolver.set_step(dt)
        logger.debug("rollback from %g to %g in %d steps", from_, to, steps)

        split = False
        for now, target, step, is_split in _step_plan(
            from_, to, steps, self.stopping_times
        ):
            if is_split:
                self.evolver.set_step(step)
                split = True
            elif split:
                self.evolver.set_step(dt)
                split = False
            a = self.evolver.step(a, now)
            if condition is not None:
                a = condition.apply_to(a, target)
            if is_split:
                logger.debug("split step landed on t=%g", target)

        if split:
            self.evolver.set_step(dt)
        return a


def build_time_grid(
    from_: float,
    to: float,
    steps: int,
    damping_steps: int = 0,
    stopping_times: Sequence[float] = (),
) -> NDArray[np.floating]:
    """Descending array of the times visited by :meth:`FdmBackwardSolver.rollback`."""
    if from_ < to:
        raise PreconditionError("from must be >= to")
    st = tuple(sorted(float(t) for t in stopping_times))
    times = [float(from_)]
    if from_ == to:
        return np.asarray(times, dtype=float)
    damping_to = from_ - (from_ - to) * damping_steps / (steps + damping_steps)
    if damping_steps > 0:
        times.extend(target for _, target, _, _ in _step_plan(from_, damping_to, damping_steps, st))
    times.extend(target for _, target, _, _ in _step_plan(damping_to, to, steps, st))
    return np.asarray(times, dtype=float)


class FdmBackwardSolver:
    """Rollback with a scheme chosen by ``scheme_desc`` plus optional damping.

    With ``damping_steps > 0`` the interval is split proportionally; the first
    ``damping_steps`` steps use implicit Euler. An implicit Euler scheme simply
    uses ``steps + damping_steps`` steps over the whole interval.
    """

    def __init__(
        self,
        op: FdmLinearOpComposite,
        bc_set: FdmBoundaryConditionSet | None,
        condition: StepCondition | None,
        scheme_desc: SchemeDesc,
        krylov: KrylovConfig = DEFAULT_KRYLOV,
    ) -> None:
        self.op = op
        self.bc_set = bc_set if bc_set is not None else FdmBoundaryConditionSet()
        self.condition = condition
        self.scheme_desc = scheme_desc
        self.krylov = krylov

    def _stopping_times(self) -> tuple[float, ...]:
        getter = getattr(self.condition, "stopping_times", None)
        return tuple(getter()) if callable(getter) else ()

    def rollback(
        self,
        a: NDArray[np.floating],
        from_: float,
        to: float,
        steps: int,
        damping_steps: int = 0,
    ) -> NDArray[np.floating]:
        if from_ < to:
            raise PreconditionError(
                f"trying to roll back from {from_} to {to}: from must be >= to"
            )
        if steps <= 0 or damping_steps < 0:
            raise PreconditionError("steps must be > 0 and damping_steps >= 0")

        stopping_times = self._stopping_times()
        damping_to = from_ - (from_ - to) * damping_steps / (steps + damping_steps)

        if self.scheme_desc.type is FdmSchemeType.IMPLICIT_EULER:
            scheme = ImplicitEulerScheme(self.op, self.bc_set, self.krylov)
            return FiniteDifferenceModel(scheme, stopping_times).rollback(
                a, from_, to, steps + damping_steps, self.condition
            )

        if damping_steps > 0 and from_ > to:
            logger.debug(
                "damping with %d implicit Euler steps from %g to %g",
                damping_steps,
                from_,
                damping_to,
            )
            implicit = ImplicitEulerScheme(self.op, self.bc_set, self.krylov)
            a = FiniteDifferenceModel(implicit, stopping_times).rollback(
                a, from_, damping_to, damping_steps, self.condition
            )

        scheme = make_scheme(self.scheme_desc, self.op, self.bc_set, self.krylov)
        return FiniteDifferenceModel(scheme, stopping_times).rollback(
            a, damping_to, to, steps, self.condition
        )
