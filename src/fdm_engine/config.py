from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .exceptions import ConfigurationError


class SolverType(str, Enum):
    """Krylov solver used by implicit steps on multi-direction operators."""

    BICGSTAB = "bicgstab"
    GMRES = "gmres"


@dataclass(frozen=True, slots=True)
class KrylovConfig:
    """Settings for the iterative linear solves of implicit schemes.

    ``max_iter=None`` means the size-derived bound: ``max(10, n)`` for
    BiCGStab and ``max(10, n // 10)`` for GMRES.
    """

    solver: SolverType = SolverType.BICGSTAB
    rel_tol: float = 1e-8
    max_iter: int | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "solver", SolverType(self.solver))
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown solver type '{self.solver}'. "
                f"Available: {', '.join(s.value for s in SolverType)}"
            ) from e
        if self.rel_tol <= 0:
            raise ValueError("rel_tol must be > 0")
        if self.max_iter is not None and self.max_iter <= 0:
            raise ValueError("max_iter must be > 0")

    def iteration_bound(self, n: int) -> int:
        if self.max_iter is not None:
            return int(self.max_iter)
        if self.solver == SolverType.GMRES:
            return max(10, int(n) // 10)
        return max(10, int(n))


DEFAULT_KRYLOV = KrylovConfig()
