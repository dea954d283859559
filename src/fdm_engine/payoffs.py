"""Terminal payoffs used by the inner-value calculators.

Payoffs are vectorized callables of the underlying price ``S``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, overload, runtime_checkable

import numpy as np

from .exceptions import PreconditionError
from .typing import FloatArray

__all__ = [
    "OptionType",
    "ExerciseType",
    "StrikedPayoff",
    "PlainVanillaPayoff",
    "CashOrNothingPayoff",
]


class OptionType(str, Enum):
    """Option contract type."""

    CALL = "call"
    PUT = "put"


class ExerciseType(str, Enum):
    """Exercise style handled by the step conditions."""

    EUROPEAN = "european"
    AMERICAN = "american"
    BERMUDAN = "bermudan"


@runtime_checkable
class StrikedPayoff(Protocol):
    """Vectorizable payoff with a strike (used for breakpoints and meshers)."""

    @property
    def strike(self) -> float: ...

    @overload
    def __call__(self, S: float) -> float: ...
    @overload
    def __call__(self, S: FloatArray) -> FloatArray: ...
    def __call__(self, S: float | FloatArray) -> float | FloatArray: ...


def _scalar_or_array(out) -> float | FloatArray:
    # scalar input returns a Python float
    if np.ndim(out) == 0:
        return float(out)
    return out


@dataclass(frozen=True, slots=True)
class PlainVanillaPayoff:
    """max(S - K, 0) for calls, max(K - S, 0) for puts."""

    option_type: OptionType
    strike: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "option_type", OptionType(self.option_type))
        if self.strike <= 0.0:
            raise PreconditionError("strike must be positive")

    @overload
    def __call__(self, S: float) -> float: ...
    @overload
    def __call__(self, S: FloatArray) -> FloatArray: ...

    def __call__(self, S: float | FloatArray) -> float | FloatArray:
        if self.option_type is OptionType.CALL:
            out = np.maximum(S - self.strike, 0.0)
        else:
            out = np.maximum(self.strike - S, 0.0)
        return _scalar_or_array(out)


@dataclass(frozen=True, slots=True)
class CashOrNothingPayoff:
    """Pays ``cash`` if the option ends in the money, nothing otherwise."""

    option_type: OptionType
    strike: float
    cash: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "option_type", OptionType(self.option_type))
        if self.strike <= 0.0:
            raise PreconditionError("strike must be positive")

    @overload
    def __call__(self, S: float) -> float: ...
    @overload
    def __call__(self, S: FloatArray) -> FloatArray: ...

    def __call__(self, S: float | FloatArray) -> float | FloatArray:
        if self.option_type is OptionType.CALL:
            out = np.where(np.asarray(S) > self.strike, self.cash, 0.0)
        else:
            out = np.where(np.asarray(S) < self.strike, self.cash, 0.0)
        return _scalar_or_array(out)
