"""Scheme descriptions, named presets and a string registry.

A :class:`SchemeDesc` is a small immutable record (scheme type plus its two
parameters). Users can pass either a description or a registered name:

    desc = resolve_scheme("modified_craig_sneyd")
    scheme = make_scheme(desc, op, bc_set)
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from ....config import DEFAULT_KRYLOV, KrylovConfig
from ....exceptions import ConfigurationError, PreconditionError
from ..boundary import FdmBoundaryConditionSet
from ..operators.base import FdmLinearOpComposite
from .base import FdmScheme
from .craig_sneyd import CraigSneydScheme, ModifiedCraigSneydScheme
from .crank_nicolson import CrankNicolsonScheme
from .douglas import DouglasScheme
from .explicit_euler import ExplicitEulerScheme
from .hundsdorfer import HundsdorferScheme
from .implicit_euler import ImplicitEulerScheme
from .method_of_lines import MethodOfLinesScheme
from .trbdf2 import TRBDF2_ALPHA, TrBDF2Scheme

__all__ = [
    "FdmSchemeType",
    "SchemeDesc",
    "make_scheme",
    "register_scheme",
    "available_schemes",
    "resolve_scheme",
]


class FdmSchemeType(str, Enum):
    HUNDSDORFER = "hundsdorfer"
    DOUGLAS = "douglas"
    CRAIG_SNEYD = "craig_sneyd"
    MODIFIED_CRAIG_SNEYD = "modified_craig_sneyd"
    IMPLICIT_EULER = "implicit_euler"
    EXPLICIT_EULER = "explicit_euler"
    METHOD_OF_LINES = "method_of_lines"
    TRBDF2 = "trbdf2"
    CRANK_NICOLSON = "crank_nicolson"


@dataclass(frozen=True, slots=True)
class SchemeDesc:
    """Scheme type with its parameters.

    For most schemes ``theta`` / ``mu`` are the usual weights; the method of
    lines stores ``(eps, rel_init_step)`` and TR-BDF2 stores ``alpha`` in
    ``theta`` and the relative tolerance of its Krylov solves in ``mu``
    (``0`` keeps the tolerance passed to :func:`make_scheme`).
    """

    type: FdmSchemeType
    theta: float
    mu: float = 0.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "type", FdmSchemeType(self.type))
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown scheme type '{self.type}'. "
                f"Available: {', '.join(s.value for s in FdmSchemeType)}"
            ) from e
        if not (math.isfinite(self.theta) and math.isfinite(self.mu)):
            raise PreconditionError("theta and mu must be finite")

    @property
    def name(self) -> str:
        return self.type.value

    # --- presets ---

    @classmethod
    def douglas(cls) -> SchemeDesc:
        return cls(FdmSchemeType.DOUGLAS, 0.5, 0.0)

    @classmethod
    def crank_nicolson(cls) -> SchemeDesc:
        return cls(FdmSchemeType.CRANK_NICOLSON, 0.5, 0.0)

    @classmethod
    def implicit_euler(cls) -> SchemeDesc:
        return cls(FdmSchemeType.IMPLICIT_EULER, 0.0, 0.0)

    @classmethod
    def explicit_euler(cls) -> SchemeDesc:
        return cls(FdmSchemeType.EXPLICIT_EULER, 0.0, 0.0)

    @classmethod
    def craig_sneyd(cls) -> SchemeDesc:
        return cls(FdmSchemeType.CRAIG_SNEYD, 0.5, 0.5)

    @classmethod
    def modified_craig_sneyd(cls) -> SchemeDesc:
        return cls(FdmSchemeType.MODIFIED_CRAIG_SNEYD, 1.0 / 3.0, 1.0 / 3.0)

    @classmethod
    def hundsdorfer(cls) -> SchemeDesc:
        return cls(FdmSchemeType.HUNDSDORFER, 0.5 + math.sqrt(3.0) / 6.0, 0.5)

    @classmethod
    def modified_hundsdorfer(cls) -> SchemeDesc:
        return cls(FdmSchemeType.HUNDSDORFER, 1.0 - math.sqrt(2.0) / 2.0, 0.5)

    @classmethod
    def method_of_lines(cls, eps: float = 1e-3, rel_init_step: float = 1e-2) -> SchemeDesc:
        return cls(FdmSchemeType.METHOD_OF_LINES, eps, rel_init_step)

    @classmethod
    def trbdf2(cls) -> SchemeDesc:
        return cls(FdmSchemeType.TRBDF2, TRBDF2_ALPHA, 1e-8)


def make_scheme(
    desc: SchemeDesc,
    op: FdmLinearOpComposite,
    bc_set: FdmBoundaryConditionSet | None = None,
    krylov: KrylovConfig = DEFAULT_KRYLOV,
) -> FdmScheme:
    """Instantiate the scheme described by ``desc`` on ``op``."""
    bc_set = bc_set if bc_set is not None else FdmBoundaryConditionSet()
    match desc.type:
        case FdmSchemeType.HUNDSDORFER:
            return HundsdorferScheme(desc.theta, desc.mu, op, bc_set)
        case FdmSchemeType.DOUGLAS:
            return DouglasScheme(desc.theta, op, bc_set)
        case FdmSchemeType.CRAIG_SNEYD:
            return CraigSneydScheme(desc.theta, desc.mu, op, bc_set)
        case FdmSchemeType.MODIFIED_CRAIG_SNEYD:
            return ModifiedCraigSneydScheme(desc.theta, desc.mu, op, bc_set)
        case FdmSchemeType.IMPLICIT_EULER:
            return ImplicitEulerScheme(op, bc_set, krylov)
        case FdmSchemeType.EXPLICIT_EULER:
            return ExplicitEulerScheme(op, bc_set)
        case FdmSchemeType.METHOD_OF_LINES:
            return MethodOfLinesScheme(desc.theta, desc.mu, op, bc_set)
        case FdmSchemeType.TRBDF2:
            trapezoidal = CraigSneydScheme(0.5, 0.5, op, bc_set)
            if desc.mu > 0.0:
                krylov = replace(krylov, rel_tol=desc.mu)
            return TrBDF2Scheme(desc.theta, op, trapezoidal, bc_set, krylov)
        case FdmSchemeType.CRANK_NICOLSON:
            return CrankNicolsonScheme(desc.theta, op, bc_set, krylov)
    raise ConfigurationError(f"unknown scheme type: {desc.type!r}")


# -----------------------------
# Registry
# -----------------------------

SchemeFactory = Callable[[], SchemeDesc]
_SCHEME_REGISTRY: dict[str, SchemeFactory] = {}


def register_scheme(
    name: str,
    factory: SchemeFactory,
    *,
    overwrite: bool = False,
    aliases: tuple[str, ...] = (),
) -> None:
    """Register a scheme description factory under one or more names.

    Parameters
    ----------
    name:
        Primary key users pass as ``scheme=...``.
    factory:
        Callable returning a :class:`SchemeDesc`.
    overwrite:
        If False (default), raise if ``name`` or any alias already exists.
    aliases:
        Additional strings that should resolve to the same factory.
    """
    keys = (name, *aliases)
    for k in keys:
        kk = str(k).lower().strip()
        if not kk:
            raise ValueError("Scheme name/alias cannot be empty")
        if (not overwrite) and (kk in _SCHEME_REGISTRY):
            raise KeyError(f"Scheme '{kk}' is already registered")
        _SCHEME_REGISTRY[kk] = factory


def available_schemes() -> list[str]:
    """Return the currently registered scheme keys (sorted)."""
    return sorted(_SCHEME_REGISTRY.keys())


def resolve_scheme(scheme: str | SchemeDesc | None) -> SchemeDesc:
    """Turn a user's scheme choice into a :class:`SchemeDesc`.

    ``None`` defaults to Douglas; descriptions are returned unchanged.
    """
    if scheme is None:
        scheme = "douglas"
    if isinstance(scheme, SchemeDesc):
        return scheme

    key = str(scheme).lower().strip()
    try:
        factory = _SCHEME_REGISTRY[key]
    except KeyError as e:
        raise ConfigurationError(
            f"Unknown scheme '{scheme}'. Available: {', '.join(available_schemes())}"
        ) from e
    return factory()


def _register_builtin_schemes() -> None:
    register_scheme("douglas", SchemeDesc.douglas, overwrite=True)
    register_scheme(
        "crank_nicolson",
        SchemeDesc.crank_nicolson,
        overwrite=True,
        aliases=("cn", "crank-nicolson"),
    )
    register_scheme(
        "implicit_euler",
        SchemeDesc.implicit_euler,
        overwrite=True,
        aliases=("implicit", "backward-euler", "be"),
    )
    register_scheme(
        "explicit_euler",
        SchemeDesc.explicit_euler,
        overwrite=True,
        aliases=("explicit", "forward-euler", "fe"),
    )
    register_scheme(
        "craig_sneyd", SchemeDesc.craig_sneyd, overwrite=True, aliases=("cs",)
    )
    register_scheme(
        "modified_craig_sneyd",
        SchemeDesc.modified_craig_sneyd,
        overwrite=True,
        aliases=("mcs",),
    )
    register_scheme(
        "hundsdorfer", SchemeDesc.hundsdorfer, overwrite=True, aliases=("hv",)
    )
    register_scheme(
        "modified_hundsdorfer", SchemeDesc.modified_hundsdorfer, overwrite=True
    )
    register_scheme(
        "method_of_lines", SchemeDesc.method_of_lines, overwrite=True, aliases=("mol",)
    )
    register_scheme(
        "trbdf2", SchemeDesc.trbdf2, overwrite=True, aliases=("tr-bdf2", "tr_bdf2")
    )


_register_builtin_schemes()
