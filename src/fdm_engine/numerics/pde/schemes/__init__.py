from .base import FdmScheme, FdmTimeStepper, krylov_solve
from .craig_sneyd import CraigSneydScheme, ModifiedCraigSneydScheme
from .crank_nicolson import CrankNicolsonScheme
from .desc import (
    FdmSchemeType,
    SchemeDesc,
    available_schemes,
    make_scheme,
    register_scheme,
    resolve_scheme,
)
from .douglas import DouglasScheme
from .explicit_euler import ExplicitEulerScheme
from .hundsdorfer import HundsdorferScheme
from .implicit_euler import ImplicitEulerScheme
from .method_of_lines import MethodOfLinesScheme
from .trbdf2 import TRBDF2_ALPHA, TrBDF2Scheme

__all__ = [
    "FdmScheme",
    "FdmTimeStepper",
    "krylov_solve",
    "ExplicitEulerScheme",
    "ImplicitEulerScheme",
    "CrankNicolsonScheme",
    "DouglasScheme",
    "CraigSneydScheme",
    "ModifiedCraigSneydScheme",
    "HundsdorferScheme",
    "MethodOfLinesScheme",
    "TrBDF2Scheme",
    "TRBDF2_ALPHA",
    "FdmSchemeType",
    "SchemeDesc",
    "make_scheme",
    "register_scheme",
    "available_schemes",
    "resolve_scheme",
]
