from .base import FdmLinearOp, FdmLinearOpComposite
from .black_scholes import FdmBlackScholesOp
from .derivatives import (
    FirstDerivativeOp,
    SecondDerivativeOp,
    SecondOrderMixedDerivativeOp,
)
from .heston import FdmHestonOp
from .nine_point import NinePointLinearOp
from .triple_band import TripleBandLinearOp

__all__ = [
    "FdmLinearOp",
    "FdmLinearOpComposite",
    "TripleBandLinearOp",
    "NinePointLinearOp",
    "FirstDerivativeOp",
    "SecondDerivativeOp",
    "SecondOrderMixedDerivativeOp",
    "FdmBlackScholesOp",
    "FdmHestonOp",
]
