"""Finite-difference rollback engine for parabolic PDEs.

Operators (``A``), boundary conditions and step conditions are supplied
objects; this subpackage provides the time-stepping schemes, the backward
rollback with stopping times and damping, and the 1-D / 2-D result facades.

The state convention is backward in time:

    dV/dt + A V = 0,   V(T) = payoff

so one scheme step maps ``V(t)`` to ``V(t - dt)``.
"""

from .backward_solver import FdmBackwardSolver, FiniteDifferenceModel, build_time_grid
from .boundary import (
    BoundaryCondition,
    FdmBoundaryConditionSet,
    FdmDirichletBoundary,
    FdmRobinBoundary,
    FdmTimeDepDirichletBoundary,
    RobinBCSide,
    Side,
    dirichlet_side,
    neumann_side,
)
from .inner_value import FdmInnerValueCalculator, FdmLogInnerValue, cell_average
from .layout import FdmLinearOpLayout
from .meshers import (
    Concentrating1dMesher,
    Fdm1dMesher,
    FdmBlackScholesMesher,
    FdmHestonVarianceMesher,
    FdmMesherComposite,
    Predefined1dMesher,
    Uniform1dMesher,
)
from .operators import (
    FdmBlackScholesOp,
    FdmHestonOp,
    FdmLinearOpComposite,
    FirstDerivativeOp,
    NinePointLinearOp,
    SecondDerivativeOp,
    SecondOrderMixedDerivativeOp,
    TripleBandLinearOp,
)
from .schemes import (
    CraigSneydScheme,
    CrankNicolsonScheme,
    DouglasScheme,
    ExplicitEulerScheme,
    FdmSchemeType,
    HundsdorferScheme,
    ImplicitEulerScheme,
    MethodOfLinesScheme,
    ModifiedCraigSneydScheme,
    SchemeDesc,
    TrBDF2Scheme,
    available_schemes,
    make_scheme,
    register_scheme,
    resolve_scheme,
)
from .solvers import Fdm1DimSolver, Fdm2DimSolver, FdmSolverDesc
from .step_conditions import (
    FdmAmericanStepCondition,
    FdmBermudanStepCondition,
    FdmDividendHandler,
    FdmKnockOutCondition,
    FdmSnapshotCondition,
    FdmStepConditionComposite,
    StepCondition,
    join_conditions,
    vanilla_composite,
)

__all__ = [
    # Layout / meshers
    "FdmLinearOpLayout",
    "Fdm1dMesher",
    "Uniform1dMesher",
    "Concentrating1dMesher",
    "Predefined1dMesher",
    "FdmBlackScholesMesher",
    "FdmHestonVarianceMesher",
    "FdmMesherComposite",
    # Operators
    "FdmLinearOpComposite",
    "TripleBandLinearOp",
    "NinePointLinearOp",
    "FirstDerivativeOp",
    "SecondDerivativeOp",
    "SecondOrderMixedDerivativeOp",
    "FdmBlackScholesOp",
    "FdmHestonOp",
    # Boundary conditions
    "Side",
    "BoundaryCondition",
    "FdmDirichletBoundary",
    "FdmTimeDepDirichletBoundary",
    "RobinBCSide",
    "dirichlet_side",
    "neumann_side",
    "FdmRobinBoundary",
    "FdmBoundaryConditionSet",
    # Step conditions
    "StepCondition",
    "FdmSnapshotCondition",
    "FdmAmericanStepCondition",
    "FdmBermudanStepCondition",
    "FdmDividendHandler",
    "FdmKnockOutCondition",
    "FdmStepConditionComposite",
    "join_conditions",
    "vanilla_composite",
    # Inner values
    "FdmInnerValueCalculator",
    "FdmLogInnerValue",
    "cell_average",
    # Schemes / registry
    "ExplicitEulerScheme",
    "ImplicitEulerScheme",
    "CrankNicolsonScheme",
    "DouglasScheme",
    "CraigSneydScheme",
    "ModifiedCraigSneydScheme",
    "HundsdorferScheme",
    "MethodOfLinesScheme",
    "TrBDF2Scheme",
    "FdmSchemeType",
    "SchemeDesc",
    "make_scheme",
    "register_scheme",
    "available_schemes",
    "resolve_scheme",
    # Rollback
    "FiniteDifferenceModel",
    "FdmBackwardSolver",
    "build_time_grid",
    # Facades
    "FdmSolverDesc",
    "Fdm1DimSolver",
    "Fdm2DimSolver",
]
