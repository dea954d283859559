import numpy as np
import pytest

from fdm_engine.exceptions import PreconditionError
from fdm_engine.numerics.pde import (
    FdmBlackScholesOp,
    FdmBoundaryConditionSet,
    FdmDirichletBoundary,
    FdmHestonOp,
    FdmMesherComposite,
    FdmRobinBoundary,
    FdmTimeDepDirichletBoundary,
    SchemeDesc,
    Side,
    Uniform1dMesher,
    dirichlet_side,
    make_scheme,
    neumann_side,
)

ALL_SCHEMES = [
    SchemeDesc.douglas(),
    SchemeDesc.crank_nicolson(),
    SchemeDesc.implicit_euler(),
    SchemeDesc.explicit_euler(),
    SchemeDesc.craig_sneyd(),
    SchemeDesc.modified_craig_sneyd(),
    SchemeDesc.hundsdorfer(),
    SchemeDesc.modified_hundsdorfer(),
    SchemeDesc.method_of_lines(),
    SchemeDesc.trbdf2(),
]


@pytest.fixture
def log_mesher() -> FdmMesherComposite:
    return FdmMesherComposite(Uniform1dMesher(np.log(20.0), np.log(80.0), 40))


def test_dirichlet_pins_values_without_touching_input(mesher_2d) -> None:
    bc = FdmDirichletBoundary(mesher_2d, 3.0, 1, Side.UPPER)
    a = np.zeros(mesher_2d.size())

    out = bc.apply_after_solving(a)
    upper = mesher_2d.layout.coordinate(1) == mesher_2d.layout.dim[1] - 1
    np.testing.assert_array_equal(out[upper], 3.0)
    np.testing.assert_array_equal(out[~upper], 0.0)
    np.testing.assert_array_equal(a, 0.0)
    assert bc.x_extreme == pytest.approx(2.0)


def test_time_dependent_dirichlet_needs_set_time(mesher_1d) -> None:
    bc = FdmTimeDepDirichletBoundary(mesher_1d, lambda t: 1.0 + t, 0, "lower")
    with pytest.raises(PreconditionError):
        bc.apply_after_applying(np.zeros(mesher_1d.size()))

    bc.set_time(0.25)
    out = bc.apply_after_applying(np.zeros(mesher_1d.size()))
    assert out[0] == pytest.approx(1.25)
    assert out[-1] == 0.0


def test_robin_elimination_coefficients(mesher_1d) -> None:
    dirichlet = FdmRobinBoundary(mesher_1d, dirichlet_side(lambda t: 2.0), 0, Side.LOWER)
    assert dirichlet.elimination(0.0) == pytest.approx((0.0, 0.0, 2.0))

    # zero slope on a uniform mesh: u0 = (4 u1 - u2) / 3
    neumann = FdmRobinBoundary(mesher_1d, neumann_side(lambda t: 0.0), 0, Side.UPPER)
    p1, p2, q = neumann.elimination(0.0)
    assert (p1, p2, q) == pytest.approx((4.0 / 3.0, -1.0 / 3.0, 0.0))


def test_robin_recovers_linear_edge_values(mesher_1d) -> None:
    x = mesher_1d.locations(0)
    bc_set = FdmBoundaryConditionSet(
        [
            FdmRobinBoundary(mesher_1d, neumann_side(lambda t: 2.0), 0, Side.LOWER),
            FdmRobinBoundary(mesher_1d, neumann_side(lambda t: 2.0), 0, Side.UPPER),
        ]
    )
    bc_set.set_time(0.0)
    a = 2.0 * x + 1.0
    garbled = a.copy()
    garbled[[0, -1]] = 100.0

    np.testing.assert_allclose(bc_set.apply_after_solving(garbled), a, atol=1e-12)
    assert len(bc_set) == 2


def test_robin_needs_enough_points() -> None:
    small = FdmMesherComposite(Uniform1dMesher(0.0, 1.0, 3))
    with pytest.raises(PreconditionError):
        FdmRobinBoundary(small, neumann_side(lambda t: 0.0), 0, Side.LOWER)


def test_singular_robin_side_is_rejected(mesher_1d) -> None:
    from fdm_engine.numerics.pde import RobinBCSide

    spec = RobinBCSide(alpha=lambda t: 0.0, beta=lambda t: 0.0, gamma=lambda t: 1.0)
    bc = FdmRobinBoundary(mesher_1d, spec, 0, Side.LOWER)
    bc.set_time(0.0)
    with pytest.raises(PreconditionError):
        bc.apply_after_solving(np.zeros(mesher_1d.size()))


@pytest.mark.parametrize("desc", ALL_SCHEMES, ids=lambda d: d.name + f"-{d.theta:.3f}")
def test_boundaries_hold_after_every_step(log_mesher, desc) -> None:
    lower = FdmDirichletBoundary(log_mesher, 17.5, 0, Side.LOWER)
    upper = FdmTimeDepDirichletBoundary(log_mesher, lambda t: 0.1 * t, 0, Side.UPPER)
    bc_set = FdmBoundaryConditionSet([lower, upper])
    op = FdmBlackScholesOp(log_mesher, 0.05, 0.0, 0.3)

    scheme = make_scheme(desc, op, bc_set)
    scheme.set_step(0.01)
    a = np.maximum(40.0 - np.exp(log_mesher.locations(0)), 0.0)

    t = 0.1
    for _ in range(10):
        a = scheme.step(a, t)
        t -= 0.01
        assert a[0] == pytest.approx(17.5)
        assert a[-1] == pytest.approx(0.1 * max(0.0, t), abs=1e-12)
        assert np.all(np.isfinite(a))


@pytest.mark.parametrize(
    "desc",
    [SchemeDesc.douglas(), SchemeDesc.hundsdorfer(), SchemeDesc.modified_craig_sneyd()],
    ids=lambda d: d.name,
)
def test_boundaries_hold_for_two_dimensional_schemes(desc) -> None:
    mesher = FdmMesherComposite(
        Uniform1dMesher(np.log(50.0), np.log(200.0), 15),
        Uniform1dMesher(0.0, 0.6, 10),
    )
    v_upper = FdmDirichletBoundary(mesher, 0.0, 1, Side.UPPER)
    op = FdmHestonOp(mesher, 0.02, 0.0, 1.0, 0.04, 0.3, -0.5)
    scheme = make_scheme(desc, op, FdmBoundaryConditionSet([v_upper]))
    scheme.set_step(0.05)

    a = np.maximum(np.exp(mesher.locations(0)) - 100.0, 0.0)
    for i in range(4):
        a = scheme.step(a, 0.2 - 0.05 * i)
        np.testing.assert_array_equal(a[v_upper.indices], 0.0)
