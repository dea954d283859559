import math

import numpy as np
import pytest

from fdm_engine.exceptions import PreconditionError
from fdm_engine.numerics.pde import (
    Concentrating1dMesher,
    FdmBlackScholesMesher,
    FdmHestonVarianceMesher,
    FdmLinearOpLayout,
    FdmMesherComposite,
    Predefined1dMesher,
    Uniform1dMesher,
)

# --- layout -----------------------------------------------------------------


@pytest.mark.parametrize("dim", [(7,), (4, 3), (3, 2, 5)])
def test_layout_index_coordinates_bijection(dim) -> None:
    layout = FdmLinearOpLayout(dim)
    assert layout.size() == int(np.prod(dim))

    seen = set()
    for idx in range(layout.size()):
        coords = layout.coordinates(idx)
        assert layout.index(coords) == idx
        seen.add(coords)
    assert len(seen) == layout.size()


def test_first_dimension_varies_fastest() -> None:
    layout = FdmLinearOpLayout((4, 3))
    assert layout.spacing == (1, 4)
    assert layout.index((1, 0)) == 1
    assert layout.index((0, 1)) == 4
    assert layout.coordinates(5) == (1, 1)

    grid = layout.coordinate_grid()
    np.testing.assert_array_equal(grid[0], np.tile(np.arange(4), 3))
    np.testing.assert_array_equal(grid[1], np.repeat(np.arange(3), 4))


def test_neighbourhood_reflects_at_the_edges() -> None:
    layout = FdmLinearOpLayout((5,))
    np.testing.assert_array_equal(layout.neighbourhood(0, -1), [1, 0, 1, 2, 3])
    np.testing.assert_array_equal(layout.neighbourhood(0, 1), [1, 2, 3, 4, 3])
    np.testing.assert_array_equal(layout.neighbourhood(0, 2), [2, 3, 4, 3, 2])


def test_neighbourhood2_shifts_two_directions() -> None:
    layout = FdmLinearOpLayout((3, 3))
    centre = layout.index((1, 1))
    nb = layout.neighbourhood2(0, 1, 1, -1)
    assert nb[centre] == layout.index((2, 0))

    corner = layout.index((0, 0))
    assert layout.neighbourhood2(0, -1, 1, -1)[corner] == layout.index((1, 1))


def test_layout_rejects_bad_input() -> None:
    with pytest.raises(PreconditionError):
        FdmLinearOpLayout(())
    with pytest.raises(PreconditionError):
        FdmLinearOpLayout((3, 0))
    layout = FdmLinearOpLayout((3, 2))
    with pytest.raises(PreconditionError):
        layout.index((3, 0))
    with pytest.raises(PreconditionError):
        layout.coordinates(6)
    with pytest.raises(PreconditionError):
        layout.neighbourhood(2, 1)


def test_layout_equality_and_hash() -> None:
    assert FdmLinearOpLayout((3, 2)) == FdmLinearOpLayout([3, 2])
    assert hash(FdmLinearOpLayout((3, 2))) == hash(FdmLinearOpLayout((3, 2)))
    assert FdmLinearOpLayout((3, 2)) != FdmLinearOpLayout((2, 3))


# --- 1d meshers ---------------------------------------------------------------


def test_uniform_mesher_spacings() -> None:
    m = Uniform1dMesher(0.0, 1.0, 5)
    np.testing.assert_allclose(m.locations, [0.0, 0.25, 0.5, 0.75, 1.0])
    np.testing.assert_allclose(m.dplus[:-1], 0.25)
    np.testing.assert_allclose(m.dminus[1:], 0.25)
    assert math.isnan(m.dplus[-1])
    assert math.isnan(m.dminus[0])
    assert m.size() == 5


def test_mesher_locations_are_read_only() -> None:
    m = Predefined1dMesher([0.0, 1.0, 3.0])
    with pytest.raises(ValueError):
        m.locations[0] = 5.0


@pytest.mark.parametrize("locs", [[0.0], [0.0, 0.0, 1.0], [1.0, 0.5]])
def test_predefined_mesher_rejects_non_increasing(locs) -> None:
    with pytest.raises(PreconditionError):
        Predefined1dMesher(locs)


def test_concentrating_mesher_is_denser_near_c_point() -> None:
    m = Concentrating1dMesher(0.0, 10.0, 41, c_point=3.0, density=0.05)
    x = m.locations
    assert x[0] == 0.0 and x[-1] == 10.0
    assert np.all(np.diff(x) > 0.0)

    j = int(np.argmin(np.abs(x - 3.0)))
    assert m.dplus[j] < m.dplus[-2]
    assert m.dplus[j] < m.dplus[0]


def test_concentrating_mesher_requires_c_point_on_grid() -> None:
    m = Concentrating1dMesher(0.0, 1.0, 20, c_point=0.37, density=0.1, require_c_point=True)
    assert np.any(m.locations == 0.37)

    with pytest.raises(PreconditionError):
        Concentrating1dMesher(0.0, 1.0, 20, c_point=2.0, density=0.1)
    with pytest.raises(PreconditionError):
        Concentrating1dMesher(0.0, 1.0, 20, c_point=0.5)


def test_black_scholes_mesher_contains_log_spot_and_covers_strike() -> None:
    m = FdmBlackScholesMesher(101, 36.0, 0.06, 0.0, 0.2, 1.0, strike=40.0)
    x = m.locations
    assert np.any(np.isclose(x, math.log(36.0), rtol=0.0, atol=1e-14))
    assert x[0] < math.log(36.0) < math.log(40.0) < x[-1]
    # about 1.5 * 3.72 standard deviations on each side
    assert x[-1] - math.log(40.0) > 1.0
    assert math.log(36.0) - x[0] > 1.0


def test_heston_variance_mesher_contains_v0() -> None:
    m = FdmHestonVarianceMesher(30, 0.04, 1.5, 0.04, 0.3, 1.0)
    v = m.locations
    assert v.size == 30
    assert np.all(np.diff(v) > 0.0)
    assert v[0] >= 0.0
    assert np.any(v == 0.04)
    assert v[-1] > 0.08


def test_heston_variance_mesher_keeps_v0_above_the_quantiles() -> None:
    # fast mean reversion pulls the law far below v0 within the first horizon
    m = FdmHestonVarianceMesher(20, 1.0, 5.0, 0.04, 0.1, 5.0)
    v = m.locations
    assert v.size == 20
    assert np.all(np.diff(v) > 0.0)
    assert v[-1] == 1.0
    assert v[-2] < 0.5


def test_composite_flat_views(mesher_2d) -> None:
    layout = mesher_2d.layout
    assert layout.dim == (6, 5)
    assert mesher_2d.size() == 30
    assert mesher_2d.ndim == 2

    idx = layout.index((2, 3))
    assert mesher_2d.locations(0)[idx] == pytest.approx(0.3)
    assert mesher_2d.locations(1)[idx] == pytest.approx(1.5)
    assert mesher_2d.dplus(0)[idx] == pytest.approx(0.15)
    assert mesher_2d.dminus(0)[idx] == pytest.approx(0.2)
    assert mesher_2d.get_1d_mesher(1).size() == 5


def test_composite_needs_a_mesher() -> None:
    with pytest.raises(PreconditionError):
        FdmMesherComposite()
