import numpy as np
import pytest
from scipy.sparse import diags

from fdm_engine.numerics.krylov import GMRES, BiCGStab


def _nonsymmetric_system(n: int, seed: int = 7):
    rng = np.random.default_rng(seed)
    lower = rng.uniform(-1.0, 0.0, size=n - 1)
    upper = rng.uniform(0.0, 0.5, size=n - 1)
    main = 3.0 + rng.uniform(0.0, 1.0, size=n)
    A = diags([lower, main, upper], [-1, 0, 1]).toarray()
    x_true = rng.normal(size=n)
    return A, x_true, A @ x_true


@pytest.mark.parametrize("n", [5, 40, 120])
def test_bicgstab_matches_dense_solve(n: int) -> None:
    A, x_true, b = _nonsymmetric_system(n)
    res = BiCGStab(lambda v: A @ v, max_iter=n, rel_tol=1e-10).solve(b)

    assert res.converged
    assert 0 < res.iterations <= n
    assert res.error < 1e-10
    np.testing.assert_allclose(res.x, np.linalg.solve(A, b), rtol=1e-7, atol=1e-8)


@pytest.mark.parametrize("n", [5, 40, 120])
def test_gmres_matches_dense_solve(n: int) -> None:
    A, x_true, b = _nonsymmetric_system(n, seed=11)
    res = GMRES(lambda v: A @ v, max_iter=n, rel_tol=1e-10).solve(b)

    assert res.converged
    assert res.iterations == len(res.errors) - 1
    assert res.errors[-1] < 1e-10
    np.testing.assert_allclose(res.x, x_true, rtol=1e-7, atol=1e-8)


def test_preconditioner_reduces_iterations() -> None:
    n = 60
    A, _, b = _nonsymmetric_system(n, seed=3)
    d = np.diag(A)

    plain = BiCGStab(lambda v: A @ v, max_iter=n, rel_tol=1e-10).solve(b)
    exact = BiCGStab(
        lambda v: A @ v,
        max_iter=n,
        rel_tol=1e-10,
        preconditioner=lambda v: np.linalg.solve(A, v),
    ).solve(b)
    jacobi = GMRES(
        lambda v: A @ v, max_iter=n, rel_tol=1e-10, preconditioner=lambda v: v / d
    ).solve(b)

    assert exact.converged and plain.converged and jacobi.converged
    assert exact.iterations <= plain.iterations
    np.testing.assert_allclose(jacobi.x, np.linalg.solve(A, b), rtol=1e-7, atol=1e-8)


def test_zero_rhs_returns_zero_immediately() -> None:
    A, _, _ = _nonsymmetric_system(10)
    b = np.zeros(10)

    r1 = BiCGStab(lambda v: A @ v, 10, 1e-8).solve(b, x0=np.ones(10))
    r2 = GMRES(lambda v: A @ v, 10, 1e-8).solve(b, x0=np.ones(10))

    assert r1.converged and r1.iterations == 0
    assert r2.converged and r2.iterations == 0
    np.testing.assert_array_equal(r1.x, 0.0)
    np.testing.assert_array_equal(r2.x, 0.0)


def test_non_convergence_is_reported_not_raised() -> None:
    n = 50
    A, _, b = _nonsymmetric_system(n, seed=5)

    r1 = BiCGStab(lambda v: A @ v, max_iter=1, rel_tol=1e-14).solve(b)
    r2 = GMRES(lambda v: A @ v, max_iter=2, rel_tol=1e-14).solve(b)

    assert not r1.converged
    assert not r2.converged
    assert np.all(np.isfinite(r1.x))
    assert np.all(np.isfinite(r2.x))


def test_singular_operator_is_not_converged() -> None:
    b = np.ones(4)
    r1 = BiCGStab(lambda v: 0.0 * v, max_iter=10, rel_tol=1e-8).solve(b)
    r2 = GMRES(lambda v: 0.0 * v, max_iter=10, rel_tol=1e-8).solve(b)
    assert not r1.converged
    assert not r2.converged


def test_gmres_restart_reaches_tolerance_with_short_cycles() -> None:
    n = 80
    A, x_true, b = _nonsymmetric_system(n, seed=21)
    solver = GMRES(lambda v: A @ v, max_iter=10, rel_tol=1e-10)

    one_cycle = solver.solve(b)
    restarted = solver.solve_with_restart(20, b)

    assert restarted.converged
    assert restarted.errors[-1] <= one_cycle.errors[-1]
    np.testing.assert_allclose(restarted.x, x_true, rtol=1e-7, atol=1e-8)


def test_initial_guess_shape_is_checked() -> None:
    A, _, b = _nonsymmetric_system(6)
    with pytest.raises(ValueError):
        BiCGStab(lambda v: A @ v, 6, 1e-8).solve(b, x0=np.zeros(5))
