import numpy as np
import pytest
from scipy import sparse

from branchtrace.algorithms.corrector import CorrectionOptions, _NewtonBackend
from branchtrace.algorithms.types.exceptions import ConvergenceError


def test_newton_scalar_root_finite_difference():
    # x^2 - 2 = 0 from x0 = 1 -> sqrt(2)
    backend = _NewtonBackend()
    x, iters, r_norm = backend.run(np.array([1.0]), lambda x: x**2 - 2.0, tol=1e-12)

    assert abs(x[0] - np.sqrt(2.0)) < 1e-10
    assert r_norm < 1e-12
    assert iters > 0


def test_newton_analytic_jacobian_two_dimensional():
    # Intersection of the unit circle with the line x = y
    def residual(x):
        return np.array([x[0] ** 2 + x[1] ** 2 - 1.0, x[0] - x[1]])

    def jacobian(x):
        return np.array([[2.0 * x[0], 2.0 * x[1]], [1.0, -1.0]])

    backend = _NewtonBackend()
    x, _, _ = backend.run(np.array([1.0, 0.5]), residual, jacobian_fn=jacobian, tol=1e-12)

    assert np.allclose(x, [np.sqrt(0.5), np.sqrt(0.5)], atol=1e-10)


def test_newton_sparse_jacobian():
    n = 20
    A = sparse.diags([2.0 * np.ones(n), -np.ones(n - 1), -np.ones(n - 1)], [0, -1, 1], format="csr")
    b = np.ones(n)

    backend = _NewtonBackend()
    x, iters, _ = backend.run(np.zeros(n), lambda x: A @ x - b, jacobian_fn=lambda x: A, tol=1e-10)

    assert np.allclose(A @ x, b, atol=1e-10)
    assert iters == 1


def test_newton_max_delta_clamps_updates():
    backend = _NewtonBackend()
    seen = []
    backend.on_iteration = lambda k, x, r_norm: seen.append(x.copy())

    backend.run(np.array([0.0]), lambda x: x - 1.0, tol=1e-12, max_delta=0.25, max_attempts=10)

    steps = np.abs(np.diff(np.concatenate(seen)))
    assert np.all(steps <= 0.25 + 1e-14)


def test_newton_raises_convergence_error():
    # x^2 + 1 has no real root
    backend = _NewtonBackend()
    with pytest.raises(ConvergenceError):
        backend.run(np.array([0.5]), lambda x: x**2 + 1.0, max_attempts=5)


def test_correction_options_validation():
    with pytest.raises(ValueError):
        CorrectionOptions(tol=0.0)
    with pytest.raises(ValueError):
        CorrectionOptions(max_attempts=0)

    opts = CorrectionOptions().merge(tol=1e-12)
    assert opts.tol == 1e-12
    with pytest.raises(ValueError):
        opts.merge(max_delta=-1.0)
