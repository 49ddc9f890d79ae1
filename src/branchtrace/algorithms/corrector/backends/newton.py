"""Provide a Newton-Raphson correction algorithm with robust linear algebra.

This module provides the core Newton-Raphson implementation used by the
continuation backends. It handles dense and :mod:`scipy.sparse` Jacobians,
falls back to least squares on singular dense systems, and builds
finite-difference Jacobians when none is supplied.
"""

from typing import Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import spsolve

from branchtrace.algorithms.corrector.backends.base import _CorrectorBackend
from branchtrace.algorithms.corrector.types import (JacobianFn, NormFn,
                                                    ResidualFn)
from branchtrace.algorithms.types.exceptions import ConvergenceError
from branchtrace.utils.log_config import logger


class _NewtonBackend(_CorrectorBackend):
    """Implement the Newton-Raphson algorithm with step clamping.

    Notes
    -----
    Updates are optionally clamped to ``max_delta`` in the infinity norm. A
    non-finite residual aborts the solve with
    :class:`~branchtrace.algorithms.types.exceptions.ConvergenceError`.
    """

    def run(
        self,
        x0: np.ndarray,
        residual_fn: ResidualFn,
        *,
        jacobian_fn: JacobianFn | None = None,
        norm_fn: NormFn | None = None,
        tol: float = 1e-10,
        max_attempts: int = 25,
        max_delta: float | None = None,
        fd_step: float = 1e-8,
    ) -> Tuple[np.ndarray, int, float]:
        """Solve nonlinear system using Newton-Raphson method.

        Parameters
        ----------
        x0 : np.ndarray
            Initial guess.
        residual_fn : :class:`~branchtrace.algorithms.corrector.types.ResidualFn`
            Function to compute residual vector R(x).
        jacobian_fn : :class:`~branchtrace.algorithms.corrector.types.JacobianFn` or None, optional
            Function to compute Jacobian dR/dx. Uses finite-difference if None.
        norm_fn : :class:`~branchtrace.algorithms.corrector.types.NormFn` or None, optional
            Function to compute residual norm. Uses L2 norm if None.
        tol : float, default=1e-10
            Convergence tolerance for residual norm.
        max_attempts : int, default=25
            Maximum number of Newton iterations.
        max_delta : float or None, default=None
            Maximum step size (infinity norm) for numerical stability.
        fd_step : float, default=1e-8
            Step size for finite-difference Jacobian.

        Returns
        -------
        x_solution : np.ndarray
            Converged solution vector.
        iterations : int
            Number of iterations performed.
        residual_norm : float
            Final residual norm achieved.

        Raises
        ------
        :class:`~branchtrace.algorithms.types.exceptions.ConvergenceError`
            If Newton method fails to converge within max_attempts.
        """
        if norm_fn is None:
            norm_fn = lambda r: float(np.linalg.norm(r))

        x = np.array(x0, dtype=float, copy=True)

        for k in range(max_attempts):
            r = self._compute_residual(x, residual_fn)
            r_norm = self._compute_norm(r, norm_fn)

            self.on_iteration(k, x, r_norm)

            if not np.isfinite(r_norm):
                self.on_failure(x, iterations=k, residual_norm=r_norm)
                raise ConvergenceError(f"Newton produced a non-finite residual at iter {k}.")

            if r_norm < tol:
                logger.debug("Newton converged after %d iterations (|R|=%.2e)", k, r_norm)
                self.on_accept(x, iterations=k, residual_norm=r_norm)
                return x, k, r_norm

            J = self._compute_jacobian(x, residual_fn, jacobian_fn, fd_step)
            delta = self._solve_delta(J, r)

            if max_delta is not None:
                step_inf = float(np.max(np.abs(delta))) if delta.size else 0.0
                if step_inf > max_delta:
                    delta = delta * (max_delta / step_inf)

            x = x - delta

        r_final = self._compute_residual(x, residual_fn)
        r_final_norm = self._compute_norm(r_final, norm_fn)

        if r_final_norm < tol:
            self.on_accept(x, iterations=max_attempts, residual_norm=r_final_norm)
            return x, max_attempts, r_final_norm

        self.on_failure(x, iterations=max_attempts, residual_norm=r_final_norm)

        raise ConvergenceError(
            f"Newton did not converge after {max_attempts} iterations (|R|={r_final_norm:.2e})."
        ) from None

    def _solve_delta(self, J, r: np.ndarray) -> np.ndarray:
        if sparse.issparse(J):
            delta = np.asarray(spsolve(sparse.csc_matrix(J), r), dtype=float).ravel()
            if not np.all(np.isfinite(delta)):
                raise ConvergenceError("Sparse Jacobian is singular.")
            return delta
        return self._solve_delta_dense(np.asarray(J, dtype=float), r)

    def _solve_delta_dense(self, J: np.ndarray, r: np.ndarray) -> np.ndarray:
        if J.shape[0] == J.shape[1]:
            try:
                return np.linalg.solve(J, r)
            except np.linalg.LinAlgError:
                logger.debug("Singular Jacobian, falling back to least squares")
        delta, *_ = np.linalg.lstsq(J, r, rcond=None)
        return delta
