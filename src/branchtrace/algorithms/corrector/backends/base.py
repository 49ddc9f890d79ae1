"""Abstract base class for corrector backends."""

from abc import abstractmethod
from typing import Callable

import numpy as np

from branchtrace.algorithms.corrector.types import (JacobianFn, NormFn,
                                                    ResidualFn)
from branchtrace.algorithms.types.core import _BranchTraceBaseBackend


class _CorrectorBackend(_BranchTraceBaseBackend):
    """Shared helpers for iterative correctors working on flat vectors."""

    @abstractmethod
    def run(
        self,
        x0: np.ndarray,
        residual_fn: ResidualFn,
        *,
        jacobian_fn: JacobianFn | None = None,
        norm_fn: NormFn | None = None,
        **kwargs,
    ) -> tuple[np.ndarray, int, float]:
        """Solve ``residual_fn(x) = 0`` starting from ``x0``."""

    def _compute_residual(self, x: np.ndarray, residual_fn: ResidualFn) -> np.ndarray:
        return np.asarray(residual_fn(x), dtype=float)

    def _compute_norm(self, residual: np.ndarray, norm_fn: Callable[[np.ndarray], float]) -> float:
        return float(norm_fn(residual))

    def _compute_jacobian(
        self,
        x: np.ndarray,
        residual_fn: ResidualFn,
        jacobian_fn: JacobianFn | None,
        fd_step: float,
    ):
        if jacobian_fn is not None:
            return jacobian_fn(x)

        # Forward differences, one column per unknown
        r0 = self._compute_residual(x, residual_fn)
        J = np.empty((r0.size, x.size), dtype=float)
        for j in range(x.size):
            h = fd_step * max(1.0, abs(x[j]))
            x_pert = x.copy()
            x_pert[j] += h
            J[:, j] = (self._compute_residual(x_pert, residual_fn) - r0) / h
        return J
