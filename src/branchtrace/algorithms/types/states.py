"""State types shared by the continuation and event subsystems."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional, Protocol, Tuple, runtime_checkable

import numpy as np
from scipy import sparse


@runtime_checkable
class SolutionProtocol(Protocol):
    """Minimal capability set required from a solution object.

    The event core never does arithmetic on solutions. Evaluators may read
    scalars and the length, and states may be copied.
    """

    def __len__(self) -> int: ...

    def __getitem__(self, index): ...

    def copy(self): ...


@dataclass(frozen=True)
class ContinuationState:
    """Immutable snapshot of one accepted (or bisection) point on a branch.

    Attributes
    ----------
    u : SolutionProtocol
        Solution vector. Opaque to the event subsystem.
    p : float
        Parameter value.
    step : int
        Index of the accepted continuation step that produced the state.
    tangent : np.ndarray or None
        Unit direction in ``(u, p)`` space, last component along ``p``.
    s : float
        Arclength coordinate along the branch.
    residual_norm : float
        Corrector residual norm at this state.
    """

    u: Any
    p: float
    step: int
    tangent: Optional[np.ndarray] = None
    s: float = 0.0
    residual_norm: float = float("nan")

    @property
    def dp(self) -> float:
        """Parameter component of the tangent (``nan`` when unknown)."""
        if self.tangent is None:
            return float("nan")
        return float(self.tangent[-1])

    def copy(self) -> "ContinuationState":
        tangent = None if self.tangent is None else np.array(self.tangent, copy=True)
        return ContinuationState(
            u=self.u.copy(),
            p=self.p,
            step=self.step,
            tangent=tangent,
            s=self.s,
            residual_norm=self.residual_norm,
        )

    def __len__(self) -> int:
        return len(self.u)


@dataclass(frozen=True)
class ContinuationContext:
    """Read-only view of the running problem handed to event evaluators.

    Attributes
    ----------
    residual_fn : callable
        ``F(u, p)``.
    jacobian_fn : callable or None
        ``F_u(u, p)``, dense or sparse. Finite differences are used when None.
    target : tuple of float
        Parameter domain ``(p_min, p_max)``.
    stepper : {"natural", "secant"}
        Stepping strategy of the run.
    fd_step : float
        Relative finite-difference step.
    """

    residual_fn: Callable[[Any, float], np.ndarray]
    jacobian_fn: Optional[Callable[[Any, float], Any]] = None
    target: Tuple[float, float] = (-np.inf, np.inf)
    stepper: Literal["natural", "secant"] = "natural"
    fd_step: float = 1e-8

    def residual(self, u, p: float) -> np.ndarray:
        return np.asarray(self.residual_fn(u, p), dtype=float)

    def jacobian(self, u, p: float):
        """Return ``F_u`` at ``(u, p)``."""
        if self.jacobian_fn is not None:
            return self.jacobian_fn(u, p)
        u = np.asarray(u, dtype=float)
        r0 = self.residual(u, p)
        J = np.empty((r0.size, u.size), dtype=float)
        for j in range(u.size):
            h = self.fd_step * max(1.0, abs(u[j]))
            u_pert = u.copy()
            u_pert[j] += h
            J[:, j] = (self.residual(u_pert, p) - r0) / h
        return J

    def parameter_derivative(self, u, p: float) -> np.ndarray:
        """Return ``F_p`` at ``(u, p)`` by forward differences."""
        h = self.fd_step * max(1.0, abs(p))
        return (self.residual(u, p + h) - self.residual(u, p)) / h

    def dense_jacobian(self, u, p: float) -> np.ndarray:
        J = self.jacobian(u, p)
        if sparse.issparse(J):
            return J.toarray()
        return np.asarray(J, dtype=float)


