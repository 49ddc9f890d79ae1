"""Runtime options for correction algorithms."""

from dataclasses import dataclass
from typing import Optional

from branchtrace.algorithms.types.options import _BranchTraceBaseOptions


@dataclass(frozen=True)
class CorrectionOptions(_BranchTraceBaseOptions):
    """Runtime options for the Newton corrector.

    Parameters
    ----------
    tol : float, default=1e-10
        Convergence tolerance on the residual norm.
    max_attempts : int, default=25
        Maximum number of Newton iterations.
    max_delta : float or None, default=None
        Maximum infinity norm of a single Newton update. ``None`` disables
        clamping.
    fd_step : float, default=1e-8
        Relative step used for finite-difference Jacobians.

    Examples
    --------
    >>> options = CorrectionOptions()
    >>> tight = options.merge(tol=1e-14)
    """

    tol: float = 1e-10
    max_attempts: int = 25
    max_delta: Optional[float] = None
    fd_step: float = 1e-8

    def _validate(self) -> None:
        """Validate the options."""
        if self.tol <= 0:
            raise ValueError("Tolerance must be positive")
        if self.max_attempts <= 0:
            raise ValueError("Max attempts must be positive")
        if self.max_delta is not None and self.max_delta <= 0:
            raise ValueError("Max delta must be positive")
        if self.fd_step <= 0:
            raise ValueError("Finite-difference step must be positive")
