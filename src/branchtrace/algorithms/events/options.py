"""Runtime options for event detection and localisation."""

from dataclasses import dataclass

from branchtrace.algorithms.types.options import _BranchTraceBaseOptions


@dataclass(frozen=True)
class EventOptions(_BranchTraceBaseOptions):
    """Runtime options controlling event detection along a branch.

    Parameters
    ----------
    detect_event : {0, 1, 2}, default=1
        0 disables detection, 1 reports events at the accepted step where
        they were flagged, 2 additionally refines each event by bisection.
    n_inversion : int, default=2
        Number of side inversions that confirms a continuous crossing.
    max_bisection_steps : int, default=15
        Maximum number of corrector solves per refined component.
    tol_param_bisection_event : float, default=1e-10
        Width of the bracket, in the continuation variable, below which the
        bisection stops.
    max_corrector_retries : int, default=2
        Retries at a shrunk offset when a bisection solve fails.
    """

    detect_event: int = 1
    n_inversion: int = 2
    max_bisection_steps: int = 15
    tol_param_bisection_event: float = 1e-10
    max_corrector_retries: int = 2

    def _validate(self) -> None:
        """Validate the options."""
        if self.detect_event not in (0, 1, 2):
            raise ValueError(f"detect_event must be 0, 1 or 2, got {self.detect_event}")
        if self.n_inversion <= 0:
            raise ValueError("n_inversion must be a positive integer")
        if self.max_bisection_steps <= 0:
            raise ValueError("max_bisection_steps must be a positive integer")
        if self.tol_param_bisection_event <= 0:
            raise ValueError("tol_param_bisection_event must be positive")
        if self.max_corrector_retries < 0:
            raise ValueError("max_corrector_retries must be non-negative")
