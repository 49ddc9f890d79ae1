"""Runtime options for continuation algorithms.

These classes define runtime tuning parameters that control HOW WELL the
continuation runs. They can vary between calls without changing the
algorithm structure.

For compile-time configuration (algorithm structure), see config.py.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from branchtrace.algorithms.corrector.options import CorrectionOptions
from branchtrace.algorithms.events.options import EventOptions
from branchtrace.algorithms.types.options import _BranchTraceBaseOptions


@dataclass(frozen=True)
class ContinuationOptions(_BranchTraceBaseOptions):
    """Runtime options for continuation.

    Parameters
    ----------
    target : tuple of float, default=(-inf, inf)
        Parameter domain ``(p_min, p_max)``. The run stops once an accepted
        state leaves it.
    step : float, default=1e-2
        Initial signed step size. Its sign sets the initial direction.
    max_members : int, default=256
        Maximum number of accepted states, seed included.
    max_retries_per_step : int, default=10
        Number of retries with a shrunk step before the run gives up.
    step_min : float, default=1e-10
        Smallest step magnitude allowed after shrinking.
    step_max : float, default=1.0
        Largest step magnitude allowed.
    shrink_policy : callable or None, default=None
        Maps the rejected step to the next trial step. Halving when None.
    corrector : CorrectionOptions
        Newton settings for every solve, bisection solves included.
    events : EventOptions
        Detection and localisation settings.

    Examples
    --------
    >>> options = ContinuationOptions(target=(-3.0, 0.0), step=1e-3)
    >>> refined = options.merge(events=options.events.merge(detect_event=2))
    """

    target: Tuple[float, float] = (float("-inf"), float("inf"))
    step: float = 1e-2
    max_members: int = 256
    max_retries_per_step: int = 10
    step_min: float = 1e-10
    step_max: float = 1.0
    shrink_policy: Optional[Callable[[float], float]] = None
    corrector: CorrectionOptions = field(default_factory=CorrectionOptions)
    events: EventOptions = field(default_factory=EventOptions)

    def _validate(self) -> None:
        """Validate the options."""
        if len(self.target) != 2:
            raise ValueError("target must be a 2-tuple (p_min, p_max)")
        if not self.target[0] < self.target[1]:
            raise ValueError("target must satisfy p_min < p_max")
        if self.step == 0:
            raise ValueError("step must be non-zero")
        if self.max_members <= 0:
            raise ValueError("max_members must be positive")
        if self.max_retries_per_step < 0:
            raise ValueError("max_retries_per_step must be non-negative")
        if self.step_min <= 0:
            raise ValueError("step_min must be positive")
        if self.step_max <= 0 or self.step_max < self.step_min:
            raise ValueError("step_max must be positive and not below step_min")
        if abs(self.step) > self.step_max:
            raise ValueError("step magnitude exceeds step_max")
