"""Types for the continuation module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple

import numpy as np
import pandas as pd

from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState,
                                                 SolutionProtocol)

if TYPE_CHECKING:
    from branchtrace.algorithms.corrector.options import CorrectionOptions
    from branchtrace.algorithms.events.functions import EventSet
    from branchtrace.algorithms.events.options import EventOptions
    from branchtrace.algorithms.events.types import EventRecord


@dataclass(frozen=True)
class ContinuationResult:
    """Standardized result for a continuation run.

    Attributes
    ----------
    accepted_count : int
        The number of accepted solutions.
    rejected_count : int
        The number of rejected solutions.
    success_rate : float
        The success rate.
    family : Tuple[ContinuationState, ...]
        The accepted states, seed first.
    parameter_values : Tuple[float, ...]
        The parameter values.
    iterations : int
        The number of predictor-corrector iterations.
    special_points : Tuple[EventRecord, ...]
        Detected or located events, in step order.
    """

    accepted_count: int
    rejected_count: int
    success_rate: float
    family: Tuple[ContinuationState, ...]
    parameter_values: Tuple[float, ...]
    iterations: int
    special_points: Tuple["EventRecord", ...] = ()

    def to_df(self) -> pd.DataFrame:
        """Return the branch as a :class:`pandas.DataFrame`, one row per state."""
        return pd.DataFrame(
            {
                "step": [st.step for st in self.family],
                "p": [st.p for st in self.family],
                "s": [st.s for st in self.family],
                "residual_norm": [st.residual_norm for st in self.family],
            }
        )


@dataclass(frozen=True)
class _ContinuationProblem:
    """Defines the inputs for a continuation run.

    Attributes
    ----------
    residual_fn : callable
        ``F(u, p)`` returning a vector of the same length as ``u``.
    jacobian_fn : callable or None
        ``F_u(u, p)``; finite differences when None.
    u0 : np.ndarray
        Initial solution guess, corrected before stepping.
    p0 : float
        Initial parameter value.
    target : np.ndarray
        Parameter domain ``(p_min, p_max)``.
    step : float
        Initial signed step size.
    max_members : int
        Maximum number of accepted solutions to generate, seed included.
    max_retries_per_step : int
        Maximum number of retries per failed continuation step.
    shrink_policy : callable or None
        Policy for shrinking the step after a rejection.
    step_min : float
        Minimum allowed step size.
    step_max : float
        Maximum allowed step size.
    stepper : str
        The stepper to use.
    corrector : CorrectionOptions
        Newton options used for every solve.
    events : EventSet or None
        Event set monitored along the branch.
    event_options : EventOptions
        Detection and bisection settings.
    """

    residual_fn: Callable[[np.ndarray, float], np.ndarray]
    jacobian_fn: Optional[Callable[[np.ndarray, float], Any]]
    u0: np.ndarray
    p0: float
    target: np.ndarray
    step: float
    max_members: int
    max_retries_per_step: int
    corrector: "CorrectionOptions"
    event_options: "EventOptions"
    shrink_policy: Optional[Callable[[float], float]] = None
    step_min: float = 1e-10
    step_max: float = 1.0
    stepper: str = "natural"
    events: Optional["EventSet"] = None
    context: Optional[ContinuationContext] = field(default=None, compare=False)
