""" Public API for the :mod:`~branchtrace.algorithms` package.
"""

from .continuation.base import Continuation, continuation
from .continuation.config import ContinuationConfig
from .continuation.options import ContinuationOptions
from .continuation.types import ContinuationResult
from .corrector.options import CorrectionOptions
from .events.functions import (ContinuousEvent, DiscreteEvent, FoldEvent,
                               PairOfEvents, SetOfEvents, StabilityEvent)
from .events.options import EventOptions
from .types.exceptions import (ArityMismatchError, BranchTraceError,
                               ConvergenceError, EngineError,
                               EventDefinitionError)

__all__ = [
    "Continuation",
    "continuation",
    "ContinuationConfig",
    "ContinuationOptions",
    "ContinuationResult",
    "CorrectionOptions",
    "EventOptions",
    "ContinuousEvent",
    "DiscreteEvent",
    "PairOfEvents",
    "SetOfEvents",
    "FoldEvent",
    "StabilityEvent",
    "BranchTraceError",
    "ConvergenceError",
    "EngineError",
    "EventDefinitionError",
    "ArityMismatchError",
]
