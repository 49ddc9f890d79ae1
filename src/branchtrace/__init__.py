"""branchtrace: continuation of parametrised nonlinear systems with event detection."""

from branchtrace.algorithms import (ArityMismatchError, BranchTraceError,
                                    Continuation, ContinuationConfig,
                                    ContinuationOptions, ContinuationResult,
                                    ContinuousEvent, ConvergenceError,
                                    CorrectionOptions, DiscreteEvent,
                                    EngineError, EventDefinitionError,
                                    EventOptions, FoldEvent, PairOfEvents,
                                    SetOfEvents, StabilityEvent, continuation)
from branchtrace.algorithms.events.types import EventRecord
from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState)

__version__ = "0.1.0"

__all__ = [
    "Continuation",
    "continuation",
    "ContinuationConfig",
    "ContinuationOptions",
    "ContinuationResult",
    "ContinuationContext",
    "ContinuationState",
    "CorrectionOptions",
    "EventOptions",
    "EventRecord",
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
