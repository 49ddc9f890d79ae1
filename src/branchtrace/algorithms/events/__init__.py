"""Event detection along continuation branches.

Events are user probes evaluated on every accepted state. Continuous probes
fire on a sign change, discrete probes on a boolean flip. With
``detect_event=2`` each firing is localised by bisection with inversion
counting, reusing the continuation corrector.
"""

from .base import EventMonitor
from .bisection import BisectionRefiner
from .detector import SignChangeDetector
from .functions import (ContinuousEvent, DiscreteEvent, EventFunction,
                        EventSet, FoldEvent, PairOfEvents, SetOfEvents,
                        StabilityEvent)
from .options import EventOptions
from .recorder import EventRecorder
from .types import (STATUS_APPROXIMATE, STATUS_CLIPPED, STATUS_CONVERGED,
                    STATUS_DETECTED, STATUS_GUESS, EventLocation,
                    EventObservation, EventRecord, EventSetKind, EventSlot)

__all__ = [
    "EventFunction",
    "EventSet",
    "ContinuousEvent",
    "DiscreteEvent",
    "PairOfEvents",
    "SetOfEvents",
    "FoldEvent",
    "StabilityEvent",
    "SignChangeDetector",
    "BisectionRefiner",
    "EventRecorder",
    "EventMonitor",
    "EventOptions",
    "EventSetKind",
    "EventSlot",
    "EventObservation",
    "EventLocation",
    "EventRecord",
    "STATUS_CONVERGED",
    "STATUS_GUESS",
    "STATUS_APPROXIMATE",
    "STATUS_CLIPPED",
    "STATUS_DETECTED",
]
