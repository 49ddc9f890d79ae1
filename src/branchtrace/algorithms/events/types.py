"""Types for the event subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Tuple

import numpy as np

from branchtrace.algorithms.types.states import ContinuationState

SlotKind = Literal["continuous", "discrete"]

#: Located and confirmed.
STATUS_CONVERGED = "converged"
#: Located, but the inversion threshold was not reached.
STATUS_GUESS = "guess"
#: Corrector failed during bisection; bracket midpoint reported.
STATUS_APPROXIMATE = "approximate"
#: Crossing lies beyond the parameter domain; reported at the edge.
STATUS_CLIPPED = "clipped"
#: Flagged only (no bisection requested).
STATUS_DETECTED = "detected"


class EventSetKind(Enum):
    """Kind tag of an :class:`~branchtrace.algorithms.events.functions.EventSet`."""

    CONTINUOUS = "continuous"
    DISCRETE = "discrete"
    PAIR = "pair"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class EventSlot:
    """One entry of the offset table built when an event set is flattened.

    Attributes
    ----------
    flat_index : int
        Position in the flattened observation vector.
    event_id : int
        Ordinal (0-based) of the originating leaf event.
    local_index : int
        Position (1-based) of the output inside its leaf event.
    kind : {"continuous", "discrete"}
        Sign-change or boolean-flip semantics.
    label : str
        Kind label such as ``"userC-2"`` or ``"fold"``.
    name : str or None
        Optional display name supplied by the caller.
    """

    flat_index: int
    event_id: int
    local_index: int
    kind: SlotKind
    label: str
    name: Optional[str] = None

    @property
    def is_discrete(self) -> bool:
        return self.kind == "discrete"


@dataclass(frozen=True)
class EventObservation:
    """Flattened event values at one state.

    Discrete slots hold ``1.0`` (true) or ``0.0`` (false). ``nan`` marks an
    undefined continuous value.
    """

    values: np.ndarray
    discrete: np.ndarray
    step: int

    def __len__(self) -> int:
        return int(self.values.size)

    @property
    def continuous_values(self) -> np.ndarray:
        return self.values[~self.discrete]

    @property
    def flags(self) -> np.ndarray:
        return self.values[self.discrete] != 0.0


@dataclass(frozen=True)
class EventLocation:
    """Outcome of localising one fired component."""

    state: ContinuationState
    param: float
    value: float
    interval: Tuple[float, float]
    inversions: int
    steps: int
    status: str


@dataclass(frozen=True)
class EventRecord:
    """Special point attached to a branch.

    Attributes
    ----------
    kind : str
        ``userC-k``, ``userD-k`` or a built-in kind such as ``fold`` or ``bp``.
    name : str or None
        Display name, when one was supplied for the slot.
    step : int
        Accepted step at which the event was flagged.
    flat_index : int
        Slot in the flattened event set.
    event_id : int
        Ordinal of the originating leaf event.
    local_index : int
        1-based output index inside the leaf event.
    param : float
        Parameter value of the reported location.
    state : ContinuationState
        Reported (possibly refined) state.
    status : str
        One of ``detected``, ``converged``, ``guess``, ``approximate``,
        ``clipped``.
    interval : tuple of float
        Final bracket in the continuation variable.
    inversions : int
        Number of side inversions seen during bisection.
    value : float
        Event value at the reported state.
    """

    kind: str
    name: Optional[str]
    step: int
    flat_index: int
    event_id: int
    local_index: int
    param: float
    state: ContinuationState
    status: str
    interval: Tuple[float, float]
    inversions: int = 0
    value: float = float("nan")

    @property
    def confirmed(self) -> bool:
        return self.status == STATUS_CONVERGED

    @property
    def label(self) -> str:
        return self.name if self.name is not None else self.kind


@dataclass
class _BisectionBracket:
    """Working state of one component's refinement."""

    index: int
    lo: ContinuationState
    hi: ContinuationState
    value_lo: float
    value_hi: float
    x_lo: float
    x_hi: float
    inversions: int = 0
    steps: int = 0
    last_side: Optional[str] = None

    @property
    def width(self) -> float:
        return abs(self.x_hi - self.x_lo)

    @property
    def midpoint(self) -> float:
        return 0.5 * (self.x_lo + self.x_hi)

    def replace(self, side: str, state: ContinuationState, value: float, x: float) -> None:
        if side == "lo":
            self.lo, self.value_lo, self.x_lo = state, value, x
        else:
            self.hi, self.value_hi, self.x_hi = state, value, x
        if self.last_side is not None and side != self.last_side:
            self.inversions += 1
        self.last_side = side
        self.steps += 1
