"""Composable event probes evaluated on every accepted continuation state.

An :class:`EventFunction` wraps one user evaluator ``fn(context, state)``
returning ``width`` real values (continuous) or ``width`` booleans
(discrete). Event sets compose them:

- :class:`ContinuousEvent` / :class:`DiscreteEvent` hold a single probe;
- :class:`PairOfEvents` holds one continuous and one discrete probe,
  continuous outputs first;
- :class:`SetOfEvents` holds any mixture, nested pairs and sets included.

Every set is flattened once at construction into an offset table of
:class:`~branchtrace.algorithms.events.types.EventSlot` entries, so
evaluation never recurses.

Examples
--------
>>> events = SetOfEvents(
...     ContinuousEvent(1, lambda it, st: st.p + 2.0),
...     DiscreteEvent(1, lambda it, st: st.p > -1.5, names=("past",)),
... )
>>> [slot.label for slot in events.slots]
['userC-1', 'userD-1']
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np

from branchtrace.algorithms.events.types import (EventObservation,
                                                 EventSetKind, EventSlot,
                                                 SlotKind)
from branchtrace.algorithms.types.exceptions import (ArityMismatchError,
                                                     EventDefinitionError)
from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState)

Evaluator = Callable[[Any, ContinuationState], Any]


def _declared_width(fn: Evaluator) -> Optional[int]:
    for attr in ("width", "n_outputs"):
        value = getattr(fn, attr, None)
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            return int(value)
    return None


class EventFunction:
    """Single named probe applied to a ``(context, state)`` pair.

    Parameters
    ----------
    width : int
        Number of outputs.
    fn : callable
        Pure evaluator ``fn(context, state)``.
    kind : {"continuous", "discrete"}
        Sign-change or boolean-flip semantics.
    names : sequence of str or None
        Display names, one per output.
    tag : str or None
        Label prefix. Defaults to ``userC`` / ``userD``.
    indexed : bool, default True
        When False the label is the bare tag (built-in probes).

    Raises
    ------
    ArityMismatchError
        If ``width`` is not a positive integer, ``names`` has the wrong
        length, or ``fn`` declares a different output count.
    EventDefinitionError
        If ``fn`` is not callable.
    """

    def __init__(
        self,
        width: int,
        fn: Evaluator,
        kind: SlotKind,
        *,
        names: Optional[Sequence[str]] = None,
        tag: Optional[str] = None,
        indexed: bool = True,
    ) -> None:
        if isinstance(width, bool) or not isinstance(width, (int, np.integer)) or width <= 0:
            raise ArityMismatchError(f"Event width must be a positive integer, got {width!r}")
        if not callable(fn):
            raise EventDefinitionError(f"Event evaluator must be callable, got {type(fn).__name__}")
        if kind not in ("continuous", "discrete"):
            raise EventDefinitionError(f"Unknown event kind {kind!r}")

        declared = _declared_width(fn)
        if declared is not None and declared != int(width):
            raise ArityMismatchError(
                f"Evaluator declares {declared} outputs but the event expects {int(width)}"
            )

        if names is not None:
            names = tuple(str(n) for n in names)
            if len(names) != int(width):
                raise ArityMismatchError(
                    f"Got {len(names)} names for an event with {int(width)} outputs"
                )

        self._width = int(width)
        self._fn = fn
        self._kind = kind
        self._names = names
        self._tag = tag if tag is not None else ("userC" if kind == "continuous" else "userD")
        self._indexed = bool(indexed)

    @property
    def width(self) -> int:
        return self._width

    @property
    def kind(self) -> SlotKind:
        return self._kind

    @property
    def names(self) -> Optional[Tuple[str, ...]]:
        return self._names

    @property
    def tag(self) -> str:
        return self._tag

    def labels(self) -> Tuple[str, ...]:
        if not self._indexed and self._width == 1:
            return (self._tag,)
        return tuple(f"{self._tag}-{i}" for i in range(1, self._width + 1))

    def __call__(self, context: Any, state: ContinuationState) -> np.ndarray:
        raw = self._fn(context, state)
        if self._kind == "discrete":
            out = np.atleast_1d(np.asarray(raw, dtype=bool)).astype(float)
        else:
            out = np.atleast_1d(np.asarray(raw, dtype=float))
        if out.ndim != 1 or out.size != self._width:
            raise ArityMismatchError(
                f"Evaluator for {self._tag} returned {out.size} values, expected {self._width}"
            )
        return out

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tag={self._tag!r}, width={self._width}, kind={self._kind!r})"


class EventSet:
    """Ordered composite of event functions with a fixed flattened width."""

    def __init__(self, leaves: Sequence[EventFunction], kind: EventSetKind) -> None:
        self._leaves: Tuple[EventFunction, ...] = tuple(leaves)
        self._kind = kind

        slots = []
        flat = 0
        for event_id, leaf in enumerate(self._leaves):
            labels = leaf.labels()
            for local in range(leaf.width):
                name = leaf.names[local] if leaf.names is not None else None
                slots.append(
                    EventSlot(
                        flat_index=flat,
                        event_id=event_id,
                        local_index=local + 1,
                        kind=leaf.kind,
                        label=labels[local],
                        name=name,
                    )
                )
                flat += 1

        self._slots: Tuple[EventSlot, ...] = tuple(slots)
        self._discrete = np.array([s.is_discrete for s in self._slots], dtype=np.bool_)

    @property
    def kind(self) -> EventSetKind:
        return self._kind

    @property
    def leaves(self) -> Tuple[EventFunction, ...]:
        return self._leaves

    @property
    def slots(self) -> Tuple[EventSlot, ...]:
        """Offset table, one entry per flattened output."""
        return self._slots

    @property
    def width(self) -> int:
        return len(self._slots)

    @property
    def discrete_mask(self) -> np.ndarray:
        return self._discrete.copy()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(s.label if s.name is None else s.name for s in self._slots)

    def evaluate(self, context: ContinuationContext, state: ContinuationState) -> EventObservation:
        """Evaluate every leaf and return the flattened observation."""
        values = np.empty(self.width, dtype=float)
        offset = 0
        for leaf in self._leaves:
            values[offset:offset + leaf.width] = leaf(context, state)
            offset += leaf.width
        return EventObservation(values=values, discrete=self._discrete.copy(), step=int(state.step))

    def __len__(self) -> int:
        return self.width

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self._kind.value}, names={self.names})"


class ContinuousEvent(EventSet):
    """Real-valued probe of ``width`` outputs; fires on a sign change.

    Parameters
    ----------
    width : int
        Number of outputs.
    fn : callable
        ``fn(context, state)`` returning ``width`` reals (a scalar when
        ``width == 1``).
    names : sequence of str, optional
        Display names, one per output.
    """

    def __init__(
        self,
        width: int,
        fn: Evaluator,
        names: Optional[Sequence[str]] = None,
        *,
        tag: Optional[str] = None,
        indexed: bool = True,
    ) -> None:
        leaf = EventFunction(width, fn, "continuous", names=names, tag=tag, indexed=indexed)
        super().__init__((leaf,), EventSetKind.CONTINUOUS)


class DiscreteEvent(EventSet):
    """Boolean probe of ``width`` outputs; fires when a value flips."""

    def __init__(
        self,
        width: int,
        fn: Evaluator,
        names: Optional[Sequence[str]] = None,
        *,
        tag: Optional[str] = None,
    ) -> None:
        leaf = EventFunction(width, fn, "discrete", names=names, tag=tag)
        super().__init__((leaf,), EventSetKind.DISCRETE)


class PairOfEvents(EventSet):
    """Exactly one continuous and one discrete event, continuous first."""

    def __init__(self, continuous: ContinuousEvent, discrete: DiscreteEvent) -> None:
        if not isinstance(continuous, ContinuousEvent) or not isinstance(discrete, DiscreteEvent):
            raise EventDefinitionError(
                "PairOfEvents requires a ContinuousEvent followed by a DiscreteEvent, "
                f"got {type(continuous).__name__} and {type(discrete).__name__}"
            )
        super().__init__(continuous.leaves + discrete.leaves, EventSetKind.PAIR)

    @property
    def continuous(self) -> EventFunction:
        return self.leaves[0]

    @property
    def discrete(self) -> EventFunction:
        return self.leaves[1]


class SetOfEvents(EventSet):
    """Arbitrary ordered mixture of events, flattened left to right."""

    def __init__(self, *events: EventSet) -> None:
        if not events:
            raise EventDefinitionError("SetOfEvents needs at least one event")
        leaves = []
        for ev in events:
            if not isinstance(ev, EventSet):
                raise EventDefinitionError(
                    f"SetOfEvents accepts event sets only, got {type(ev).__name__}"
                )
            leaves.extend(ev.leaves)
        super().__init__(leaves, EventSetKind.COMPOSITE)


def _fold_indicator(context: ContinuationContext, state: ContinuationState) -> float:
    return state.dp


class FoldEvent(ContinuousEvent):
    """Parameter component of the tangent; a sign change marks a fold.

    Only meaningful with the secant stepper, the natural stepper cannot
    turn around a fold.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__(
            1,
            _fold_indicator,
            names=None if name is None else (name,),
            tag="fold",
            indexed=False,
        )


class StabilityEvent(ContinuousEvent):
    """Count of eigenvalues of ``F_u`` with positive real part, shifted.

    The probe returns ``n_unstable - threshold - 0.5``, so it changes sign
    when the number of unstable eigenvalues crosses ``threshold``. With the
    default ``threshold=0`` this flags loss of stability of a stable branch.

    Parameters
    ----------
    threshold : int, default 0
        Unstable count the probe is centred on.
    tol : float, default 0.0
        Real parts must exceed ``tol`` to count as unstable.
    name : str, optional
        Display name.
    """

    def __init__(self, threshold: int = 0, tol: float = 0.0, name: Optional[str] = None) -> None:
        if threshold < 0:
            raise EventDefinitionError("threshold must be non-negative")
        self._threshold = int(threshold)
        self._tol = float(tol)
        super().__init__(
            1,
            self._indicator,
            names=None if name is None else (name,),
            tag="bp",
            indexed=False,
        )

    def n_unstable(self, context: ContinuationContext, state: ContinuationState) -> int:
        J = context.dense_jacobian(state.u, state.p)
        eigvals = np.linalg.eigvals(J)
        return int(np.count_nonzero(eigvals.real > self._tol))

    def _indicator(self, context: ContinuationContext, state: ContinuationState) -> float:
        return float(self.n_unstable(context, state) - self._threshold) - 0.5
