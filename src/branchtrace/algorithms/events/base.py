"""Per-run driver tying event evaluation, detection, refinement and recording.

The continuation backend owns one :class:`EventMonitor` per run. It calls
:meth:`EventMonitor.initialise` on the corrected seed and
:meth:`EventMonitor.on_accept` after every accepted step. Rejected trial
states never reach the monitor.
"""

from typing import Optional, Tuple

from branchtrace.algorithms.events.bisection import BisectionRefiner, CorrectAt
from branchtrace.algorithms.events.detector import SignChangeDetector
from branchtrace.algorithms.events.functions import EventSet
from branchtrace.algorithms.events.options import EventOptions
from branchtrace.algorithms.events.recorder import EventRecorder
from branchtrace.algorithms.events.types import EventObservation, EventRecord
from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState)
from branchtrace.utils.log_config import logger


class EventMonitor:
    """Evaluate an event set on accepted states and record special points.

    Parameters
    ----------
    event_set : EventSet
        Probes monitored along the branch.
    options : EventOptions
        ``detect_event`` selects inert (0), flag-only (1) or located (2)
        behaviour.
    context : ContinuationContext
        Handed to every evaluator.
    corrector : callable, optional
        ``correct_at(value, guess)``. Required when ``detect_event == 2``.
    variable : {"p", "s"}, default "p"
        Continuation variable bisected on.
    bounds : tuple of float, optional
        Parameter domain used to clip brackets that left it.
    correct_at_param : callable, optional
        Fixed-parameter corrector used to solve at the domain edge when
        ``variable`` is ``"s"``.

    Raises
    ------
    ValueError
        If location is requested without a corrector.
    """

    def __init__(
        self,
        event_set: EventSet,
        *,
        options: EventOptions,
        context: ContinuationContext,
        corrector: Optional[CorrectAt] = None,
        variable: str = "p",
        bounds: Optional[Tuple[float, float]] = None,
        correct_at_param: Optional[CorrectAt] = None,
    ) -> None:
        if options.detect_event == 2 and corrector is None:
            raise ValueError("detect_event=2 needs a corrector to locate events")

        self._event_set = event_set
        self._options = options
        self._context = context
        self._detector = SignChangeDetector()
        self._recorder = EventRecorder()
        self._refiner: Optional[BisectionRefiner] = None
        if options.detect_event == 2:
            self._refiner = BisectionRefiner(
                event_set,
                corrector,
                options=options,
                context=context,
                variable=variable,
                bounds=bounds,
                correct_at_param=correct_at_param,
            )
        self._last_state: Optional[ContinuationState] = None
        self._last_obs: Optional[EventObservation] = None

    @property
    def active(self) -> bool:
        return self._options.detect_event > 0

    @property
    def event_set(self) -> EventSet:
        return self._event_set

    @property
    def recorder(self) -> EventRecorder:
        return self._recorder

    @property
    def special_points(self) -> Tuple[EventRecord, ...]:
        return self._recorder.records

    def initialise(self, seed: ContinuationState) -> None:
        """Evaluate the seed and prime the detector.

        Evaluator arity errors surface here, before any step is taken.
        """
        self._detector.reset()
        self._last_state = None
        self._last_obs = None
        if not self.active:
            return
        obs = self._event_set.evaluate(self._context, seed)
        self._detector.detect(obs)
        self._last_state, self._last_obs = seed, obs
        logger.debug("Monitoring %d event slots: %s", self._event_set.width, self._event_set.names)

    def on_accept(self, state: ContinuationState) -> Tuple[EventRecord, ...]:
        """Process one accepted state and return the records it produced."""
        if not self.active:
            return ()

        obs = self._event_set.evaluate(self._context, state)
        fired = self._detector.detect(obs)
        prev_state, prev_obs = self._last_state, self._last_obs
        self._last_state, self._last_obs = state, obs

        if not fired or prev_state is None:
            return ()

        slots = self._event_set.slots
        if self._refiner is None:
            records = tuple(self._recorder.detected(slots[i], state, obs) for i in fired)
        else:
            locations = self._refiner.refine(prev_state, state, prev_obs, obs, fired)
            records = tuple(
                self._recorder.located(slots[i], state, loc) for i, loc in zip(fired, locations)
            )
        self._recorder.extend(records)
        return records
