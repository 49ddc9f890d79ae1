"""Sign-change and predicate-flip detection between accepted steps.

Notes
-----
The comparison itself is a small Numba kernel over the flattened
observation vectors, so its cost per accepted step stays flat however many
probes are monitored. ``fastmath`` is left off because ``nan`` is the
undefined-value sentinel and must compare faithfully.

The test is not a bare ``sign(prev) != sign(curr)``: a value that lands on
exactly zero fires at that step, and moving off the zero on the next step
does not fire again. A plain sign comparison would report the same root
twice, once arriving at zero and once leaving it.
"""

from typing import Optional, Tuple

import numpy as np
from numba import njit

from branchtrace.algorithms.events.types import EventObservation
from branchtrace.utils.log_config import logger


@njit(cache=False)
def _fired_mask(prev: np.ndarray, curr: np.ndarray, discrete: np.ndarray) -> np.ndarray:
    """Return a boolean mask of slots whose value changed across the step.

    Continuous slots fire on a strict sign change, or when the value lands
    exactly on zero. Leaving an exact zero does not fire again. ``nan`` on
    either side never fires. Discrete slots fire on any flip.
    """
    n = prev.size
    out = np.zeros(n, dtype=np.bool_)
    for i in range(n):
        a = prev[i]
        b = curr[i]
        if discrete[i]:
            out[i] = a != b
            continue
        if np.isnan(a) or np.isnan(b):
            continue
        sa = np.sign(a)
        sb = np.sign(b)
        if sa * sb < 0.0:
            out[i] = True
        elif sa != 0.0 and sb == 0.0:
            out[i] = True
    return out


class SignChangeDetector:
    """Compare each accepted observation with the previous one.

    The previous observation is single-slot state owned by the instance.
    Only accepted states may be passed to :meth:`detect`; rejected steps must
    not reach the detector.
    """

    def __init__(self) -> None:
        self._previous: Optional[EventObservation] = None

    @property
    def previous(self) -> Optional[EventObservation]:
        return self._previous

    def reset(self) -> None:
        self._previous = None

    def detect(self, current: EventObservation) -> Tuple[int, ...]:
        """Return the flat indices that fired since the previous call.

        The first call never fires. The stored observation is replaced
        unconditionally.
        """
        previous = self._previous
        self._previous = current

        if previous is None:
            return ()

        if previous.values.shape != current.values.shape:
            raise ValueError(
                f"Observation width changed from {previous.values.size} to {current.values.size}"
            )

        mask = _fired_mask(
            np.ascontiguousarray(previous.values, dtype=np.float64),
            np.ascontiguousarray(current.values, dtype=np.float64),
            np.ascontiguousarray(current.discrete, dtype=np.bool_),
        )
        fired = tuple(int(i) for i in np.flatnonzero(mask))
        if fired:
            logger.debug("Event slots %s fired between steps %d and %d", fired, previous.step, current.step)
        return fired
