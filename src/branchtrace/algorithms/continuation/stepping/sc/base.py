"""Secant (pseudo-arclength) stepping strategy."""

import numpy as np

from branchtrace.algorithms.continuation.stepping.base import (
    _as_vector, _ContinuationStepBase, _StepProposal)
from branchtrace.algorithms.types.states import ContinuationState


class _SecantStep(_ContinuationStepBase):
    """Predict along the unit tangent and constrain the projected arclength.

    The orientation of the branch is carried by the tangent, so ``ds`` is
    always positive and the continuation variable is ``s``.
    """

    variable = "s"

    def initial_step(self) -> float:
        return abs(self._nominal)

    def predict(self, last: ContinuationState, ds: float) -> _StepProposal:
        if last.tangent is None:
            raise ValueError("Secant stepping needs a tangent on the last state")
        x = _as_vector(last) + ds * np.asarray(last.tangent, dtype=float)
        return _StepProposal(x, ds)

    def constraint(self, last: ContinuationState) -> np.ndarray:
        return np.asarray(last.tangent, dtype=float)

    def arclength(self, last: ContinuationState, x_new: np.ndarray, ds: float) -> float:
        return float(last.s + ds)
