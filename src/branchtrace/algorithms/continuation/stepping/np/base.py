"""Natural parameter stepping strategy."""

import numpy as np

from branchtrace.algorithms.continuation.stepping.base import (
    _as_vector, _ContinuationStepBase, _StepProposal)
from branchtrace.algorithms.types.states import ContinuationState


class _NaturalParameterStep(_ContinuationStepBase):
    """Step the parameter by ``ds`` and hold it there while correcting.

    The solution part of the prediction is extrapolated along the tangent
    when its parameter component is usable, otherwise the last solution is
    reused. Folds cannot be passed.
    """

    variable = "p"

    def __init__(self, nominal_step: float, *, step_min: float, step_max: float, min_dp: float = 1e-8) -> None:
        super().__init__(nominal_step, step_min=step_min, step_max=step_max)
        self._min_dp = float(min_dp)

    def initial_step(self) -> float:
        return self._nominal

    def predict(self, last: ContinuationState, ds: float) -> _StepProposal:
        x = _as_vector(last)
        tan = last.tangent
        if tan is not None and abs(tan[-1]) > self._min_dp:
            x[:-1] += ds * np.asarray(tan[:-1], dtype=float) / float(tan[-1])
        x[-1] += ds
        return _StepProposal(x, ds)

    def constraint(self, last: ContinuationState) -> np.ndarray:
        c = np.zeros(np.size(last.u) + 1, dtype=float)
        c[-1] = 1.0
        return c

    def arclength(self, last: ContinuationState, x_new: np.ndarray, ds: float) -> float:
        return float(last.s + np.linalg.norm(x_new - _as_vector(last)))
