"""Abstract base class for continuation stepping strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from branchtrace.algorithms.types.states import ContinuationState


@dataclass(slots=True)
class _StepProposal:
    """Prediction payload returned by continuation steppers."""

    prediction: np.ndarray
    step_hint: Optional[float] = None


def _as_vector(state: ContinuationState) -> np.ndarray:
    """Stack ``(u, p)`` into a single flat vector, ``p`` last."""
    return np.concatenate([np.asarray(state.u, dtype=float).ravel(), [float(state.p)]])


class _ContinuationStepBase(ABC):
    """Define the protocol for continuation stepping strategies.

    Every stepper closes the system ``F(u, p) = 0`` with one linear
    constraint ``c . (x - x_last) = ds`` on the stacked vector
    ``x = (u, p)``. The constraint row and the meaning of ``ds`` (the
    continuation variable) are what distinguish the strategies.

    Parameters
    ----------
    nominal_step : float
        Signed step requested by the caller.
    step_min, step_max : float
        Bounds on the step magnitude.
    """

    variable: Literal["p", "s"] = "p"

    def __init__(self, nominal_step: float, *, step_min: float, step_max: float) -> None:
        self._nominal = float(nominal_step)
        self._step_min = float(step_min)
        self._step_max = float(step_max)

    @property
    def direction(self) -> float:
        return 1.0 if self._nominal > 0 else -1.0

    @abstractmethod
    def initial_step(self) -> float:
        """Return the first ``ds`` handed to :meth:`predict`."""

    @abstractmethod
    def predict(self, last: ContinuationState, ds: float) -> _StepProposal:
        """Generate a prediction for the next solution."""

    @abstractmethod
    def constraint(self, last: ContinuationState) -> np.ndarray:
        """Row ``c`` of the closing equation ``c . (x - x_last) = ds``."""

    @abstractmethod
    def arclength(self, last: ContinuationState, x_new: np.ndarray, ds: float) -> float:
        """Arclength coordinate of the corrected point."""

    def coordinate(self, state: ContinuationState) -> float:
        """Value of the continuation variable at ``state``."""
        return float(state.p) if self.variable == "p" else float(state.s)

    def on_accept(self, *, last: ContinuationState, new: ContinuationState, ds: float, proposal: _StepProposal) -> float:
        """Hook executed after successful correction; returns the next step.

        A step shrunk by earlier rejections is doubled back toward the
        nominal size.
        """
        hint = ds if proposal.step_hint is None else proposal.step_hint
        target = abs(self.initial_step())
        size = min(abs(hint) * 2.0, target, self._step_max)
        return float(np.copysign(max(size, self._step_min), hint))

    def on_reject(self, *, last: ContinuationState, ds: float, proposal: _StepProposal) -> float:
        """Hook executed after failed correction; returns the shrunk step."""
        size = max(abs(ds) * 0.5, self._step_min)
        return float(np.copysign(size, ds))
