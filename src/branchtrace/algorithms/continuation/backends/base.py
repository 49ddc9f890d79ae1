"""Abstract base class for continuation backends."""

from abc import abstractmethod
from typing import Optional

from branchtrace.algorithms.continuation.stepping import (
    _ContinuationStepBase, _ContinuationStepperFactory, make_natural_stepper)
from branchtrace.algorithms.types.core import _BranchTraceBaseBackend


class _ContinuationBackend(_BranchTraceBaseBackend):
    """Shared plumbing for continuation backends.

    Parameters
    ----------
    stepper_factory : callable, optional
        Builds the stepper for a run. Natural-parameter stepping when None.
    """

    def __init__(self, *, stepper_factory: Optional[_ContinuationStepperFactory] = None) -> None:
        super().__init__()
        self._stepper_factory = stepper_factory or make_natural_stepper()
        self._stepper: Optional[_ContinuationStepBase] = None

    @property
    def stepper(self) -> Optional[_ContinuationStepBase]:
        return self._stepper

    def set_stepper_factory(self, stepper_factory: _ContinuationStepperFactory) -> None:
        self._stepper_factory = stepper_factory

    def make_stepper(self, step: float, step_min: float, step_max: float) -> _ContinuationStepBase:
        self._stepper = self._stepper_factory(step, step_min, step_max)
        return self._stepper

    @abstractmethod
    def run(self, *args, **kwargs):
        """Trace a branch and return ``(family, info)``."""
