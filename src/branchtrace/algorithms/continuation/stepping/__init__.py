"""Continuation stepping strategies.

This module provides factories that build a stepper per run. Each factory
returns a callable taking the signed nominal step and its bounds and
yielding a concrete stepper instance.
"""

from __future__ import annotations

from typing import Callable

from branchtrace.algorithms.continuation.stepping.base import (
    _as_vector, _ContinuationStepBase, _StepProposal)
from branchtrace.algorithms.continuation.stepping.np.base import \
    _NaturalParameterStep
from branchtrace.algorithms.continuation.stepping.sc.base import _SecantStep

# Stepper factory: (nominal_step, step_min, step_max) -> stepper
_ContinuationStepperFactory = Callable[[float, float, float], _ContinuationStepBase]


def make_natural_stepper() -> _ContinuationStepperFactory:
    """Return a natural-parameter stepper factory."""

    def _factory(step: float, step_min: float, step_max: float) -> _ContinuationStepBase:
        return _NaturalParameterStep(step, step_min=step_min, step_max=step_max)

    return _factory


def make_secant_stepper() -> _ContinuationStepperFactory:
    """Return a secant stepper factory."""

    def _factory(step: float, step_min: float, step_max: float) -> _ContinuationStepBase:
        return _SecantStep(step, step_min=step_min, step_max=step_max)

    return _factory


__all__ = [
    "_as_vector",
    "_ContinuationStepBase",
    "_NaturalParameterStep",
    "_SecantStep",
    "_StepProposal",
    "_ContinuationStepperFactory",
    "make_natural_stepper",
    "make_secant_stepper",
]
