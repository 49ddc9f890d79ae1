"""Provide configuration classes for continuation algorithms (compile-time structure).

This module provides configuration classes that define the algorithm structure
for continuation methods. These should be set once when creating a pipeline.

For runtime tuning parameters (target ranges, step sizes, etc.), see options.py.
"""

from dataclasses import dataclass
from typing import Literal

from branchtrace.algorithms.types.configs import _BranchTraceBaseConfig


@dataclass(frozen=True)
class ContinuationConfig(_BranchTraceBaseConfig):
    """Base configuration for continuation algorithms (compile-time structure).

    Parameters
    ----------
    stepper : Literal["natural", "secant"], default="natural"
        Stepping strategy for continuation. This is a structural algorithm choice.
        
        - "natural": Natural parameter continuation; the continuation
          variable is ``p`` and folds cannot be passed.
        - "secant": Secant predictor with a pseudo-arclength constraint; the
          continuation variable is the arclength ``s``.

    Notes
    -----
    For runtime tuning parameters like `target`, `step`, `max_members`, etc.,
    use ContinuationOptions instead.

    Examples
    --------
    >>> config = ContinuationConfig(stepper="secant")
    >>> options = ContinuationOptions(target=(0.0, 1.0), step=0.01)
    """
    stepper: Literal["natural", "secant"] = "natural"

    def _validate(self) -> None:
        """Validate the configuration."""
        if self.stepper not in ["natural", "secant"]:
            raise ValueError(
                f"Invalid stepper: {self.stepper}. "
                "Must be 'natural' or 'secant'."
            )
