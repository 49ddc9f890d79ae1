"""Numerical continuation of ``F(u, p) = 0`` with event detection.

This module provides the predictor-corrector pipeline (facade, engine,
interface, backend) and the natural-parameter and secant steppers.
"""

from .backends import _ContinuationBackend, _PCContinuationBackend
from .base import Continuation, continuation
from .config import ContinuationConfig
from .engine import _ContinuationEngine, _ResidualContinuationEngine
from .interfaces import _ResidualContinuationInterface
from .options import ContinuationOptions
from .types import (ContinuationContext, ContinuationResult,
                    ContinuationState, SolutionProtocol, _ContinuationProblem)

__all__ = [
    # Backends
    "_ContinuationBackend",
    "_PCContinuationBackend",

    # Configs (compile-time structure)
    "ContinuationConfig",

    # Options (runtime tuning)
    "ContinuationOptions",

    # Interfaces & Engines
    "_ContinuationEngine",
    "_ResidualContinuationEngine",
    "_ResidualContinuationInterface",

    # Types & Results
    "ContinuationContext",
    "ContinuationResult",
    "ContinuationState",
    "SolutionProtocol",
    "_ContinuationProblem",

    # Facades
    "Continuation",
    "continuation",
]
