"""Iterative correctors used by the continuation backends.

The corrector is treated as a black box by the event subsystem: it only
needs to produce a converged solution at a prescribed parameter or arclength
value, or raise :class:`~branchtrace.algorithms.types.exceptions.ConvergenceError`.
"""

from .backends import _CorrectorBackend, _NewtonBackend
from .options import CorrectionOptions
from .types import JacobianFn, NormFn, ResidualFn

__all__ = [
    "_CorrectorBackend",
    "_NewtonBackend",
    "CorrectionOptions",
    "ResidualFn",
    "JacobianFn",
    "NormFn",
]
