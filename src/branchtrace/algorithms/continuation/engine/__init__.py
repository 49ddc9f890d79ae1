from .base import _ContinuationEngine
from .engine import _ResidualContinuationEngine

__all__ = [
    "_ContinuationEngine",
    "_ResidualContinuationEngine",
]
