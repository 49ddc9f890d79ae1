from .base import _ContinuationBackend
from .pc import _PCContinuationBackend

__all__ = [
    "_ContinuationBackend",
    "_PCContinuationBackend",
]
