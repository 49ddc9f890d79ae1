"""Corrector backends."""

from .base import _CorrectorBackend
from .newton import _NewtonBackend

__all__ = ["_CorrectorBackend", "_NewtonBackend"]
