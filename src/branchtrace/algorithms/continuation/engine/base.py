"""
Abstract base class for continuation engines.
"""

from branchtrace.algorithms.types.core import _BranchTraceBaseEngine


class _ContinuationEngine(_BranchTraceBaseEngine):
    """Shared base class for continuation engines."""
