"""Base class for runtime option objects.

Options tune HOW WELL an algorithm runs. They can vary between calls without
changing the algorithm structure.

For compile-time configuration (algorithm structure), see configs.py.
"""

from abc import ABC
from dataclasses import replace


class _BranchTraceBaseOptions(ABC):
    """Marker base class for frozen runtime option dataclasses."""

    __slots__ = ()

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Validate the options."""
        return None

    def merge(self, **overrides) -> "_BranchTraceBaseOptions":
        """Return a validated copy with ``overrides`` applied.

        Examples
        --------
        >>> tight = options.merge(tol=1e-14)
        """
        return replace(self, **overrides)
