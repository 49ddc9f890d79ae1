"""Base class for compile-time configuration objects.

Configurations define WHAT algorithm is used and how the problem is
structured. They are set once when a pipeline is created.
"""

from abc import ABC
from dataclasses import replace


class _BranchTraceBaseConfig(ABC):
    """Marker base class for frozen configuration dataclasses.

    Subclasses are expected to be ``@dataclass(frozen=True)``. Validation runs
    on construction through :meth:`_validate`.
    """

    __slots__ = ()

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Validate the configuration."""
        return None

    def merge(self, **overrides) -> "_BranchTraceBaseConfig":
        """Return a validated copy with ``overrides`` applied."""
        return replace(self, **overrides)
