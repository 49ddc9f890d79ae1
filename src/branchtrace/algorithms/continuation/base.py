"""User-facing facade for continuation workflows.

The facade assembles the engine, backend and interface using DI and
provides a simple API to trace a branch of ``F(u, p) = 0`` with event
detection.
"""

from typing import TYPE_CHECKING, Any, Callable, Optional

import numpy as np

from branchtrace.algorithms.continuation.config import ContinuationConfig
from branchtrace.algorithms.continuation.options import ContinuationOptions
from branchtrace.algorithms.continuation.types import (ContinuationResult,
                                                       _ContinuationProblem)
from branchtrace.algorithms.events.functions import EventSet
from branchtrace.algorithms.types.core import _BranchTraceBaseFacade

if TYPE_CHECKING:
    from branchtrace.algorithms.continuation.engine.engine import \
        _ResidualContinuationEngine
    from branchtrace.algorithms.continuation.interfaces import \
        _ResidualContinuationInterface


class Continuation(_BranchTraceBaseFacade[ContinuationConfig, _ContinuationProblem, ContinuationResult]):
    """Facade for predictor-corrector continuation with event detection.

    Users supply an engine (DI). Use :meth:`with_default_engine` to construct
    a default engine wired with the predict-correct backend and the residual
    interface.

    Examples
    --------
    >>> cont = Continuation.with_default_engine(config=ContinuationConfig())
    >>> result = cont.generate(
    ...     lambda u, p: u - p, [0.0], 0.0,
    ...     options=ContinuationOptions(target=(0.0, 1.0), step=0.1),
    ...     events=ContinuousEvent(1, lambda it, st: st.p - 0.55),
    ... )
    >>> [sp.kind for sp in result.special_points]
    ['userC-1']
    """

    def __init__(
        self,
        config: ContinuationConfig,
        interface: "_ResidualContinuationInterface",
        engine: "_ResidualContinuationEngine" = None,
    ) -> None:
        super().__init__(config, interface, engine)

    @classmethod
    def with_default_engine(
        cls,
        *,
        config: Optional[ContinuationConfig] = None,
        interface: Optional["_ResidualContinuationInterface"] = None,
    ) -> "Continuation":
        """Create a facade instance with a default engine (factory)."""
        from branchtrace.algorithms.continuation.backends.pc import \
            _PCContinuationBackend
        from branchtrace.algorithms.continuation.engine.engine import \
            _ResidualContinuationEngine
        from branchtrace.algorithms.continuation.interfaces import \
            _ResidualContinuationInterface

        backend = _PCContinuationBackend()
        intf = interface or _ResidualContinuationInterface()
        engine = _ResidualContinuationEngine(backend=backend, interface=intf)
        return cls(config or ContinuationConfig(), intf, engine)

    def generate(
        self,
        residual: Callable[[np.ndarray, float], np.ndarray],
        u0,
        p0: float,
        *,
        jacobian: Optional[Callable[[np.ndarray, float], Any]] = None,
        options: Optional[ContinuationOptions] = None,
        events: Optional[EventSet] = None,
        **overrides,
    ) -> ContinuationResult:
        """Trace the branch through ``(u0, p0)``.

        Parameters
        ----------
        residual : callable
            ``F(u, p)``.
        u0 : array_like
            Initial guess, corrected at ``p0`` before stepping.
        p0 : float
            Initial parameter value, inside the target interval.
        jacobian : callable, optional
            ``F_u(u, p)`` returning a dense array or a scipy sparse matrix.
        options : ContinuationOptions, optional
            Runtime options. Defaults are used when None.
        events : EventSet, optional
            Events monitored on every accepted step.
        **overrides
            Field overrides applied to ``options`` via ``merge``.

        Returns
        -------
        ContinuationResult
            Branch, counters and special points.
        """
        options = options or ContinuationOptions()
        if overrides:
            options = options.merge(**overrides)

        problem = self._interface.create_problem(
            config=self._config,
            options=options,
            residual=residual,
            u0=u0,
            p0=p0,
            jacobian=jacobian,
            events=events,
        )
        engine = self._get_engine()
        self._results = engine.solve(problem)
        return self._results

    def _validate_config(self, config: ContinuationConfig) -> None:
        super()._validate_config(config)
        if not isinstance(config, ContinuationConfig):
            raise ValueError(f"Expected ContinuationConfig, got {type(config).__name__}")


def continuation(
    residual: Callable[[np.ndarray, float], np.ndarray],
    u0,
    p0: float,
    *,
    events: Optional[EventSet] = None,
    jacobian: Optional[Callable[[np.ndarray, float], Any]] = None,
    stepper: str = "natural",
    options: Optional[ContinuationOptions] = None,
    **overrides,
) -> ContinuationResult:
    """Run one continuation with the default engine.

    Keyword overrides are applied to ``options``; see
    :class:`~branchtrace.algorithms.continuation.options.ContinuationOptions`.
    """
    facade = Continuation.with_default_engine(config=ContinuationConfig(stepper=stepper))
    return facade.generate(residual, u0, p0, jacobian=jacobian, options=options, events=events, **overrides)
