"""Continuation engine wiring the predict-correct backend and the residual interface."""

from branchtrace.algorithms.continuation.backends.base import \
    _ContinuationBackend
from branchtrace.algorithms.continuation.engine.base import _ContinuationEngine
from branchtrace.algorithms.continuation.interfaces import \
    _ResidualContinuationInterface
from branchtrace.algorithms.continuation.types import _ContinuationProblem
from branchtrace.algorithms.types.exceptions import (EngineError,
                                                     EventDefinitionError)


class _ResidualContinuationEngine(_ContinuationEngine):
    """Engine orchestrating continuation of ``F(u, p) = 0`` via backend and interface."""

    def __init__(
        self,
        *,
        backend: _ContinuationBackend,
        interface: _ResidualContinuationInterface | None = None,
    ) -> None:
        super().__init__(backend=backend, interface=interface)

    def _handle_backend_failure(
        self,
        exc: Exception,
        *,
        problem: _ContinuationProblem,
        call,
        interface,
    ) -> None:
        # Event definition errors are the caller's to fix; pass them through.
        if isinstance(exc, EventDefinitionError):
            raise exc
        raise EngineError(f"Continuation failed: {exc}") from exc

    def _after_backend_success(self, outputs, *, problem, domain_payload, interface) -> None:
        family, info = outputs
        last = family[-1]
        self._backend.on_success(
            last.u,
            iterations=int(info.get("iterations", 0)),
            residual_norm=float(info.get("residual_norm", float("nan"))),
        )
