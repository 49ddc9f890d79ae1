"""Abstract base classes for the branchtrace pipeline.

This module provides the building blocks shared by every algorithm family:
facade -> engine -> interface -> backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from branchtrace.algorithms.types.exceptions import EngineError

DomainT = TypeVar("DomainT")

ConfigT = TypeVar("ConfigT", bound=Union["_BranchTraceBaseConfig", None])

ProblemT = TypeVar("ProblemT")

ResultT = TypeVar("ResultT")

OutputsT = TypeVar("OutputsT")

InterfaceT = TypeVar("InterfaceT", bound="_BranchTraceBaseInterface")


@dataclass(frozen=True)
class _BackendCall:
    """Describe a backend call with positional and keyword arguments."""

    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class _BranchTraceBaseInterface(Generic[ConfigT, ProblemT, ResultT, OutputsT], ABC):
    """Shared contract for translating between domain objects and backends."""

    def __init__(self) -> None:
        self._config: ConfigT | None = None
        self._backend = None

    @property
    def current_config(self) -> ConfigT | None:
        return self._config

    @abstractmethod
    def create_problem(self, config: ConfigT | None = None, *args, **kwargs) -> ProblemT:
        """Compose an immutable problem payload for the backend."""

    @abstractmethod
    def to_backend_inputs(self, problem: ProblemT) -> _BackendCall:
        """Translate a problem into backend invocation arguments."""

    def to_domain(self, outputs: OutputsT, *, problem: ProblemT) -> Any:
        """Optional hook to mutate or derive domain artefacts from outputs."""
        return None

    @abstractmethod
    def to_results(self, outputs: OutputsT, *, problem: ProblemT, domain_payload: Any = None) -> ResultT:
        """Package backend outputs into user-facing result objects."""

    def bind_backend(self, backend: "_BranchTraceBaseBackend") -> None:
        self._backend = backend

    def on_start(self, problem: ProblemT) -> None:
        return None

    def on_success(self, outputs: OutputsT, *, problem: ProblemT, domain_payload: Any = None) -> None:
        return None

    def on_failure(self, exc: Exception, *, problem: ProblemT) -> None:
        return None


class _BranchTraceBaseEngine(Generic[ProblemT, ResultT, OutputsT], ABC):
    """Template providing the canonical engine flow."""

    def __init__(
        self,
        *,
        backend: "_BranchTraceBaseBackend",
        interface: _BranchTraceBaseInterface[Any, ProblemT, ResultT, OutputsT] | None = None,
    ) -> None:
        self._backend = backend
        self._interface = interface

    @property
    def backend(self) -> "_BranchTraceBaseBackend":
        return self._backend

    def solve(self, problem: ProblemT) -> ResultT:
        """Execute the standard engine orchestration for ``problem``."""

        interface = self._get_interface(problem)
        interface.bind_backend(self._backend)
        call = interface.to_backend_inputs(problem)
        interface.on_start(problem)

        try:
            outputs = self._invoke_backend(call)
        except Exception as exc:
            interface.on_failure(exc, problem=problem)
            self._handle_backend_failure(exc, problem=problem, call=call, interface=interface)

        domain_payload = interface.to_domain(outputs, problem=problem)
        interface.on_success(outputs, problem=problem, domain_payload=domain_payload)
        self._after_backend_success(outputs, problem=problem, domain_payload=domain_payload, interface=interface)
        return interface.to_results(outputs, problem=problem, domain_payload=domain_payload)

    def _get_interface(
        self,
        problem: ProblemT,
    ) -> _BranchTraceBaseInterface[Any, ProblemT, ResultT, OutputsT]:
        if self._interface is None:
            raise EngineError(
                f"{self.__class__.__name__} must be configured with an interface before solving."
            )
        return self._interface

    def set_interface(
        self,
        interface: _BranchTraceBaseInterface[Any, ProblemT, ResultT, OutputsT],
    ) -> None:
        self._interface = interface

    def with_interface(
        self,
        interface: _BranchTraceBaseInterface[Any, ProblemT, ResultT, OutputsT],
    ) -> "_BranchTraceBaseEngine[ProblemT, ResultT, OutputsT]":
        self.set_interface(interface)
        return self

    def _after_backend_success(self, outputs: OutputsT, *, problem: ProblemT, domain_payload: Any, interface: _BranchTraceBaseInterface[Any, ProblemT, ResultT, OutputsT]) -> None:
        return None

    def _handle_backend_failure(self, exc: Exception, *, problem: ProblemT, call: _BackendCall, interface: _BranchTraceBaseInterface[Any, ProblemT, ResultT, OutputsT]) -> None:
        raise EngineError(str(exc)) from exc

    def _invoke_backend(self, call: _BackendCall) -> OutputsT:
        backend_callable = getattr(self._backend, "run")
        return backend_callable(*call.args, **call.kwargs)


class _BranchTraceBaseBackend(ABC):
    """Abstract base class for all backend implementations.

    Backends are responsible for the core numerical computations, while
    engines handle orchestration and interfaces manage data translation.

    Notes
    -----
    This base class provides common lifecycle hooks that backends can override:
    - on_iteration: Called after each iteration of the main algorithm
    - on_accept: Called when the backend detects convergence/success
    - on_failure: Called when the backend completes without converging
    - on_success: Called by the engine after final acceptance
    """

    def __init__(self) -> None:
        """Initialize the backend."""
        pass

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        """Run the backend."""
        ...

    def on_iteration(self, k: int, x: Any, r_norm: float) -> None:
        """Called after each iteration of the main algorithm.

        Parameters
        ----------
        k : int
            Current iteration number (0-based).
        x : Any
            Current solution estimate or state.
        r_norm : float
            Current residual norm or convergence metric.
        """
        return

    def on_accept(self, x: Any, *, iterations: int, residual_norm: float) -> None:
        """Called when the backend detects convergence or successful completion.

        Parameters
        ----------
        x : Any
            Final solution or result.
        iterations : int
            Total number of iterations performed.
        residual_norm : float
            Final residual norm or convergence metric.
        """
        return

    def on_failure(self, x: Any, *, iterations: int, residual_norm: float) -> None:
        """Called when the backend completes without converging.

        Parameters
        ----------
        x : Any
            Final solution estimate (may not be converged).
        iterations : int
            Total number of iterations performed.
        residual_norm : float
            Final residual norm or convergence metric.
        """
        return

    def on_success(self, x: Any, *, iterations: int, residual_norm: float) -> None:
        """Called by the engine after final acceptance."""
        return


class _BranchTraceBaseFacade(Generic[ConfigT, ProblemT, ResultT]):
    """Abstract base class for user-facing facades.

    Facades orchestrate the entire pipeline: facade -> engine -> interface ->
    backend. They accept engines via the constructor, provide a
    ``with_default_engine()`` factory and delegate computation to the engine.
    """

    def __init__(self, config: ConfigT, interface, engine) -> None:
        self._validate_config(config)
        self._config = config
        self._interface = interface
        self._engine = engine
        self._results = None

    @classmethod
    @abstractmethod
    def with_default_engine(cls, *, config, interface=None) -> "_BranchTraceBaseFacade[ConfigT, ProblemT, ResultT]":
        pass

    @property
    def config(self) -> ConfigT:
        return self._config

    @property
    def results(self) -> ResultT | None:
        return self._results

    def update_config(self, **kwargs) -> None:
        """Update configuration parameters.

        Parameters
        ----------
        **kwargs
            Configuration parameters to update. ``None`` values are ignored.

        Raises
        ------
        ValueError
            If the configuration parameter is not valid.
        """
        filtered_kwargs = {k: v for k, v in kwargs.items() if v is not None}
        if not filtered_kwargs:
            return

        for key in filtered_kwargs:
            if not hasattr(self._config, key):
                raise ValueError(f"Unknown configuration parameter: {key}")

        self._config = self._config.merge(**filtered_kwargs)

    def _validate_config(self, config: ConfigT) -> None:
        """Validate the configuration object.

        Concrete facades may extend this with domain-specific checks.
        """
        if config is None:
            raise ValueError("A configuration object is required")

    def _get_engine(self) -> _BranchTraceBaseEngine:
        if self._engine is None:
            raise EngineError(
                f"{self.__class__.__name__} has no engine; use with_default_engine() or inject one."
            )
        return self._engine
