"""Provide the interface between residual problems and continuation backends."""

from typing import Any, Callable, Optional

import numpy as np

from branchtrace.algorithms.continuation.config import ContinuationConfig
from branchtrace.algorithms.continuation.options import ContinuationOptions
from branchtrace.algorithms.continuation.stepping import (make_natural_stepper,
                                                          make_secant_stepper)
from branchtrace.algorithms.continuation.types import (ContinuationContext,
                                                       ContinuationResult,
                                                       ContinuationState,
                                                       _ContinuationProblem)
from branchtrace.algorithms.events.functions import EventSet
from branchtrace.algorithms.types.core import (_BackendCall,
                                               _BranchTraceBaseInterface)


class _ResidualContinuationInterface(
    _BranchTraceBaseInterface[
        ContinuationConfig,
        _ContinuationProblem,
        ContinuationResult,
        tuple[list[ContinuationState], dict[str, object]],
    ]
):
    """Adapter wiring ``F(u, p) = 0`` problems to continuation backends."""

    def __init__(self) -> None:
        super().__init__()

    def create_problem(
        self,
        *,
        config: ContinuationConfig,
        options: ContinuationOptions,
        residual: Callable[[np.ndarray, float], np.ndarray],
        u0,
        p0: float,
        jacobian: Optional[Callable[[np.ndarray, float], Any]] = None,
        events: Optional[EventSet] = None,
    ) -> _ContinuationProblem:
        if not callable(residual):
            raise TypeError("residual must be callable as residual(u, p)")
        if jacobian is not None and not callable(jacobian):
            raise TypeError("jacobian must be callable as jacobian(u, p)")
        if events is not None and not isinstance(events, EventSet):
            raise TypeError(f"events must be an EventSet, got {type(events).__name__}")

        p_min, p_max = (float(v) for v in options.target)
        if not p_min <= float(p0) <= p_max:
            raise ValueError(f"p0={p0} lies outside the target interval [{p_min}, {p_max}]")

        self._config = config
        context = ContinuationContext(
            residual_fn=residual,
            jacobian_fn=jacobian,
            target=(p_min, p_max),
            stepper=config.stepper,
            fd_step=options.corrector.fd_step,
        )
        return _ContinuationProblem(
            residual_fn=residual,
            jacobian_fn=jacobian,
            u0=np.atleast_1d(np.asarray(u0, dtype=float)).copy(),
            p0=float(p0),
            target=np.asarray((p_min, p_max), dtype=float),
            step=float(options.step),
            max_members=int(options.max_members),
            max_retries_per_step=int(options.max_retries_per_step),
            corrector=options.corrector,
            event_options=options.events,
            shrink_policy=options.shrink_policy,
            step_min=float(options.step_min),
            step_max=float(options.step_max),
            stepper=config.stepper,
            events=events,
            context=context,
        )

    def to_backend_inputs(self, problem: _ContinuationProblem) -> _BackendCall:
        if self._backend is not None and hasattr(self._backend, "set_stepper_factory"):
            factory = make_secant_stepper() if problem.stepper == "secant" else make_natural_stepper()
            self._backend.set_stepper_factory(factory)
        return _BackendCall(
            kwargs={
                "context": problem.context,
                "u0": problem.u0,
                "p0": problem.p0,
                "step": problem.step,
                "target": (float(problem.target[0]), float(problem.target[1])),
                "max_members": problem.max_members,
                "max_retries_per_step": problem.max_retries_per_step,
                "shrink_policy": problem.shrink_policy,
                "step_min": problem.step_min,
                "step_max": problem.step_max,
                "corrector": problem.corrector,
                "events": problem.events,
                "event_options": problem.event_options,
            }
        )

    def to_results(
        self,
        outputs: tuple[list[ContinuationState], dict[str, object]],
        *,
        problem: _ContinuationProblem,
        domain_payload: Any = None,
    ) -> ContinuationResult:
        family, info = outputs
        accepted_count = int(info.get("accepted_count", len(family)))
        rejected_count = int(info.get("rejected_count", 0))
        denom = max(accepted_count + rejected_count, 1)
        return ContinuationResult(
            accepted_count=accepted_count,
            rejected_count=rejected_count,
            success_rate=float(accepted_count) / float(denom),
            family=tuple(family),
            parameter_values=tuple(info.get("parameter_values", tuple(st.p for st in family))),
            iterations=int(info.get("iterations", 0)),
            special_points=tuple(info.get("special_points", ())),
        )
