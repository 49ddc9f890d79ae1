"""Predict-correct continuation backend implementation."""

from typing import Callable, Optional, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import spsolve

from branchtrace.algorithms.continuation.backends.base import \
    _ContinuationBackend
from branchtrace.algorithms.continuation.stepping import (
    _as_vector, _ContinuationStepperFactory)
from branchtrace.algorithms.corrector.backends.newton import _NewtonBackend
from branchtrace.algorithms.corrector.options import CorrectionOptions
from branchtrace.algorithms.events.base import EventMonitor
from branchtrace.algorithms.events.functions import EventSet
from branchtrace.algorithms.events.options import EventOptions
from branchtrace.algorithms.types.exceptions import ConvergenceError
from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState)
from branchtrace.utils.log_config import logger


class _PCContinuationBackend(_ContinuationBackend):
    """Implement a predict-correct continuation backend.

    Each step predicts with the stepper, then solves the augmented system
    ``[F(u, p); c . (x - x_last) - ds] = 0`` with the Newton corrector. A
    failed solve is a rejection: the step is shrunk and retried. Accepted
    states are handed to the event monitor before the next prediction.

    Parameters
    ----------
    stepper_factory : callable, optional
        Stepper factory, see :mod:`branchtrace.algorithms.continuation.stepping`.
    corrector : _NewtonBackend, optional
        Corrector backend. A fresh :class:`_NewtonBackend` when None.
    """

    def __init__(
        self,
        *,
        stepper_factory: Optional[_ContinuationStepperFactory] = None,
        corrector: Optional[_NewtonBackend] = None,
    ) -> None:
        super().__init__(stepper_factory=stepper_factory)
        self._corrector = corrector or _NewtonBackend()
        self._context: Optional[ContinuationContext] = None
        self._correction = CorrectionOptions()
        self._monitor: Optional[EventMonitor] = None
        self._iterations = 0
        self._step_index = 0

    @property
    def monitor(self) -> Optional[EventMonitor]:
        return self._monitor

    def _reset_state(self) -> None:
        self._iterations = 0
        self._step_index = 0
        self._monitor = None

    def run(
        self,
        *,
        context: ContinuationContext,
        u0: np.ndarray,
        p0: float,
        step: float,
        target: Tuple[float, float],
        max_members: int,
        max_retries_per_step: int,
        shrink_policy: Optional[Callable[[float], float]],
        step_min: float,
        step_max: float,
        corrector: CorrectionOptions,
        events: Optional[EventSet] = None,
        event_options: Optional[EventOptions] = None,
    ) -> tuple[list[ContinuationState], dict]:
        self._reset_state()
        self._context = context
        self._correction = corrector

        stepper = self.make_stepper(step, step_min, step_max)
        p_min, p_max = float(target[0]), float(target[1])

        seed = self._correct_seed(np.atleast_1d(np.asarray(u0, dtype=float)), float(p0), stepper.direction)
        logger.info(
            "Starting %s continuation from p=%.6e (step=%.3e, max_members=%d)",
            context.stepper, seed.p, step, max_members,
        )

        if events is not None and event_options is not None:
            self._monitor = EventMonitor(
                events,
                options=event_options,
                context=context,
                corrector=self.correct_at,
                variable=stepper.variable,
                bounds=(p_min, p_max),
                correct_at_param=self.correct_at_param,
            )
            self._monitor.initialise(seed)

        family: list[ContinuationState] = [seed]
        accepted_count = 1
        rejected_count = 0
        ds = stepper.initial_step()
        stop_reason = "max_members"

        while accepted_count < int(max_members):
            last = family[-1]
            attempt = 0
            while True:
                proposal = stepper.predict(last, ds)
                try:
                    new = self._correct(last, ds, proposal.prediction, step_index=last.step + 1)
                except (ConvergenceError, np.linalg.LinAlgError) as exc:
                    rejected_count += 1
                    attempt += 1
                    logger.debug("Step %d rejected (ds=%.3e): %s", last.step + 1, ds, exc)
                    if attempt > int(max_retries_per_step):
                        self.on_failure(proposal.prediction, iterations=self._iterations, residual_norm=float("nan"))
                        new = None
                        break
                    if shrink_policy is not None:
                        ds = float(shrink_policy(ds))
                    else:
                        ds = stepper.on_reject(last=last, ds=ds, proposal=proposal)
                    continue
                break

            if new is None:
                stop_reason = "retries"
                logger.warning(
                    "Continuation stopped at p=%.6e: step %d failed after %d retries",
                    last.p, last.step + 1, max_retries_per_step,
                )
                break

            family.append(new)
            accepted_count += 1
            self.on_accept(_as_vector(new), iterations=self._iterations, residual_norm=new.residual_norm)

            if self._monitor is not None:
                self._step_index = new.step
                self._monitor.on_accept(new)

            ds = stepper.on_accept(last=last, new=new, ds=ds, proposal=proposal)

            if new.p < p_min or new.p > p_max:
                stop_reason = "target"
                break

        special = self._monitor.special_points if self._monitor is not None else ()
        logger.info(
            "Continuation finished (%s): %d accepted, %d rejected, %d special points",
            stop_reason, accepted_count, rejected_count, len(special),
        )

        info = {
            "accepted_count": int(accepted_count),
            "rejected_count": int(rejected_count),
            "iterations": int(self._iterations),
            "parameter_values": tuple(float(st.p) for st in family),
            "special_points": tuple(special),
            "stop_reason": stop_reason,
            "final_step": float(ds),
            "residual_norm": float(family[-1].residual_norm),
        }
        return family, info

    def correct_at(self, value: float, guess: ContinuationState) -> ContinuationState:
        """Return the converged state at ``value`` of the continuation variable.

        The prediction starts from ``guess`` and the closing constraint is
        taken relative to it. The returned state carries the index of the
        step being processed.

        Raises
        ------
        ConvergenceError
            If the corrector fails.
        """
        stepper = self._stepper
        ds = float(value) - stepper.coordinate(guess)
        proposal = stepper.predict(guess, ds)
        try:
            return self._correct(guess, ds, proposal.prediction, step_index=self._step_index)
        except np.linalg.LinAlgError as exc:
            raise ConvergenceError(f"Linear solve failed at {stepper.variable}={value:.12e}: {exc}") from exc

    def correct_at_param(self, p: float, guess: ContinuationState) -> ContinuationState:
        """Return the converged state at parameter ``p``, whatever the stepper.

        Used to pull event brackets back onto the domain edge. In secant runs
        the arclength of the result is measured along the tangent of
        ``guess``, which is the coordinate :meth:`correct_at` solves for.

        Raises
        ------
        ConvergenceError
            If the corrector fails.
        """
        if self._stepper.variable == "p":
            return self.correct_at(p, guess)

        x_last = _as_vector(guess)
        dp = float(p) - float(guess.p)
        prediction = x_last.copy()
        tan = guess.tangent
        if tan is not None and abs(tan[-1]) > 1e-8:
            prediction[:-1] += dp * np.asarray(tan[:-1], dtype=float) / float(tan[-1])
        prediction[-1] += dp

        c = np.zeros_like(x_last)
        c[-1] = 1.0
        try:
            x, r_norm = self._solve(prediction, x_last, c, dp)
            tangent = self._tangent(x, tan if tan is not None else c)
        except np.linalg.LinAlgError as exc:
            raise ConvergenceError(f"Linear solve failed at p={p:.12e}: {exc}") from exc

        s = float(guess.s) + (float(np.dot(tan, x - x_last)) if tan is not None else float(np.linalg.norm(x - x_last)))
        return ContinuationState(
            u=x[:-1].copy(),
            p=float(x[-1]),
            step=self._step_index,
            tangent=tangent,
            s=s,
            residual_norm=r_norm,
        )

    def _correct_seed(self, u0: np.ndarray, p0: float, direction: float) -> ContinuationState:
        """Correct ``u0`` at fixed ``p0`` and attach the oriented tangent."""
        x0 = np.concatenate([u0, [p0]])
        c = np.zeros_like(x0)
        c[-1] = 1.0
        x, r_norm = self._solve(x0, x0, c, 0.0)
        tangent = self._tangent(x, direction * c)
        return ContinuationState(u=x[:-1].copy(), p=float(x[-1]), step=0, tangent=tangent, s=0.0, residual_norm=r_norm)

    def _correct(self, last: ContinuationState, ds: float, prediction: np.ndarray, *, step_index: int) -> ContinuationState:
        stepper = self._stepper
        x_last = _as_vector(last)
        c = stepper.constraint(last)
        x, r_norm = self._solve(prediction, x_last, c, ds)
        tangent = self._tangent(x, last.tangent if last.tangent is not None else c)
        return ContinuationState(
            u=x[:-1].copy(),
            p=float(x[-1]),
            step=int(step_index),
            tangent=tangent,
            s=stepper.arclength(last, x, ds),
            residual_norm=r_norm,
        )

    def _solve(self, x0: np.ndarray, x_last: np.ndarray, c: np.ndarray, ds: float) -> Tuple[np.ndarray, float]:
        context = self._context

        def _residual(x: np.ndarray) -> np.ndarray:
            F = context.residual(x[:-1], x[-1])
            return np.concatenate([F, [float(c @ (x - x_last)) - ds]])

        def _jacobian(x: np.ndarray):
            return self._augmented(x, c)

        opts = self._correction
        x, k, r_norm = self._corrector.run(
            x0,
            _residual,
            jacobian_fn=_jacobian,
            tol=opts.tol,
            max_attempts=opts.max_attempts,
            max_delta=opts.max_delta,
            fd_step=opts.fd_step,
        )
        self._iterations += int(k)
        return x, float(r_norm)

    def _augmented(self, x: np.ndarray, row: np.ndarray):
        """Jacobian of the augmented system, ``[[F_u, F_p], [row]]``."""
        u, p = x[:-1], float(x[-1])
        J = self._context.jacobian(u, p)
        F_p = self._context.parameter_derivative(u, p).reshape(-1, 1)
        if sparse.issparse(J):
            return sparse.bmat(
                [[J, sparse.csr_matrix(F_p)], [sparse.csr_matrix(row.reshape(1, -1))]],
                format="csc",
            )
        return np.vstack([np.hstack([np.asarray(J, dtype=float), F_p]), row.reshape(1, -1)])

    def _tangent(self, x: np.ndarray, reference: np.ndarray) -> np.ndarray:
        """Unit tangent at ``x`` oriented along ``reference``.

        Solves ``[[F_u, F_p], [reference]] t = e_n`` so that
        ``reference . t > 0``.
        """
        A = self._augmented(x, np.asarray(reference, dtype=float))
        rhs = np.zeros(x.size, dtype=float)
        rhs[-1] = 1.0
        if sparse.issparse(A):
            t = np.asarray(spsolve(A, rhs), dtype=float).ravel()
        else:
            t = np.linalg.solve(A, rhs)
        norm = float(np.linalg.norm(t))
        if not np.isfinite(norm) or norm == 0.0:
            raise np.linalg.LinAlgError("Tangent system is singular")
        return t / norm
