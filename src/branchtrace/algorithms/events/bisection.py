"""Bisection localisation of events between two accepted states.

The refiner narrows a bracket ``(lo, hi)`` around each fired component by
solving the corrector at interpolated values of the continuation variable
(``p`` for natural continuation, ``s`` for secant/pseudo-arclength).

For continuous components it counts sign *inversions*: the number of times
the side of the bracket being replaced differs from the side replaced on the
previous iteration. A genuine isolated crossing alternates sides as the
bracket shrinks, whereas a drifting test function keeps halving toward one
side and never builds up inversions. The located point is confirmed once
enough inversions were seen or the bracket shrank below the requested
tolerance; a bracket still wider than that when the step budget runs out is
only a guess.

Discrete components flip unambiguously, so they are bisected on the bracket
width alone.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from branchtrace.algorithms.events.functions import EventSet
from branchtrace.algorithms.events.options import EventOptions
from branchtrace.algorithms.events.types import (STATUS_APPROXIMATE,
                                                 STATUS_CLIPPED,
                                                 STATUS_CONVERGED,
                                                 STATUS_GUESS,
                                                 EventLocation,
                                                 EventObservation,
                                                 _BisectionBracket)
from branchtrace.algorithms.types.exceptions import ConvergenceError
from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState)
from branchtrace.utils.log_config import logger

#: ``correct_at(value, guess)``: converged state at the given value of the
#: continuation variable, predicted from ``guess`` along its tangent.
CorrectAt = Callable[[float, ContinuationState], ContinuationState]

_Solved = Tuple[float, ContinuationState, EventObservation]


class BisectionRefiner:
    """Locate fired components by bisection with inversion counting.

    Parameters
    ----------
    event_set : EventSet
        Set whose observations are compared.
    correct_at : callable
        External corrector, see :data:`CorrectAt`. Raises
        :class:`~branchtrace.algorithms.types.exceptions.ConvergenceError`
        on failure.
    options : EventOptions
        Supplies ``n_inversion``, ``max_bisection_steps``,
        ``tol_param_bisection_event`` and ``max_corrector_retries``.
    context : ContinuationContext
        Passed through to the event evaluators.
    variable : {"p", "s"}, default "p"
        Continuation variable used for midpoints and bracket width.
    bounds : tuple of float, optional
        Parameter domain ``(p_min, p_max)``. A bracket whose ``hi`` state
        left it is pulled back onto the edge before bisecting.
    correct_at_param : callable, optional
        Corrector holding the parameter fixed, with the same signature as
        ``correct_at``. Needed to clip brackets when ``variable`` is ``"s"``;
        natural runs use ``correct_at`` itself.
    """

    def __init__(
        self,
        event_set: EventSet,
        correct_at: CorrectAt,
        *,
        options: EventOptions,
        context: ContinuationContext,
        variable: str = "p",
        bounds: Optional[Tuple[float, float]] = None,
        correct_at_param: Optional[CorrectAt] = None,
    ) -> None:
        if variable not in ("p", "s"):
            raise ValueError(f"variable must be 'p' or 's', got {variable!r}")
        self._event_set = event_set
        self._correct_at = correct_at
        self._options = options
        self._context = context
        self._variable = variable
        self._bounds = None if bounds is None else (float(bounds[0]), float(bounds[1]))
        self._correct_at_param = correct_at if variable == "p" else correct_at_param
        self._discrete = event_set.discrete_mask

    def _x(self, state: ContinuationState) -> float:
        return float(state.p) if self._variable == "p" else float(state.s)

    def refine(
        self,
        lo: ContinuationState,
        hi: ContinuationState,
        obs_lo: EventObservation,
        obs_hi: EventObservation,
        fired: Sequence[int],
    ) -> List[EventLocation]:
        """Refine every fired component of the bracket ``(lo, hi)``.

        Components are refined independently, in the given order. Corrector
        solves are cached for the duration of the call, so components
        needing the same midpoint share one solve.
        """
        cache: Dict[Tuple[str, float], Optional[Tuple[ContinuationState, EventObservation]]] = {}
        locations = []
        for i in fired:
            bracket = _BisectionBracket(
                index=int(i),
                lo=lo,
                hi=hi,
                value_lo=float(obs_lo.values[i]),
                value_hi=float(obs_hi.values[i]),
                x_lo=self._x(lo),
                x_hi=self._x(hi),
            )
            if self._discrete[i]:
                loc = self._refine_discrete(bracket, cache)
            else:
                loc = self._refine_continuous(bracket, cache)
            logger.debug(
                "Slot %d located at p=%.12e (%s, %d solves, %d inversions)",
                i, loc.param, loc.status, loc.steps, loc.inversions,
            )
            locations.append(loc)
        return locations

    def _refine_continuous(self, bracket: _BisectionBracket, cache) -> EventLocation:
        opts = self._options
        i = bracket.index

        if bracket.value_hi == 0.0:
            return self._location(bracket, bracket.hi, bracket.value_hi, STATUS_CONVERGED)
        if bracket.value_lo == 0.0:
            return self._location(bracket, bracket.lo, bracket.value_lo, STATUS_CONVERGED)

        clipped = self._clip(bracket, cache)
        if clipped is not None:
            return clipped
        if bracket.value_hi == 0.0:
            return self._location(bracket, bracket.hi, bracket.value_hi, STATUS_CONVERGED)

        sign_lo = np.sign(bracket.value_lo)
        while (
            bracket.inversions < opts.n_inversion
            and bracket.steps < opts.max_bisection_steps
            and bracket.width > opts.tol_param_bisection_event
        ):
            solved = self._solve(bracket, cache)
            if solved is None:
                return self._abandon(bracket)
            x, state, obs = solved
            v = float(obs.values[i])
            if np.isnan(v):
                return self._abandon(bracket)
            if v == 0.0:
                bracket.replace("hi", state, v, x)
                return self._location(bracket, state, v, STATUS_CONVERGED)
            side = "lo" if np.sign(v) == sign_lo else "hi"
            bracket.replace(side, state, v, x)

        confirmed = (
            bracket.inversions >= opts.n_inversion
            or bracket.width <= opts.tol_param_bisection_event
        )
        if abs(bracket.value_lo) <= abs(bracket.value_hi):
            best, value = bracket.lo, bracket.value_lo
        else:
            best, value = bracket.hi, bracket.value_hi

        if not confirmed:
            logger.info(
                "Event in slot %d located near p=%.6e but not confirmed (%d/%d inversions after %d steps)",
                i, best.p, bracket.inversions, opts.n_inversion, bracket.steps,
            )
        return self._location(bracket, best, value, STATUS_CONVERGED if confirmed else STATUS_GUESS)

    def _refine_discrete(self, bracket: _BisectionBracket, cache) -> EventLocation:
        opts = self._options
        i = bracket.index

        clipped = self._clip(bracket, cache)
        if clipped is not None:
            return clipped

        while (
            bracket.steps < opts.max_bisection_steps
            and bracket.width > opts.tol_param_bisection_event
        ):
            solved = self._solve(bracket, cache)
            if solved is None:
                return self._abandon(bracket)
            x, state, obs = solved
            v = float(obs.values[i])
            bracket.replace("lo" if v == bracket.value_lo else "hi", state, v, x)

        resolved = bracket.width <= opts.tol_param_bisection_event
        if not resolved:
            logger.info(
                "Flip in slot %d bracketed to width %.3e after %d steps, above tolerance %.3e",
                i, bracket.width, bracket.steps, opts.tol_param_bisection_event,
            )
        return EventLocation(
            state=bracket.hi,
            param=float(bracket.hi.p),
            value=bracket.value_hi,
            interval=self._interval(bracket),
            inversions=0,
            steps=bracket.steps,
            status=STATUS_CONVERGED if resolved else STATUS_GUESS,
        )

    def _changed(self, bracket: _BisectionBracket, value: float) -> bool:
        if self._discrete[bracket.index]:
            return value != bracket.value_lo
        return value == 0.0 or np.sign(value) != np.sign(bracket.value_lo)

    def _clip(self, bracket: _BisectionBracket, cache) -> Optional[EventLocation]:
        """Pull ``hi`` back onto the parameter domain edge if it left it.

        The edge is solved with the parameter held fixed, so secant brackets
        are clipped on ``p`` too and then bisected on ``s`` up to the edge
        state. Returns a clipped location when the change lies beyond the
        edge.
        """
        if self._bounds is None or self._correct_at_param is None:
            return None
        p_min, p_max = self._bounds
        p_hi = float(bracket.hi.p)
        if p_hi > p_max:
            edge = p_max
        elif p_hi < p_min:
            edge = p_min
        else:
            return None

        solved = self._solve_at(edge, bracket.lo, cache, variable="p")
        if solved is None:
            return None
        state, obs = solved
        v = float(obs.values[bracket.index])
        x_edge = self._x(state)

        if self._changed(bracket, v):
            bracket.hi, bracket.value_hi, bracket.x_hi = state, v, x_edge
            return None

        logger.info("Event in slot %d lies beyond the parameter domain; reported at p=%.6e", bracket.index, edge)
        return EventLocation(
            state=state,
            param=float(edge),
            value=v,
            interval=(min(bracket.x_lo, x_edge), max(bracket.x_lo, x_edge)),
            inversions=0,
            steps=0,
            status=STATUS_CLIPPED,
        )

    def _solve(self, bracket: _BisectionBracket, cache) -> Optional[_Solved]:
        """Solve at the bracket midpoint, retrying closer to ``lo`` on failure."""
        retries = self._options.max_corrector_retries
        for k in range(retries + 1):
            frac = 0.5 ** (k + 1)
            x = bracket.x_lo + frac * (bracket.x_hi - bracket.x_lo)
            solved = self._solve_at(x, bracket.lo, cache)
            if solved is not None:
                return (x,) + solved
            if k < retries:
                logger.debug("Bisection solve failed at %s=%.12e, retrying with a shorter step", self._variable, x)
        return None

    def _solve_at(
        self, x: float, guess: ContinuationState, cache, *, variable: Optional[str] = None
    ) -> Optional[Tuple[ContinuationState, EventObservation]]:
        variable = variable or self._variable
        key = (variable, float(x))
        if key in cache:
            return cache[key]
        correct_at = self._correct_at if variable == self._variable else self._correct_at_param
        try:
            state = correct_at(x, guess)
        except (ConvergenceError, np.linalg.LinAlgError) as exc:
            logger.debug("Corrector failed at %s=%.12e: %s", variable, x, exc)
            cache[key] = None
            return None
        obs = self._event_set.evaluate(self._context, state)
        cache[key] = (state, obs)
        return cache[key]

    def _abandon(self, bracket: _BisectionBracket) -> EventLocation:
        if abs(bracket.value_lo) <= abs(bracket.value_hi):
            best, value = bracket.lo, bracket.value_lo
        else:
            best, value = bracket.hi, bracket.value_hi
        param = 0.5 * (float(bracket.lo.p) + float(bracket.hi.p))
        logger.warning(
            "Bisection abandoned for slot %d after %d steps; reporting unrefined location p=%.6e",
            bracket.index, bracket.steps, param,
        )
        return EventLocation(
            state=best,
            param=param,
            value=value,
            interval=self._interval(bracket),
            inversions=0 if self._discrete[bracket.index] else bracket.inversions,
            steps=bracket.steps,
            status=STATUS_APPROXIMATE,
        )

    def _interval(self, bracket: _BisectionBracket) -> Tuple[float, float]:
        return (min(bracket.x_lo, bracket.x_hi), max(bracket.x_lo, bracket.x_hi))

    def _location(self, bracket: _BisectionBracket, state: ContinuationState, value: float, status: str) -> EventLocation:
        return EventLocation(
            state=state,
            param=float(state.p),
            value=float(value),
            interval=self._interval(bracket),
            inversions=bracket.inversions,
            steps=bracket.steps,
            status=status,
        )
