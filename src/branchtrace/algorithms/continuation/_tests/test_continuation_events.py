import numpy as np
import pytest
from scipy import sparse

from branchtrace.algorithms.continuation import (Continuation,
                                                 ContinuationConfig,
                                                 ContinuationOptions,
                                                 continuation)
from branchtrace.algorithms.continuation.interfaces import \
    _ResidualContinuationInterface
from branchtrace.algorithms.events import (ContinuousEvent, DiscreteEvent,
                                           EventOptions, FoldEvent,
                                           PairOfEvents, SetOfEvents,
                                           StabilityEvent)
from branchtrace.algorithms.types.exceptions import (ArityMismatchError,
                                                     EngineError)


def _identity_residual(u, p):
    # Trivial branch u = p
    return u - p


def _located(**kwargs):
    base = dict(detect_event=2, n_inversion=20, max_bisection_steps=40, tol_param_bisection_event=1e-8)
    base.update(kwargs)
    return EventOptions(**base)


@pytest.fixture(scope="module")
def shifted_run():
    # p from -3 to 0 in steps of 1e-3, one crossing of p + 2 at p = -2
    return continuation(
        _identity_residual,
        [-3.0],
        -3.0,
        events=ContinuousEvent(1, lambda it, st: st.p + 2.0),
        options=ContinuationOptions(
            target=(-3.0, 0.0),
            step=1e-3,
            max_members=3001,
            events=_located(),
        ),
    )


def test_single_crossing_is_reported_once(shifted_run):
    result = shifted_run
    assert len(result.special_points) == 1
    sp = result.special_points[0]
    assert sp.kind == "userC-1"
    assert sp.event_id == 0
    assert abs(sp.param + 2.0) < 1e-8
    assert sp.status == "converged"


def test_branch_covers_target(shifted_run):
    result = shifted_run
    assert result.accepted_count == 3001
    assert result.rejected_count == 0
    assert result.success_rate == pytest.approx(1.0)
    assert result.parameter_values[0] == pytest.approx(-3.0)
    assert result.parameter_values[-1] == pytest.approx(0.0, abs=1e-9)


def test_result_exports_to_dataframe(shifted_run):
    df = shifted_run.to_df()
    assert len(df) == shifted_run.accepted_count
    assert list(df.columns) == ["step", "p", "s", "residual_norm"]
    assert df["step"].is_monotonic_increasing


def test_flag_only_run_reports_accepted_step():
    result = continuation(
        _identity_residual, [-3.0], -3.0,
        events=ContinuousEvent(1, lambda it, st: st.p + 2.0),
        target=(-3.0, 0.0), step=0.1, max_members=40,
    )
    (sp,) = result.special_points
    assert sp.status == "detected"
    assert -2.0 <= sp.param <= -1.9 + 1e-12
    assert result.family[sp.step].p == pytest.approx(sp.param)


def test_pair_reports_continuous_and_discrete():
    events = PairOfEvents(
        ContinuousEvent(1, lambda it, st: st.p + 2.0),
        DiscreteEvent(1, lambda it, st: st.p > -1.5),
    )
    result = continuation(
        _identity_residual, [-3.0], -3.0, events=events,
        options=ContinuationOptions(target=(-3.0, 0.0), step=1e-2, max_members=400, events=_located()),
    )
    assert [sp.kind for sp in result.special_points] == ["userC-1", "userD-1"]
    c, d = result.special_points
    assert abs(c.param + 2.0) < 1e-8
    assert d.event_id == 1
    assert d.param > -1.5
    assert d.param <= -1.5 + 1e-8


def test_set_labels_second_output_of_second_event():
    events = SetOfEvents(
        ContinuousEvent(1, lambda it, st: st.p + 2.5),
        ContinuousEvent(2, lambda it, st: [st.p + 10.0, st.p + 1.5]),
    )
    result = continuation(
        _identity_residual, [-3.0], -3.0, events=events,
        options=ContinuationOptions(target=(-3.0, 0.0), step=1e-2, max_members=400, events=_located()),
    )
    kinds = [(sp.kind, sp.event_id, sp.local_index) for sp in result.special_points]
    assert kinds == [("userC-1", 0, 1), ("userC-2", 1, 2)]
    assert abs(result.special_points[1].param + 1.5) < 1e-8
    steps = [sp.step for sp in result.special_points]
    assert steps == sorted(steps)


class _FlakyResidual:
    """Residual that fails once, on the first evaluation past ``p_fail``."""

    def __init__(self, p_fail):
        self.p_fail = p_fail
        self.failed = False

    def __call__(self, u, p):
        if not self.failed and p > self.p_fail:
            self.failed = True
            return np.full_like(np.asarray(u, dtype=float), np.nan)
        return u - p


def test_rejected_step_does_not_disturb_detection():
    seen_steps = []

    def observer(it, st):
        seen_steps.append(st.step)
        return st.p + 2.0

    residual = _FlakyResidual(-2.495)
    result = continuation(
        residual, [-3.0], -3.0,
        events=ContinuousEvent(1, observer),
        target=(-3.0, 0.0), step=1e-2, max_members=150,
    )
    assert residual.failed
    assert result.rejected_count >= 1
    # Only the seed and accepted states were evaluated
    assert len(seen_steps) == result.accepted_count
    assert seen_steps == sorted(seen_steps)
    (sp,) = result.special_points
    assert sp.kind == "userC-1"
    assert -2.0 <= sp.param < -1.99


def test_arity_error_is_raised_before_stepping():
    with pytest.raises(ArityMismatchError):
        continuation(
            _identity_residual, [-3.0], -3.0,
            events=ContinuousEvent(2, lambda it, st: st.p),
            target=(-3.0, 0.0), step=1e-2,
        )


def test_no_events_gives_no_special_points():
    result = continuation(_identity_residual, [0.0], 0.0, target=(0.0, 1.0), step=0.1, max_members=5)
    assert result.special_points == ()
    assert result.accepted_count == 5


def test_detection_disabled():
    result = continuation(
        _identity_residual, [-3.0], -3.0,
        events=ContinuousEvent(1, lambda it, st: st.p + 2.0),
        options=ContinuationOptions(target=(-3.0, 0.0), step=0.1, max_members=40, events=EventOptions(detect_event=0)),
    )
    assert result.special_points == ()


def test_run_stops_when_leaving_target():
    result = continuation(_identity_residual, [0.0], 0.0, target=(0.0, 1.0), step=0.3, max_members=100)
    assert result.accepted_count == 5
    assert result.parameter_values[-1] > 1.0


def test_crossing_past_domain_edge_is_clipped():
    # Last step overshoots p_max = 1.0 and the crossing at 1.05 lies beyond it
    result = continuation(
        _identity_residual, [0.0], 0.0,
        events=ContinuousEvent(1, lambda it, st: st.p - 1.05),
        options=ContinuationOptions(target=(0.0, 1.0), step=0.3, max_members=100, events=_located()),
    )
    (sp,) = result.special_points
    assert sp.status == "clipped"
    assert sp.param == pytest.approx(1.0)


def test_secant_crossing_past_domain_edge_is_clipped():
    # Secant steps of 0.3 along u = p overshoot p_max = 1.0 at p = 1.0607
    result = continuation(
        _identity_residual, [0.0], 0.0,
        events=ContinuousEvent(1, lambda it, st: st.p - 1.05),
        stepper="secant",
        options=ContinuationOptions(target=(0.0, 1.0), step=0.3, max_members=100, events=_located()),
    )
    assert result.parameter_values[-1] > 1.05
    (sp,) = result.special_points
    assert sp.kind == "userC-1"
    assert sp.status == "clipped"
    assert sp.param == pytest.approx(1.0)
    assert sp.state.u[0] == pytest.approx(1.0)


def test_secant_crossing_inside_domain_is_bisected_up_to_edge():
    result = continuation(
        _identity_residual, [0.0], 0.0,
        events=ContinuousEvent(1, lambda it, st: st.p - 0.95),
        stepper="secant",
        options=ContinuationOptions(target=(0.0, 1.0), step=0.3, max_members=100, events=_located()),
    )
    (sp,) = result.special_points
    assert sp.status == "converged"
    assert abs(sp.param - 0.95) < 1e-7
    assert sp.param <= 1.0


def test_failed_seed_is_wrapped_in_engine_error():
    with pytest.raises(EngineError):
        continuation(lambda u, p: u * u + 1.0, [0.5], 0.0, target=(0.0, 1.0), step=0.1)


def test_sparse_jacobian_run_locates_event():
    n = 5

    def residual(u, p):
        return u - p * np.arange(1, n + 1)

    def jacobian(u, p):
        return sparse.identity(n, format="csr")

    result = continuation(
        residual, np.full(n, -1.0) * np.arange(1, n + 1), -1.0,
        jacobian=jacobian,
        events=ContinuousEvent(1, lambda it, st: st.u[-1] - 1.0),
        options=ContinuationOptions(target=(-1.0, 1.0), step=0.05, max_members=100, events=_located()),
    )
    (sp,) = result.special_points
    assert abs(sp.param - 0.2) < 1e-8
    np.testing.assert_allclose(sp.state.u, 0.2 * np.arange(1, n + 1), atol=1e-7)


def test_secant_stepper_passes_fold():
    # u**2 + p = 0 folds at (u, p) = (0, 0)
    cont = Continuation.with_default_engine(config=ContinuationConfig(stepper="secant"))
    result = cont.generate(
        lambda u, p: u * u + p,
        [-1.0],
        -1.0,
        jacobian=lambda u, p: np.diag(2.0 * u),
        events=FoldEvent(),
        options=ContinuationOptions(target=(-2.0, 0.5), step=0.05, max_members=400, events=_located(tol_param_bisection_event=1e-10)),
    )
    assert cont.results is result
    (sp,) = result.special_points
    assert sp.kind == "fold"
    assert abs(sp.param) < 1e-6
    assert abs(sp.state.u[0]) < 1e-3
    # Branch turned around and left through p_min
    assert result.family[-1].u[0] > 1.0
    assert result.parameter_values[-1] < -2.0


def test_natural_stepper_reports_no_fold_on_monotone_branch():
    result = continuation(
        _identity_residual, [0.0], 0.0,
        events=FoldEvent(),
        options=ContinuationOptions(target=(0.0, 1.0), step=0.1, max_members=50, events=_located()),
    )
    assert result.special_points == ()
    assert all(st.dp > 0 for st in result.family)


def test_stability_event_locates_loss_of_stability():
    # A(p) = [[p, 1], [-1, p]] has eigenvalues p +/- i; both turn unstable at p = 0
    b = np.array([1.0, 0.0])

    def A(p):
        return np.array([[p, 1.0], [-1.0, p]])

    result = continuation(
        lambda u, p: A(p) @ u - b,
        [0.0, 1.0],
        -1.0,
        jacobian=lambda u, p: A(p),
        events=StabilityEvent(),
        options=ContinuationOptions(
            target=(-1.0, 1.0), step=0.05, max_members=100,
            events=_located(tol_param_bisection_event=1e-10),
        ),
    )
    (sp,) = result.special_points
    assert sp.kind == "bp"
    assert abs(sp.param) < 1e-8


def test_update_config_switches_stepper():
    cont = Continuation.with_default_engine(config=ContinuationConfig())
    cont.update_config(stepper="secant")
    assert cont.config.stepper == "secant"
    with pytest.raises(ValueError):
        cont.update_config(unknown=1)


def test_facade_without_engine_raises_engine_error():
    cont = Continuation(ContinuationConfig(), _ResidualContinuationInterface())
    with pytest.raises(EngineError):
        cont.generate(_identity_residual, [0.0], 0.0, target=(0.0, 1.0), step=0.1)
    assert cont.results is None
