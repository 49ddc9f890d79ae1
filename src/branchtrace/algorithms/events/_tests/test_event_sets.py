import numpy as np
import pytest
from scipy import sparse

from branchtrace.algorithms.events import (ContinuousEvent, DiscreteEvent,
                                           EventSetKind, FoldEvent,
                                           PairOfEvents, SetOfEvents,
                                           StabilityEvent)
from branchtrace.algorithms.types.exceptions import (ArityMismatchError,
                                                     EventDefinitionError)
from branchtrace.algorithms.types.states import (ContinuationContext,
                                                 ContinuationState)


def _context(jacobian=None):
    return ContinuationContext(residual_fn=lambda u, p: u - p, jacobian_fn=jacobian)


def _state(p, u=None, tangent=None, step=0):
    u = np.array([p]) if u is None else np.asarray(u, dtype=float)
    return ContinuationState(u=u, p=p, step=step, tangent=tangent)


def test_continuous_event_labels_are_one_based():
    ev = ContinuousEvent(2, lambda it, st: [st.p, -st.p])
    assert ev.kind is EventSetKind.CONTINUOUS
    assert [s.label for s in ev.slots] == ["userC-1", "userC-2"]
    assert [s.local_index for s in ev.slots] == [1, 2]
    assert ev.width == 2


def test_pair_puts_continuous_outputs_first():
    pair = PairOfEvents(
        ContinuousEvent(1, lambda it, st: st.p + 2.0),
        DiscreteEvent(1, lambda it, st: st.p > -1.5),
    )
    assert pair.kind is EventSetKind.PAIR
    assert [s.label for s in pair.slots] == ["userC-1", "userD-1"]
    assert [s.event_id for s in pair.slots] == [0, 1]
    assert pair.discrete_mask.tolist() == [False, True]


def test_pair_rejects_wrong_kinds():
    c = ContinuousEvent(1, lambda it, st: st.p)
    d = DiscreteEvent(1, lambda it, st: st.p > 0)
    with pytest.raises(EventDefinitionError):
        PairOfEvents(d, c)
    with pytest.raises(EventDefinitionError):
        PairOfEvents(c, c)


def test_set_flattens_left_to_right():
    # Second leaf's second output is flat slot 2, labelled userC-2, event_id 1
    events = SetOfEvents(
        ContinuousEvent(1, lambda it, st: st.p + 2.5),
        ContinuousEvent(2, lambda it, st: [st.p + 10.0, st.p + 1.5]),
    )
    slot = events.slots[2]
    assert slot.flat_index == 2
    assert slot.event_id == 1
    assert slot.local_index == 2
    assert slot.label == "userC-2"
    assert events.width == 3


def test_nested_sets_and_pairs_number_leaves_in_order():
    pair = PairOfEvents(
        ContinuousEvent(1, lambda it, st: st.p),
        DiscreteEvent(2, lambda it, st: [st.p > 0, st.p > 1]),
    )
    inner = SetOfEvents(ContinuousEvent(1, lambda it, st: st.p - 1.0), pair)
    outer = SetOfEvents(DiscreteEvent(1, lambda it, st: True), inner)

    assert outer.kind is EventSetKind.COMPOSITE
    assert [s.event_id for s in outer.slots] == [0, 1, 2, 3, 3]
    assert [s.label for s in outer.slots] == ["userD-1", "userC-1", "userC-1", "userD-1", "userD-2"]


def test_display_names_replace_labels():
    ev = ContinuousEvent(2, lambda it, st: [st.p, st.p], names=("left", "right"))
    assert ev.names == ("left", "right")
    assert [s.name for s in ev.slots] == ["left", "right"]


def test_set_requires_events():
    with pytest.raises(EventDefinitionError):
        SetOfEvents()
    with pytest.raises(EventDefinitionError):
        SetOfEvents(lambda it, st: st.p)


@pytest.mark.parametrize("width", [0, -1, 1.5, True])
def test_invalid_width_is_an_arity_error(width):
    with pytest.raises(ArityMismatchError):
        ContinuousEvent(width, lambda it, st: st.p)


def test_names_length_must_match_width():
    with pytest.raises(ArityMismatchError):
        DiscreteEvent(2, lambda it, st: [True, False], names=("only-one",))


def test_declared_output_count_must_match_width():
    class _Probe:
        n_outputs = 3

        def __call__(self, it, st):
            return np.zeros(3)

    with pytest.raises(ArityMismatchError):
        ContinuousEvent(2, _Probe())


def test_non_callable_evaluator_is_rejected():
    with pytest.raises(EventDefinitionError):
        ContinuousEvent(1, 3.0)


def test_evaluate_flattens_values_and_flags():
    pair = PairOfEvents(
        ContinuousEvent(2, lambda it, st: [st.p, st.p - 1.0]),
        DiscreteEvent(1, lambda it, st: st.p > 0.5),
    )
    obs = pair.evaluate(_context(), _state(0.75, step=4))
    assert obs.step == 4
    np.testing.assert_allclose(obs.values, [0.75, -0.25, 1.0])
    assert obs.flags.tolist() == [True]
    np.testing.assert_allclose(obs.continuous_values, [0.75, -0.25])


def test_wrong_output_width_raises_at_evaluation():
    ev = ContinuousEvent(2, lambda it, st: st.p)
    with pytest.raises(ArityMismatchError):
        ev.evaluate(_context(), _state(0.0))


def test_evaluator_receives_context_and_state():
    seen = []

    def observer(it, st):
        seen.append((it, st))
        return st.p

    ctx = _context()
    st = _state(1.0)
    ContinuousEvent(1, observer).evaluate(ctx, st)
    assert seen == [(ctx, st)]


def test_fold_event_reads_parameter_component_of_tangent():
    ev = FoldEvent()
    assert ev.slots[0].label == "fold"
    obs = ev.evaluate(_context(), _state(0.0, tangent=np.array([0.6, -0.8])))
    assert obs.values[0] == pytest.approx(-0.8)

    # No tangent yet: undefined value
    obs = ev.evaluate(_context(), _state(0.0))
    assert np.isnan(obs.values[0])


def test_stability_event_counts_unstable_eigenvalues():
    # F_u = diag(p, p - 1, -1): one unstable eigenvalue for 0 < p < 1
    def jac(u, p):
        return np.diag([p, p - 1.0, -1.0])

    ev = StabilityEvent()
    assert ev.slots[0].label == "bp"
    ctx = _context(jac)

    assert ev.n_unstable(ctx, _state(-0.5, u=np.zeros(3))) == 0
    assert ev.n_unstable(ctx, _state(0.5, u=np.zeros(3))) == 1
    assert ev.n_unstable(ctx, _state(1.5, u=np.zeros(3))) == 2

    assert ev.evaluate(ctx, _state(-0.5, u=np.zeros(3))).values[0] == pytest.approx(-0.5)
    assert ev.evaluate(ctx, _state(0.5, u=np.zeros(3))).values[0] == pytest.approx(0.5)

    shifted = StabilityEvent(threshold=1)
    assert shifted.evaluate(ctx, _state(0.5, u=np.zeros(3))).values[0] == pytest.approx(-0.5)


def test_stability_event_accepts_sparse_jacobians():
    def jac(u, p):
        return sparse.diags([p, -1.0], format="csr")

    ev = StabilityEvent()
    assert ev.n_unstable(_context(jac), _state(0.2, u=np.zeros(2))) == 1
