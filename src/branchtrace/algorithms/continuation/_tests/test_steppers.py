import numpy as np
import pytest

from branchtrace.algorithms.continuation import (ContinuationConfig,
                                                 ContinuationOptions)
from branchtrace.algorithms.continuation.stepping import (
    _NaturalParameterStep, _SecantStep, make_natural_stepper,
    make_secant_stepper)
from branchtrace.algorithms.types.states import ContinuationState


def _state(u, p, tangent=None, s=0.0):
    return ContinuationState(u=np.asarray(u, dtype=float), p=p, step=0, tangent=tangent, s=s)


def test_natural_prediction_extrapolates_along_tangent():
    stepper = _NaturalParameterStep(0.1, step_min=1e-6, step_max=1.0)
    tangent = np.array([2.0, 1.0]) / np.sqrt(5.0)
    proposal = stepper.predict(_state([1.0], 0.0, tangent), 0.1)
    np.testing.assert_allclose(proposal.prediction, [1.2, 0.1])
    np.testing.assert_allclose(stepper.constraint(_state([1.0], 0.0)), [0.0, 1.0])


def test_natural_prediction_without_tangent_keeps_solution():
    stepper = _NaturalParameterStep(-0.1, step_min=1e-6, step_max=1.0)
    proposal = stepper.predict(_state([1.0], 0.0), -0.1)
    np.testing.assert_allclose(proposal.prediction, [1.0, -0.1])
    assert stepper.direction == -1.0
    assert stepper.initial_step() == pytest.approx(-0.1)


def test_secant_prediction_follows_tangent():
    stepper = _SecantStep(-0.5, step_min=1e-6, step_max=1.0)
    tangent = np.array([0.6, -0.8])
    last = _state([1.0], 2.0, tangent, s=3.0)
    proposal = stepper.predict(last, 0.5)
    np.testing.assert_allclose(proposal.prediction, [1.3, 1.6])
    # Orientation lives in the tangent, ds is a magnitude
    assert stepper.initial_step() == pytest.approx(0.5)
    assert stepper.arclength(last, proposal.prediction, 0.5) == pytest.approx(3.5)
    assert stepper.coordinate(last) == pytest.approx(3.0)


def test_secant_needs_tangent():
    stepper = _SecantStep(0.5, step_min=1e-6, step_max=1.0)
    with pytest.raises(ValueError):
        stepper.predict(_state([1.0], 0.0), 0.5)


def test_reject_halves_and_accept_recovers():
    stepper = _NaturalParameterStep(-0.1, step_min=0.03, step_max=1.0)
    last = _state([0.0], 0.0)
    proposal = stepper.predict(last, -0.1)
    ds = stepper.on_reject(last=last, ds=-0.1, proposal=proposal)
    assert ds == pytest.approx(-0.05)
    ds = stepper.on_reject(last=last, ds=ds, proposal=proposal)
    assert ds == pytest.approx(-0.03)
    proposal = stepper.predict(last, ds)
    ds = stepper.on_accept(last=last, new=last, ds=ds, proposal=proposal)
    assert ds == pytest.approx(-0.06)
    ds = stepper.on_accept(last=last, new=last, ds=ds, proposal=stepper.predict(last, ds))
    assert ds == pytest.approx(-0.1)


def test_factories_build_matching_steppers():
    assert isinstance(make_natural_stepper()(0.1, 1e-6, 1.0), _NaturalParameterStep)
    assert isinstance(make_secant_stepper()(0.1, 1e-6, 1.0), _SecantStep)


def test_options_validation():
    with pytest.raises(ValueError):
        ContinuationOptions(step=0.0)
    with pytest.raises(ValueError):
        ContinuationOptions(target=(1.0, 0.0))
    with pytest.raises(ValueError):
        ContinuationOptions(step=2.0, step_max=1.0)
    with pytest.raises(ValueError):
        ContinuationConfig(stepper="arclength")
    opts = ContinuationOptions().merge(step=0.5)
    assert opts.step == 0.5
