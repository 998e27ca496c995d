import math

import pytest

from handtracker_core.config import ConfigurationError, FilterParameters
from handtracker_core.one_euro_filter import LowPassFilter, OneEuroFilter


def test_first_sample_passes_through():
    f = OneEuroFilter()
    assert f.filter(0.4321, 10.0) == 0.4321
    assert f.last_value == 0.4321


def test_low_pass_first_sample_ignores_alpha():
    lp = LowPassFilter()
    assert lp.filter(7.0, 0.1) == 7.0
    assert lp.filter(8.0, 0.5) == pytest.approx(7.5)


@pytest.mark.parametrize("params", [
    FilterParameters(),
    FilterParameters(min_cutoff=0.1, beta=0.0, d_cutoff=0.5),
    FilterParameters(min_cutoff=5.0, beta=2.0, d_cutoff=3.0),
])
def test_constant_input_converges(params):
    f = OneEuroFilter(parameters=params)
    f.filter(0.0, 0.0)
    value = None
    for i in range(1, 1500):
        value = f.filter(5.0, i / 30.0)
    assert value == pytest.approx(5.0, abs=1e-6)


def test_smooths_step_response():
    f = OneEuroFilter(min_cutoff=1.0, beta=0.0)
    f.filter(0.0, 0.0)
    out = f.filter(1.0, 1 / 30.0)
    assert 0.0 < out < 1.0


def test_duplicate_timestamp_reuses_rate():
    f = OneEuroFilter()
    f.filter(1.0, 0.0)
    f.filter(2.0, 0.05)
    assert f.rate == pytest.approx(20.0)

    out = f.filter(3.0, 0.05)
    assert math.isfinite(out)
    assert f.rate == pytest.approx(20.0)


def test_backward_timestamp_never_produces_nan():
    f = OneEuroFilter()
    f.filter(1.0, 1.0)
    out = f.filter(2.0, 0.5)
    assert math.isfinite(out)
    assert f.last_timestamp == 1.0


def test_first_duplicate_uses_default_rate():
    f = OneEuroFilter()
    f.filter(1.0, 2.0)
    assert math.isfinite(f.filter(1.5, 2.0))
    assert f.rate == pytest.approx(30.0)


def test_non_finite_input_returns_previous_value():
    f = OneEuroFilter()
    f.filter(0.25, 0.0)
    assert f.filter(float("nan"), 0.033) == 0.25
    assert f.filter(float("inf"), 0.066) == 0.25


@pytest.mark.parametrize("kwargs", [
    {"min_cutoff": 0.0},
    {"min_cutoff": -1.0},
    {"beta": -0.1},
    {"d_cutoff": 0.0},
    {"min_cutoff": float("nan")},
])
def test_invalid_parameters_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        OneEuroFilter(**kwargs)


def test_shared_parameters_retune_live_filter():
    shared = FilterParameters(min_cutoff=0.5)
    retuned = OneEuroFilter(parameters=shared)
    untouched = OneEuroFilter(min_cutoff=0.5)

    for f in (retuned, untouched):
        f.filter(0.0, 0.0)
        f.filter(0.0, 1 / 30.0)

    shared.min_cutoff = 50.0
    fast = retuned.filter(1.0, 2 / 30.0)
    slow = untouched.filter(1.0, 2 / 30.0)
    assert fast > slow


def test_reset_restores_pass_through():
    f = OneEuroFilter()
    f.filter(0.0, 0.0)
    f.filter(1.0, 0.1)
    f.reset()
    assert f.last_value is None
    assert f.filter(3.0, 0.2) == 3.0
