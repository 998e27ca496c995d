import pytest

from handtracker_core.config import ConfigurationError, FilterParameters, SmoothingSettings
from handtracker_core.geometry import Landmark
from handtracker_core.landmark_smoother import LandmarkSmoother, VectorFilter


def shifted(hand, dx):
    return [Landmark(lm.x + dx, lm.y, lm.z) for lm in hand]


def test_filters_created_lazily_per_slot(straight_hand):
    smoother = LandmarkSmoother()
    assert smoother.live_filter_count == 0

    smoother.smooth(0, straight_hand, 0.0)
    assert smoother.live_filter_count == 21

    smoother.smooth(0, straight_hand, 0.033)
    assert smoother.live_filter_count == 21

    smoother.smooth(1, straight_hand, 0.033)
    assert smoother.live_filter_count == 42
    assert smoother.smoothed_count == 3


def test_constant_hand_is_unchanged(straight_hand):
    smoother = LandmarkSmoother()
    for i in range(5):
        out = smoother.smooth(0, straight_hand, i * 0.03)
    for a, b in zip(out, straight_hand):
        assert a.x == pytest.approx(b.x)
        assert a.y == pytest.approx(b.y)
        assert a.z == pytest.approx(b.z)


def test_update_parameters_keeps_state(straight_hand):
    smoother = LandmarkSmoother()
    smoother.smooth(0, straight_hand, 0.0)
    smoother.smooth(0, shifted(straight_hand, 0.1), 0.033)

    smoother.update_parameters(FilterParameters(min_cutoff=9.0, beta=0.5, d_cutoff=2.0))

    vector_filter = smoother._filters[(0, 8)]
    assert vector_filter.parameters is smoother.settings.parameters
    assert vector_filter.parameters.min_cutoff == 9.0
    # Not reset: the next sample is still blended with history
    out = smoother.smooth(0, shifted(straight_hand, 0.2), 0.066)
    assert out[8].x < straight_hand[8].x + 0.2


def test_invalid_update_changes_nothing():
    smoother = LandmarkSmoother()
    with pytest.raises(ConfigurationError):
        smoother.update_parameters(FilterParameters(min_cutoff=0.0))
    assert smoother.settings.parameters.min_cutoff == 2.0


def test_override_survives_shared_update(straight_hand):
    smoother = LandmarkSmoother()
    smoother.smooth(0, straight_hand, 0.0)

    override = FilterParameters(min_cutoff=40.0)
    smoother.set_override(0, 4, override)
    smoother.update_parameters(FilterParameters(min_cutoff=1.0))

    assert smoother._filters[(0, 4)].parameters.min_cutoff == 40.0
    assert smoother._filters[(0, 5)].parameters.min_cutoff == 1.0

    smoother.set_override(0, 4, None)
    assert smoother._filters[(0, 4)].parameters is smoother.settings.parameters


def test_override_applies_to_filters_created_later():
    smoother = LandmarkSmoother()
    smoother.set_override(2, 0, FilterParameters(min_cutoff=12.0))
    smoother.smooth(2, [Landmark(0.5, 0.5)], 0.0)
    assert smoother._filters[(2, 0)].parameters.min_cutoff == 12.0


def test_reset_slot_only_touches_that_slot(straight_hand):
    smoother = LandmarkSmoother()
    for slot in (0, 1):
        smoother.smooth(slot, straight_hand, 0.0)

    smoother.reset_slot(0)
    moved = shifted(straight_hand, 0.2)
    slot0 = smoother.smooth(0, moved, 0.033)
    slot1 = smoother.smooth(1, moved, 0.033)

    assert slot0[8].x == moved[8].x
    assert slot1[8].x < moved[8].x
    assert smoother.live_filter_count == 42


def test_disabled_smoothing_passes_input_through(straight_hand):
    smoother = LandmarkSmoother(SmoothingSettings(enabled=False))
    moved = shifted(straight_hand, 0.3)
    smoother.smooth(0, straight_hand, 0.0)
    assert smoother.smooth(0, moved, 0.033) == moved
    assert smoother.live_filter_count == 0
    assert not smoother.is_enabled


def test_vector_filter_axes_share_timestamp():
    vf = VectorFilter(FilterParameters(), dimensions=2)
    assert vf.filter_values([0.1, 0.9], 0.0) == [0.1, 0.9]
    point = vf.filter(Landmark(0.2, 0.8, 0.7), 0.033)
    assert 0.1 < point.x < 0.2
    assert point.z == 0.7

    with pytest.raises(ValueError):
        vf.filter_values([1.0, 2.0, 3.0], 0.066)


def test_vector_filter_rejects_bad_dimensions():
    with pytest.raises(ValueError):
        VectorFilter(FilterParameters(), dimensions=4)
