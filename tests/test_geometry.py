from types import SimpleNamespace

import numpy as np
import pytest

from handtracker_core.geometry import (
    Landmark,
    angle_degrees,
    centroid,
    distance_2d,
    distance_3d,
    is_finite_hand,
    midpoint,
    to_landmark,
    to_landmarks,
)


def random_points(rng, count):
    return [Landmark(*rng.uniform(-1.0, 1.0, size=3)) for _ in range(count)]


def test_angle_is_symmetric():
    rng = np.random.default_rng(7)
    for _ in range(200):
        a, b, c = random_points(rng, 3)
        assert angle_degrees(a, b, c) == pytest.approx(angle_degrees(c, b, a))


def test_angle_stays_in_range_for_near_parallel_rays():
    b = Landmark(0.5, 0.5, 0.0)
    for eps in (0.0, 1e-15, 1e-12, 1e-8):
        same = angle_degrees(Landmark(0.6, 0.5 + eps, 0.0), b, Landmark(0.7, 0.5, 0.0))
        opposite = angle_degrees(Landmark(0.4, 0.5 + eps, 0.0), b, Landmark(0.6, 0.5, 0.0))
        assert 0.0 <= same <= 180.0
        assert 0.0 <= opposite <= 180.0
    assert angle_degrees(Landmark(0.6, 0.5), b, Landmark(0.7, 0.5)) == pytest.approx(0.0)
    assert angle_degrees(Landmark(0.4, 0.5), b, Landmark(0.6, 0.5)) == pytest.approx(180.0)


def test_right_angle():
    assert angle_degrees(Landmark(1, 0), Landmark(0, 0), Landmark(0, 1)) == pytest.approx(90.0)


def test_degenerate_ray_counts_as_straight():
    b = Landmark(0.3, 0.3, 0.1)
    assert angle_degrees(b, b, Landmark(0.5, 0.5)) == 180.0


def test_distances():
    a = Landmark(0.0, 0.0, 0.0)
    b = Landmark(3.0, 4.0, 12.0)
    assert distance_3d(a, b) == pytest.approx(13.0)
    assert distance_2d(a, b) == pytest.approx(5.0)


def test_midpoint_and_centroid():
    a = Landmark(0.2, 0.4)
    b = Landmark(0.4, 0.8)
    assert midpoint(a, b) == pytest.approx((0.3, 0.6))
    assert centroid([a, b, Landmark(0.6, 0.0)]) == pytest.approx((0.4, 0.4))
    with pytest.raises(ValueError):
        centroid([])


@pytest.mark.parametrize("entry", [
    Landmark(0.1, 0.2, 0.3),
    {"x": 0.1, "y": 0.2, "z": 0.3},
    SimpleNamespace(x=0.1, y=0.2, z=0.3),
    (0.1, 0.2, 0.3),
    [0.1, 0.2, 0.3],
    np.array([0.1, 0.2, 0.3]),
])
def test_to_landmark_formats(entry):
    assert to_landmark(entry) == Landmark(0.1, 0.2, 0.3)


def test_to_landmark_defaults_z():
    assert to_landmark([0.5, 0.6]).z == 0.0
    assert to_landmark({"x": 0.5, "y": 0.6}).z == 0.0


@pytest.mark.parametrize("entry", [0.5, "abc", [1.0], [1, 2, 3, 4]])
def test_to_landmark_rejects_unknown_shapes(entry):
    with pytest.raises(ValueError):
        to_landmark(entry)


def test_to_landmarks_handles_missing_hand():
    assert to_landmarks(None) == []
    assert len(to_landmarks([[0.1, 0.2]] * 21)) == 21


@pytest.mark.parametrize("bad", [float("nan"), float("inf")])
def test_angle_rejects_non_finite_points(bad):
    with pytest.raises(ValueError):
        angle_degrees(Landmark(bad, 1.0), Landmark(0.0, 0.0), Landmark(1.0, 0.0))


def test_is_finite_hand(straight_hand):
    assert is_finite_hand(straight_hand)
    assert is_finite_hand([])
    broken = list(straight_hand)
    broken[12] = Landmark(0.5, 0.5, float("-inf"))
    assert not is_finite_hand(broken)
