import pytest

from handtracker_core.flexion import (
    FINGER_JOINTS,
    Finger,
    JointAngles,
    compute_finger_angles,
    compute_flexion_measurements,
    compute_joint_angles,
    enabled_fingers_from_flags,
    flexion_angle,
)
from handtracker_core.geometry import Landmark


def test_straight_hand_has_zero_flexion(straight_hand):
    angles = compute_finger_angles(straight_hand)
    assert set(angles) == set(Finger)
    for angle in angles.values():
        assert angle == pytest.approx(0.0, abs=1e-6)


@pytest.mark.parametrize("degrees", [10.0, 30.0, 60.0, 90.0, 150.0])
def test_bent_finger_measures_requested_flexion(hand_builder, degrees):
    hand = hand_builder({"index": degrees, "ring": degrees / 2})
    angles = compute_finger_angles(hand)
    assert angles[Finger.INDEX] == pytest.approx(degrees)
    assert angles[Finger.RING] == pytest.approx(degrees / 2)
    assert angles[Finger.MIDDLE] == pytest.approx(0.0, abs=1e-6)


def test_disabled_fingers_yield_none(straight_hand):
    angles = compute_finger_angles(straight_hand, {Finger.INDEX, Finger.PINKY})
    assert angles[Finger.THUMB] is None
    assert angles[Finger.MIDDLE] is None
    assert angles[Finger.RING] is None
    assert angles[Finger.INDEX] == pytest.approx(0.0, abs=1e-6)


def test_incomplete_hand_yields_none_for_every_finger(straight_hand):
    angles = compute_finger_angles(straight_hand[:20])
    assert all(angle is None for angle in angles.values())
    assert all(angle is None for angle in compute_finger_angles([]).values())


def test_measurements_in_finger_order(hand_builder):
    measurements = compute_flexion_measurements(hand_builder({"pinky": 45.0}), {Finger.PINKY})
    assert [m.finger for m in measurements] == list(Finger)
    assert measurements[4].angle_degrees == pytest.approx(45.0)
    assert measurements[0].angle_degrees is None


def test_joint_triples_use_knuckle_proximal_and_tip():
    assert FINGER_JOINTS[Finger.THUMB] == (2, 3, 4)
    assert FINGER_JOINTS[Finger.INDEX] == (5, 6, 8)
    assert FINGER_JOINTS[Finger.PINKY] == (17, 18, 20)


def test_flexion_angle_complements_included_angle():
    knuckle = Landmark(0.0, 1.0)
    joint = Landmark(0.0, 0.0)
    assert flexion_angle(knuckle, joint, Landmark(1.0, 0.0)) == pytest.approx(90.0)
    assert flexion_angle(knuckle, joint, Landmark(0.0, -1.0)) == pytest.approx(0.0)


def test_enabled_fingers_from_flags():
    flags = {"thumb": False, "index": True}
    assert enabled_fingers_from_flags(flags) == set(Finger) - {Finger.THUMB}
    assert enabled_fingers_from_flags(flags, master=False) == set()


def test_non_finite_hand_yields_none_for_every_finger(hand_builder):
    hand = hand_builder({"index": 40.0})
    hand[7] = Landmark(float("nan"), 0.4, 0.0)
    assert all(angle is None for angle in compute_finger_angles(hand).values())


def test_straight_hand_has_straight_joints(straight_hand):
    joints = compute_joint_angles(straight_hand)
    assert set(joints) == set(Finger)
    for angles in joints.values():
        assert angles.pip == pytest.approx(0.0, abs=1e-6)
        assert angles.dip == pytest.approx(0.0, abs=1e-6)
        assert angles.flex == pytest.approx(0.0, abs=1e-6)
    # Middle knuckle sits straight above the wrist
    assert joints[Finger.MIDDLE].mcp == pytest.approx(0.0, abs=1e-6)
    assert joints[Finger.INDEX].mcp > 0.0


def test_bent_finger_bends_at_pip_only(hand_builder):
    joints = compute_joint_angles(hand_builder({"index": 60.0, "thumb": 30.0}))
    index = joints[Finger.INDEX]
    assert index.pip == pytest.approx(60.0)
    assert index.dip == pytest.approx(0.0, abs=1e-4)
    assert index.flex == pytest.approx(60.0)
    # Thumb chain is CMC, MCP, IP: the fold sits at the IP ("dip") slot
    thumb = joints[Finger.THUMB]
    assert thumb.pip == pytest.approx(0.0, abs=1e-6)
    assert thumb.dip == pytest.approx(30.0)


def test_joint_flex_matches_finger_angle(hand_builder):
    hand = hand_builder({"ring": 75.0, "pinky": 20.0})
    angles = compute_finger_angles(hand)
    for finger, joint_angles in compute_joint_angles(hand).items():
        assert joint_angles.flex == pytest.approx(angles[finger])


def test_joint_angles_none_when_not_measurable(straight_hand):
    disabled = compute_joint_angles(straight_hand, {Finger.INDEX})
    assert disabled[Finger.RING] == JointAngles()
    assert disabled[Finger.INDEX].pip is not None

    assert all(j == JointAngles() for j in compute_joint_angles(straight_hand[:20]).values())

    broken = list(straight_hand)
    broken[0] = Landmark(float("inf"), 0.8, 0.0)
    assert all(j == JointAngles() for j in compute_joint_angles(broken).values())


def test_joint_lookup_by_name():
    angles = JointAngles(mcp=1.0, pip=2.0, dip=3.0, flex=4.0)
    assert [angles.joint(name) for name in ("mcp", "pip", "dip", "flex")] == [1.0, 2.0, 3.0, 4.0]
    with pytest.raises(ValueError):
        angles.joint("toe")
