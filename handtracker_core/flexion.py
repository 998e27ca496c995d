"""
Finger flexion angles from hand landmarks.

Flexion is measured in degrees with 0 meaning a straight finger and larger
values meaning more bent: flexion = 180 - included angle at the proximal
joint between the knuckle and the fingertip.

Per-joint angles (MCP, PIP, DIP) use the same convention, each measured at
its own joint between the neighbouring points of the finger chain. For the
thumb the chain is CMC, MCP, IP, so its "pip" slot is the MCP joint and its
"dip" slot the IP joint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from .config import NUM_LANDMARKS
from .geometry import Landmark, LandmarkIndex, angle_degrees, is_finite_hand


class Finger(Enum):
    """Finger identifiers; values match the settings keys."""
    THUMB = "thumb"
    INDEX = "index"
    MIDDLE = "middle"
    RING = "ring"
    PINKY = "pinky"


# (knuckle, proximal joint, tip) landmark indices per finger
FINGER_JOINTS: dict[Finger, tuple[int, int, int]] = {
    Finger.THUMB: (LandmarkIndex.THUMB_MCP, LandmarkIndex.THUMB_IP, LandmarkIndex.THUMB_TIP),
    Finger.INDEX: (LandmarkIndex.INDEX_MCP, LandmarkIndex.INDEX_PIP, LandmarkIndex.INDEX_TIP),
    Finger.MIDDLE: (LandmarkIndex.MIDDLE_MCP, LandmarkIndex.MIDDLE_PIP, LandmarkIndex.MIDDLE_TIP),
    Finger.RING: (LandmarkIndex.RING_MCP, LandmarkIndex.RING_PIP, LandmarkIndex.RING_TIP),
    Finger.PINKY: (LandmarkIndex.PINKY_MCP, LandmarkIndex.PINKY_PIP, LandmarkIndex.PINKY_TIP),
}

FINGERTIPS: dict[Finger, int] = {
    Finger.THUMB: LandmarkIndex.THUMB_TIP,
    Finger.INDEX: LandmarkIndex.INDEX_TIP,
    Finger.MIDDLE: LandmarkIndex.MIDDLE_TIP,
    Finger.RING: LandmarkIndex.RING_TIP,
    Finger.PINKY: LandmarkIndex.PINKY_TIP,
}

# Wrist followed by the four points of each finger
FINGER_CHAINS: dict[Finger, tuple[int, int, int, int, int]] = {
    Finger.THUMB: (LandmarkIndex.WRIST, LandmarkIndex.THUMB_CMC, LandmarkIndex.THUMB_MCP,
                   LandmarkIndex.THUMB_IP, LandmarkIndex.THUMB_TIP),
    Finger.INDEX: (LandmarkIndex.WRIST, LandmarkIndex.INDEX_MCP, LandmarkIndex.INDEX_PIP,
                   LandmarkIndex.INDEX_DIP, LandmarkIndex.INDEX_TIP),
    Finger.MIDDLE: (LandmarkIndex.WRIST, LandmarkIndex.MIDDLE_MCP, LandmarkIndex.MIDDLE_PIP,
                    LandmarkIndex.MIDDLE_DIP, LandmarkIndex.MIDDLE_TIP),
    Finger.RING: (LandmarkIndex.WRIST, LandmarkIndex.RING_MCP, LandmarkIndex.RING_PIP,
                  LandmarkIndex.RING_DIP, LandmarkIndex.RING_TIP),
    Finger.PINKY: (LandmarkIndex.WRIST, LandmarkIndex.PINKY_MCP, LandmarkIndex.PINKY_PIP,
                   LandmarkIndex.PINKY_DIP, LandmarkIndex.PINKY_TIP),
}


@dataclass(frozen=True)
class FlexionMeasurement:
    """Flexion of one finger; None if the finger was disabled or not measurable."""
    finger: Finger
    angle_degrees: Optional[float]


@dataclass(frozen=True)
class JointAngles:
    """
    Flexion per joint of one finger, in degrees (0 = straight).

    Every field is None when the finger was disabled or not measurable.
    """
    mcp: Optional[float] = None
    pip: Optional[float] = None
    dip: Optional[float] = None
    flex: Optional[float] = None

    def joint(self, name: str) -> Optional[float]:
        if name not in ("mcp", "pip", "dip", "flex"):
            raise ValueError(f"Unknown joint: {name}")
        return getattr(self, name)


def flexion_angle(knuckle: Landmark, joint: Landmark, tip: Landmark) -> float:
    """Flexion in degrees (0 = straight) for one knuckle/joint/tip triple."""
    return 180.0 - angle_degrees(knuckle, joint, tip)


def _is_measurable(landmarks: Optional[Sequence[Landmark]]) -> bool:
    # Incomplete or non-finite hands count as insufficient input
    return (
        landmarks is not None
        and len(landmarks) >= NUM_LANDMARKS
        and is_finite_hand(landmarks)
    )


def compute_finger_angles(
    landmarks: Sequence[Landmark],
    enabled_fingers: Optional[Iterable[Finger]] = None
) -> dict[Finger, Optional[float]]:
    """
    Compute one flexion angle per finger.

    Args:
        landmarks: Hand landmarks (21 expected).
        enabled_fingers: Fingers to measure. None measures all five.

    Returns:
        Mapping of every finger to its flexion, or None when the finger is
        disabled, the hand has fewer than 21 landmarks or a coordinate is
        not finite.
    """
    enabled = set(Finger) if enabled_fingers is None else set(enabled_fingers)
    complete = _is_measurable(landmarks)

    angles: dict[Finger, Optional[float]] = {}
    for finger, (knuckle, joint, tip) in FINGER_JOINTS.items():
        if not complete or finger not in enabled:
            angles[finger] = None
            continue
        angles[finger] = flexion_angle(landmarks[knuckle], landmarks[joint], landmarks[tip])
    return angles


def compute_joint_angles(
    landmarks: Sequence[Landmark],
    enabled_fingers: Optional[Iterable[Finger]] = None
) -> dict[Finger, JointAngles]:
    """
    Compute MCP, PIP and DIP flexion plus overall flexion per finger.

    Args:
        landmarks: Hand landmarks (21 expected).
        enabled_fingers: Fingers to measure. None measures all five.

    Returns:
        Mapping of every finger to its JointAngles; disabled fingers and
        unmeasurable hands get an all-None record.
    """
    enabled = set(Finger) if enabled_fingers is None else set(enabled_fingers)
    complete = _is_measurable(landmarks)

    joints: dict[Finger, JointAngles] = {}
    for finger, chain in FINGER_CHAINS.items():
        if not complete or finger not in enabled:
            joints[finger] = JointAngles()
            continue
        points = [landmarks[i] for i in chain]
        knuckle, joint, tip = FINGER_JOINTS[finger]
        joints[finger] = JointAngles(
            mcp=flexion_angle(points[0], points[1], points[2]),
            pip=flexion_angle(points[1], points[2], points[3]),
            dip=flexion_angle(points[2], points[3], points[4]),
            flex=flexion_angle(landmarks[knuckle], landmarks[joint], landmarks[tip]),
        )
    return joints


def compute_flexion_measurements(
    landmarks: Sequence[Landmark],
    enabled_fingers: Optional[Iterable[Finger]] = None
) -> tuple[FlexionMeasurement, ...]:
    """Same as compute_finger_angles, as FlexionMeasurement records in finger order."""
    angles = compute_finger_angles(landmarks, enabled_fingers)
    return tuple(FlexionMeasurement(finger, angles[finger]) for finger in Finger)


def enabled_fingers_from_flags(flags: Mapping[str, bool], master: bool = True) -> set[Finger]:
    """Translate {"thumb": True, ...} settings flags into a Finger set."""
    if not master:
        return set()
    return {finger for finger in Finger if flags.get(finger.value, True)}
