"""
Hysteresis state classifiers.

A classifier turns a continuous measurement (a flexion angle, a pinch
distance) into a discrete state. A new state only takes effect after it has
been observed for a number of consecutive frames, so single-frame noise
spikes never toggle the visible state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from .config import ThresholdPair
from .flexion import Finger
from .logger import get_logger

logger = get_logger("Hysteresis")

S = TypeVar("S", bound=Enum)


class FingerState(Enum):
    """Flexion state of a single finger."""
    STRAIGHT = "straight"
    IN_BETWEEN = "in-between"
    BENT = "bent"


class PinchState(Enum):
    """Pinch gesture state."""
    INACTIVE = "inactive"
    PINCHING = "pinching"


@dataclass(frozen=True)
class HysteresisSnapshot(Generic[S]):
    """
    Read-only view of a classifier after one frame.

    Attributes:
        current: Confirmed state.
        pending: Candidate state awaiting confirmation, or None.
        stable_frame_count: Consecutive frames the pending state has been seen.
        measurement: Last measurement used, or None if none arrived yet.
        changed: True if current changed on this frame.
    """
    current: S
    pending: Optional[S]
    stable_frame_count: int
    measurement: Optional[float]
    changed: bool = False


class HysteresisClassifier(Generic[S]):
    """
    Frame-count confirmed state machine over a discrete state domain.

    The candidate state is computed every frame by `classify(measurement,
    current)`. If it equals the current state any pending candidate is
    dropped. Otherwise the candidate must be seen on `required_stable_frames`
    consecutive frames before it becomes current. A None measurement skips
    the frame entirely.
    """

    def __init__(
        self,
        name: str,
        classify: Callable[[float, S], S],
        initial: S,
        required_stable_frames: int = 1
    ):
        """
        Initialize classifier.

        Args:
            name: Identifier used in logs and events (e.g. "index", "pinch").
            classify: Maps (measurement, current state) to the candidate state.
            initial: State before any confirmed transition.
            required_stable_frames: Consecutive frames needed to confirm a change.

        Raises:
            ValueError: If required_stable_frames < 1.
        """
        if required_stable_frames < 1:
            raise ValueError(f"required_stable_frames must be >= 1, got {required_stable_frames}")

        self.name = name
        self._classify = classify
        self._initial = initial
        self.required_stable_frames = required_stable_frames

        self._current: S = initial
        self._pending: Optional[S] = None
        self._stable_frame_count = 0
        self._measurement: Optional[float] = None

    def update(self, measurement: Optional[float]) -> HysteresisSnapshot[S]:
        """
        Feed one frame's measurement.

        Args:
            measurement: Continuous value, or None if not measured this frame.

        Returns:
            Snapshot after the update.
        """
        if measurement is None:
            # Absence is not evidence of a state change
            return self.snapshot()

        self._measurement = measurement
        candidate = self._classify(measurement, self._current)

        if candidate == self._current:
            self._pending = None
            self._stable_frame_count = 0
            return self.snapshot()

        if candidate == self._pending:
            self._stable_frame_count += 1
        else:
            self._pending = candidate
            self._stable_frame_count = 1

        if self._stable_frame_count >= self.required_stable_frames:
            previous = self._current
            self._current = candidate
            self._pending = None
            self._stable_frame_count = 0
            logger.debug(
                f"{self.name}: {previous.value} -> {candidate.value} "
                f"(measurement={measurement:.4f})"
            )
            return self.snapshot(changed=True)

        return self.snapshot()

    def snapshot(self, changed: bool = False) -> HysteresisSnapshot[S]:
        return HysteresisSnapshot(
            current=self._current,
            pending=self._pending,
            stable_frame_count=self._stable_frame_count,
            measurement=self._measurement,
            changed=changed
        )

    def set_classify(self, classify: Callable[[float, S], S]) -> None:
        """Swap the threshold rule between frames; state is kept."""
        self._classify = classify

    def set_required_stable_frames(self, frames: int) -> None:
        if frames < 1:
            raise ValueError(f"required_stable_frames must be >= 1, got {frames}")
        self.required_stable_frames = frames

    @property
    def current(self) -> S:
        return self._current

    @property
    def pending(self) -> Optional[S]:
        return self._pending

    @property
    def stable_frame_count(self) -> int:
        return self._stable_frame_count

    def reset(self) -> None:
        """Return to the initial state and drop any pending candidate."""
        self._current = self._initial
        self._pending = None
        self._stable_frame_count = 0
        self._measurement = None


def flexion_rule(thresholds: ThresholdPair) -> Callable[[float, FingerState], FingerState]:
    """Ternary rule: below low is straight, above high is bent, else in-between."""
    thresholds.validate("flexion")
    low, high = thresholds.low, thresholds.high

    def classify(angle: float, current: FingerState) -> FingerState:
        if angle < low:
            return FingerState.STRAIGHT
        if angle > high:
            return FingerState.BENT
        return FingerState.IN_BETWEEN

    return classify


def pinch_rule(thresholds: ThresholdPair) -> Callable[[float, PinchState], PinchState]:
    """
    Binary rule with asymmetric thresholds.

    Enter pinching below `low`; once pinching, only leave above `high`.
    """
    thresholds.validate("pinch")
    enter, release = thresholds.low, thresholds.high

    def classify(distance: float, current: PinchState) -> PinchState:
        if current == PinchState.PINCHING:
            return PinchState.INACTIVE if distance > release else PinchState.PINCHING
        return PinchState.PINCHING if distance < enter else PinchState.INACTIVE

    return classify


def finger_classifier(
    finger: Finger,
    thresholds: ThresholdPair,
    required_stable_frames: int
) -> HysteresisClassifier[FingerState]:
    """
    Classifier for one finger's flexion angle.

    Raises:
        ConfigurationError: If thresholds.low >= thresholds.high.
    """
    return HysteresisClassifier(
        name=finger.value,
        classify=flexion_rule(thresholds),
        initial=FingerState.STRAIGHT,
        required_stable_frames=required_stable_frames
    )


def pinch_classifier(
    threshold: float,
    release_threshold: float,
    required_stable_frames: int
) -> HysteresisClassifier[PinchState]:
    """
    Classifier for the thumb-to-finger pinch distance.

    Raises:
        ConfigurationError: If threshold >= release_threshold.
    """
    return HysteresisClassifier(
        name="pinch",
        classify=pinch_rule(ThresholdPair(threshold, release_threshold)),
        initial=PinchState.INACTIVE,
        required_stable_frames=required_stable_frames
    )


def joint_classifier(
    finger: Finger,
    joint: str,
    thresholds: ThresholdPair,
    required_stable_frames: int
) -> HysteresisClassifier[FingerState]:
    """Classifier for one joint (e.g. "pip") of one finger, named "index.pip"."""
    return HysteresisClassifier(
        name=f"{finger.value}.{joint}",
        classify=flexion_rule(thresholds),
        initial=FingerState.STRAIGHT,
        required_stable_frames=required_stable_frames
    )
