"""
Per-frame hand tracking pipeline.

Runs raw detector landmarks through smoothing, flexion measurement,
hysteresis classification and ROI tracking, and emits one immutable
FrameResult per frame plus state-change events.
"""

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence

from .config import (
    JOINT_NAMES,
    NUM_LANDMARKS,
    ConfigurationError,
    PipelineConfig,
    ThresholdPair,
    apply_setting,
    copy_config,
)
from .flexion import (
    FINGERTIPS,
    Finger,
    JointAngles,
    compute_finger_angles,
    compute_joint_angles,
    enabled_fingers_from_flags,
)
from .geometry import Landmark, distance_3d, is_finite_hand, midpoint, to_landmarks
from .hysteresis import (
    FingerState,
    HysteresisClassifier,
    HysteresisSnapshot,
    PinchState,
    finger_classifier,
    flexion_rule,
    joint_classifier,
    pinch_classifier,
    pinch_rule,
)
from .landmark_smoother import LandmarkSmoother
from .logger import get_logger
from .roi_tracker import ROIState, ROITracker

logger = get_logger("Pipeline")


@dataclass(frozen=True)
class StateChangeEvent:
    """Emitted when a classifier confirms a new state."""
    hand_slot: int
    classifier: str  # finger name, "finger.joint" or "pinch"
    previous: Enum
    current: Enum
    measurement: Optional[float]
    timestamp_ms: float


@dataclass(frozen=True)
class HandFrameResult:
    """
    Everything derived from one hand slot on one frame.

    Attributes:
        hand_slot: Slot index.
        hand_present: False if the slot held no usable hand (absent, or a
            coordinate was not finite).
        landmarks: Smoothed landmarks (empty when no usable hand).
        flexion: Flexion in degrees per finger, None if disabled or unmeasurable.
        joint_angles: MCP/PIP/DIP flexion per finger.
        finger_states: Classifier snapshot per finger.
        joint_states: Classifier snapshot per finger and joint ("pip", "dip").
        pinch: Pinch classifier snapshot, None when pinch detection is disabled.
        pinch_distance: Thumb-tip to active-fingertip distance, if measured.
        pinch_position: Midpoint of the two pinching tips, if measured.
        process_full_frame: True if the detector should scan the full next frame.
        roi: Region for the next frame, None meaning full frame.
    """
    hand_slot: int
    hand_present: bool
    landmarks: tuple[Landmark, ...]
    flexion: Mapping[Finger, Optional[float]]
    joint_angles: Mapping[Finger, JointAngles]
    finger_states: Mapping[Finger, HysteresisSnapshot[FingerState]]
    joint_states: Mapping[Finger, Mapping[str, HysteresisSnapshot[FingerState]]]
    pinch: Optional[HysteresisSnapshot[PinchState]]
    pinch_distance: Optional[float]
    pinch_position: Optional[tuple[float, float]]
    process_full_frame: bool
    roi: Optional[ROIState]


@dataclass(frozen=True)
class FrameResult:
    """Pipeline output for one detector frame."""
    timestamp_ms: float
    hands: Mapping[int, HandFrameResult]
    events: tuple[StateChangeEvent, ...] = field(default_factory=tuple)


class _HandSlot:
    """Long-lived classifier and ROI state for one hand slot."""

    def __init__(self, slot: int, config: PipelineConfig):
        self.slot = slot
        flexion = config.flexion
        self.fingers: dict[Finger, HysteresisClassifier[FingerState]] = {
            finger: finger_classifier(
                finger, flexion.thresholds[finger.value], flexion.stability_frames
            )
            for finger in Finger
        }
        self.joints: dict[Finger, dict[str, HysteresisClassifier[FingerState]]] = {
            finger: {
                joint: joint_classifier(
                    finger,
                    joint,
                    flexion.joint_thresholds[finger.value][joint],
                    flexion.stability_frames
                )
                for joint in JOINT_NAMES
            }
            for finger in Finger
        }
        self.pinch = pinch_classifier(
            config.pinch.threshold,
            config.pinch.release_threshold,
            config.pinch.stability_frames
        )
        self.roi = ROITracker(replace(config.roi))

    def configure(self, config: PipelineConfig) -> None:
        for finger, classifier in self.fingers.items():
            classifier.set_classify(flexion_rule(config.flexion.thresholds[finger.value]))
            classifier.set_required_stable_frames(config.flexion.stability_frames)
        for finger, joints in self.joints.items():
            for joint, classifier in joints.items():
                classifier.set_classify(
                    flexion_rule(config.flexion.joint_thresholds[finger.value][joint])
                )
                classifier.set_required_stable_frames(config.flexion.stability_frames)
        pinch = config.pinch
        self.pinch.set_classify(
            pinch_rule(ThresholdPair(pinch.threshold, pinch.release_threshold))
        )
        self.pinch.set_required_stable_frames(pinch.stability_frames)
        self.roi.update_settings(replace(config.roi))

    def reset(self) -> None:
        for classifier in self.fingers.values():
            classifier.reset()
        for joints in self.joints.values():
            for classifier in joints.values():
                classifier.reset()
        self.pinch.reset()
        self.roi.reset()


class HandTrackingPipeline:
    """
    Smoothing, flexion, hysteresis and ROI pipeline for up to N hand slots.

    One instance must not process two frames at once; process_frame and
    every configuration write share a lock, so settings always change
    between frames, never during one.

    Usage:
        pipeline = HandTrackingPipeline()
        pipeline.set_callbacks(on_state_change=print)

        # Each detector frame:
        result = pipeline.process_frame(hands, timestamp_ms)

        # From the settings channel:
        pipeline.apply_setting("pinch", "threshold", 0.05)
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize pipeline.

        Args:
            config: Pipeline configuration. Uses defaults if None.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        config = copy_config(config) if config is not None else PipelineConfig()
        config.validate()
        self._config = config

        self._lock = threading.Lock()
        self._smoother = LandmarkSmoother(copy_config(config).smoothing)
        self._slots: dict[int, _HandSlot] = {}
        self._frame_count = 0

        self._on_state_change: Optional[Callable[[StateChangeEvent], None]] = None
        self._on_frame: Optional[Callable[[FrameResult], None]] = None

        logger.info(
            f"HandTrackingPipeline initialized (smoothing={config.smoothing.enabled}, "
            f"flexion={config.flexion.enabled}, pinch={config.pinch.enabled}, "
            f"roi={config.roi.enabled})"
        )

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def set_callbacks(
        self,
        on_state_change: Optional[Callable[[StateChangeEvent], None]] = None,
        on_frame: Optional[Callable[[FrameResult], None]] = None
    ) -> None:
        """
        Set event callbacks.

        Args:
            on_state_change: Called for each confirmed state change.
            on_frame: Called once per processed frame.
        """
        self._on_state_change = on_state_change
        self._on_frame = on_frame

    def _fire_callback(self, callback: Optional[Callable[[Any], None]], payload: Any) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as e:
            logger.error(f"Error in pipeline callback: {e}")

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def process_frame(
        self,
        hands: Sequence[Optional[Sequence[Any]]],
        timestamp_ms: float
    ) -> FrameResult:
        """
        Process one detector frame.

        Args:
            hands: Landmarks per hand slot; None or empty means no hand in
                that slot. Slots seen on earlier frames but missing here are
                treated as empty.
            timestamp_ms: Monotonic frame time in milliseconds.

        Returns:
            FrameResult for this frame.
        """
        with self._lock:
            self._frame_count += 1
            events: list[StateChangeEvent] = []
            results: dict[int, HandFrameResult] = {}

            slots = sorted(set(range(len(hands))) | set(self._slots))
            for slot in slots:
                raw = hands[slot] if slot < len(hands) else None
                results[slot] = self._process_hand(slot, to_landmarks(raw), timestamp_ms, events)

            frame = FrameResult(
                timestamp_ms=timestamp_ms,
                hands=MappingProxyType(results),
                events=tuple(events)
            )

        # Callbacks run outside the lock so they may apply settings
        for event in frame.events:
            self._fire_callback(self._on_state_change, event)
        self._fire_callback(self._on_frame, frame)
        return frame

    def _slot(self, slot: int) -> _HandSlot:
        hand_slot = self._slots.get(slot)
        if hand_slot is None:
            hand_slot = _HandSlot(slot, self._config)
            self._slots[slot] = hand_slot
            logger.debug(f"Created state for hand slot {slot}")
        return hand_slot

    def _process_hand(
        self,
        slot: int,
        raw: list[Landmark],
        timestamp_ms: float,
        events: list[StateChangeEvent]
    ) -> HandFrameResult:
        state = self._slot(slot)
        config = self._config

        usable = raw
        if raw and not is_finite_hand(raw):
            # Treated as no measurement; the filters never see the bad values
            logger.warning(f"Hand slot {slot}: non-finite landmark coordinates, frame skipped")
            usable = []

        if usable:
            landmarks = self._smoother.smooth(slot, usable, timestamp_ms / 1000.0)
        else:
            landmarks = []

        enabled = enabled_fingers_from_flags(config.flexion.enabled_fingers, config.flexion.enabled)
        flexion = compute_finger_angles(landmarks, enabled)
        joint_angles = compute_joint_angles(landmarks, enabled)

        finger_states: dict[Finger, HysteresisSnapshot[FingerState]] = {}
        joint_states: dict[Finger, Mapping[str, HysteresisSnapshot[FingerState]]] = {}
        for finger, classifier in state.fingers.items():
            finger_states[finger] = self._update_classifier(
                classifier, flexion[finger], slot, timestamp_ms, events
            )
            joint_states[finger] = MappingProxyType({
                joint: self._update_classifier(
                    joint_state_classifier,
                    joint_angles[finger].joint(joint),
                    slot,
                    timestamp_ms,
                    events
                )
                for joint, joint_state_classifier in state.joints[finger].items()
            })

        pinch_snapshot: Optional[HysteresisSnapshot[PinchState]] = None
        pinch_distance: Optional[float] = None
        pinch_position: Optional[tuple[float, float]] = None
        if config.pinch.enabled:
            if len(landmarks) >= NUM_LANDMARKS:
                thumb = landmarks[FINGERTIPS[Finger.THUMB]]
                tip = landmarks[FINGERTIPS[Finger(config.pinch.active_finger)]]
                pinch_distance = distance_3d(thumb, tip)
                pinch_position = midpoint(thumb, tip)
            pinch_snapshot = self._update_classifier(
                state.pinch, pinch_distance, slot, timestamp_ms, events
            )

        # ROI follows the raw detector output, not the smoothed landmarks
        full_frame = state.roi.update(raw, timestamp_ms)
        roi = None if full_frame else state.roi.get_region()

        return HandFrameResult(
            hand_slot=slot,
            hand_present=bool(usable),
            landmarks=tuple(landmarks),
            flexion=MappingProxyType(flexion),
            joint_angles=MappingProxyType(joint_angles),
            finger_states=MappingProxyType(finger_states),
            joint_states=MappingProxyType(joint_states),
            pinch=pinch_snapshot,
            pinch_distance=pinch_distance,
            pinch_position=pinch_position,
            process_full_frame=full_frame,
            roi=roi
        )

    @staticmethod
    def _update_classifier(
        classifier: HysteresisClassifier,
        measurement: Optional[float],
        slot: int,
        timestamp_ms: float,
        events: list[StateChangeEvent]
    ) -> HysteresisSnapshot:
        previous = classifier.current
        snapshot = classifier.update(measurement)
        if snapshot.changed:
            events.append(StateChangeEvent(
                hand_slot=slot,
                classifier=classifier.name,
                previous=previous,
                current=snapshot.current,
                measurement=snapshot.measurement,
                timestamp_ms=timestamp_ms
            ))
        return snapshot

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> PipelineConfig:
        """A copy of the active configuration."""
        with self._lock:
            return copy_config(self._config)

    def apply_setting(self, section: str, key: str, value: Any) -> None:
        """
        Apply one named setting change between frames.

        Args:
            section: "filters", "fingerFlexion", "pinch" or "roi".
            key: camelCase setting name, or "*" to merge a dict into the section.
            value: New value.

        Raises:
            ConfigurationError: If the change is invalid. The previous
                configuration stays in effect.
        """
        with self._lock:
            try:
                updated = apply_setting(self._config, section, key, value)
            except ConfigurationError as e:
                logger.warning(f"Rejected setting {section}.{key}={value!r}: {e}")
                raise
            self._install(updated)
            logger.debug(f"Applied setting {section}.{key}={value!r}")

    def update_config(self, config: PipelineConfig) -> None:
        """
        Replace the whole configuration between frames.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        updated = copy_config(config)
        updated.validate()
        with self._lock:
            self._install(updated)
        logger.info("Pipeline configuration replaced")

    def _install(self, config: PipelineConfig) -> None:
        # Caller holds the lock and config is already validated
        self._smoother.update_parameters(config.smoothing.parameters)
        self._smoother.set_enabled(config.smoothing.enabled)
        for hand_slot in self._slots.values():
            hand_slot.configure(config)
        self._config = config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset_hand(self, slot: int) -> None:
        """Reset all state of one slot (call when it now holds a different hand)."""
        with self._lock:
            self._smoother.reset_slot(slot)
            hand_slot = self._slots.get(slot)
            if hand_slot is not None:
                hand_slot.reset()
        logger.debug(f"Hand slot {slot} reset")

    def reset(self) -> None:
        """Reset every slot."""
        with self._lock:
            self._smoother.reset()
            for hand_slot in self._slots.values():
                hand_slot.reset()
        logger.debug("HandTrackingPipeline reset")

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def hand_slots(self) -> list[int]:
        return sorted(self._slots)

    def get_region(self, slot: int) -> Optional[ROIState]:
        """Current ROI of a slot, or None if the slot is unknown or not tracking."""
        hand_slot = self._slots.get(slot)
        return hand_slot.roi.get_region() if hand_slot else None
