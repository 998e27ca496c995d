"""
Configuration constants and settings containers for handtracker_core.

This module contains all tunable defaults for landmark smoothing,
finger flexion classification, pinch detection and ROI tracking, plus
the validated settings objects the pipeline holds.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Final, Optional


# Hand model
NUM_LANDMARKS: Final[int] = 21
FINGER_NAMES: Final[tuple[str, ...]] = ("thumb", "index", "middle", "ring", "pinky")

# =============================================================================
# Landmark Temporal Smoothing (One Euro Filter)
# =============================================================================
LANDMARK_SMOOTH_ENABLED: Final[bool] = True
LANDMARK_MIN_CUTOFF: Final[float] = 2.0  # Lower = more smoothing, more lag
LANDMARK_BETA: Final[float] = 0.01  # Higher = more responsive to fast moves
LANDMARK_D_CUTOFF: Final[float] = 1.0  # Derivative cutoff
DEFAULT_SAMPLE_RATE_HZ: Final[float] = 30.0  # Assumed rate until two samples arrive

# =============================================================================
# Finger Flexion (degrees, 0 = straight)
# =============================================================================
FLEXION_ENABLED: Final[bool] = True
FLEXION_STRAIGHT_THRESHOLD: Final[float] = 20.0  # Below = straight
FLEXION_BENT_THRESHOLD: Final[float] = 45.0  # Above = bent
FLEXION_STABILITY_FRAMES: Final[int] = 3

# Per-joint (PIP, DIP) thresholds, same convention
JOINT_NAMES: Final[tuple[str, ...]] = ("pip", "dip")
JOINT_STRAIGHT_THRESHOLD: Final[float] = 5.0
JOINT_BENT_THRESHOLD: Final[float] = 60.0
THUMB_JOINT_BENT_THRESHOLD: Final[float] = 40.0  # Thumb joints bend less

# =============================================================================
# Pinch Gesture (normalized thumb-tip to fingertip distance)
# =============================================================================
PINCH_ENABLED: Final[bool] = True
PINCH_THRESHOLD: Final[float] = 0.07  # Enter pinch below this distance
PINCH_RELEASE_THRESHOLD: Final[float] = 0.10  # Leave pinch above this distance
PINCH_STABILITY_FRAMES: Final[int] = 3
PINCH_ACTIVE_FINGER: Final[str] = "index"
PINCH_FINGERS: Final[tuple[str, ...]] = ("index", "middle", "ring", "pinky")

# =============================================================================
# ROI (Region of Interest) Tracking
# =============================================================================
ROI_ENABLED: Final[bool] = True
ROI_MIN_SIZE: Final[float] = 0.2  # 20% of frame minimum
ROI_MAX_SIZE: Final[float] = 0.5  # 50% of frame maximum
ROI_VELOCITY_MULTIPLIER: Final[float] = 0.5  # Half-size growth per unit speed
ROI_MOVEMENT_THRESHOLD: Final[float] = 0.03  # Predicted motion forcing a full frame
ROI_MAX_TIME_BETWEEN_FULL_FRAMES_MS: Final[float] = 500.0
ROI_MARGIN: Final[float] = 0.02  # Centroid must sit this far inside the region
ROI_VELOCITY_SMOOTHING: Final[float] = 0.3  # EMA weight of the newest velocity

# Logging
LOG_FILENAME: Final[str] = "handtracker_core.log"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 3

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_SETTINGS_ERROR: Final[int] = 1
EXIT_INPUT_ERROR: Final[int] = 2
EXIT_RUNTIME_ERROR: Final[int] = 3


class ConfigurationError(ValueError):
    """Raised when a setting is rejected; the previous configuration stays in effect."""
    pass


def _require_finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return float(value)


def _require_frames(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}")
    return value


@dataclass
class FilterParameters:
    """One Euro Filter coefficients shared by every landmark filter."""

    min_cutoff: float = LANDMARK_MIN_CUTOFF  # Hz, must be > 0
    beta: float = LANDMARK_BETA  # >= 0
    d_cutoff: float = LANDMARK_D_CUTOFF  # Hz, must be > 0

    def validate(self) -> None:
        """
        Check the coefficients.

        Raises:
            ConfigurationError: If any coefficient is out of range.
        """
        if _require_finite("min_cutoff", self.min_cutoff) <= 0:
            raise ConfigurationError(f"min_cutoff must be > 0, got {self.min_cutoff}")
        if _require_finite("beta", self.beta) < 0:
            raise ConfigurationError(f"beta must be >= 0, got {self.beta}")
        if _require_finite("d_cutoff", self.d_cutoff) <= 0:
            raise ConfigurationError(f"d_cutoff must be > 0, got {self.d_cutoff}")


@dataclass
class SmoothingSettings:
    """Landmark smoothing switch plus filter coefficients."""

    enabled: bool = LANDMARK_SMOOTH_ENABLED
    parameters: FilterParameters = field(default_factory=FilterParameters)

    def validate(self) -> None:
        self.parameters.validate()


@dataclass(frozen=True)
class ThresholdPair:
    """Dual thresholds for a hysteresis classifier (low must be below high)."""

    low: float
    high: float

    def validate(self, name: str = "thresholds") -> None:
        low = _require_finite(f"{name}.low", self.low)
        high = _require_finite(f"{name}.high", self.high)
        if low >= high:
            raise ConfigurationError(
                f"{name}: low threshold ({low}) must be below high threshold ({high})"
            )


def _default_finger_thresholds() -> dict[str, ThresholdPair]:
    return {
        finger: ThresholdPair(FLEXION_STRAIGHT_THRESHOLD, FLEXION_BENT_THRESHOLD)
        for finger in FINGER_NAMES
    }


def _default_joint_thresholds() -> dict[str, dict[str, ThresholdPair]]:
    thresholds = {}
    for finger in FINGER_NAMES:
        bent = THUMB_JOINT_BENT_THRESHOLD if finger == "thumb" else JOINT_BENT_THRESHOLD
        thresholds[finger] = {
            joint: ThresholdPair(JOINT_STRAIGHT_THRESHOLD, bent) for joint in JOINT_NAMES
        }
    return thresholds


def _default_enabled_fingers() -> dict[str, bool]:
    return {finger: True for finger in FINGER_NAMES}


@dataclass
class FingerFlexionSettings:
    """
    Per-finger enable flags and straight/bent thresholds in degrees.

    `thresholds` apply to the overall finger flexion; `joint_thresholds`
    to the PIP and DIP joints individually.
    """

    enabled: bool = FLEXION_ENABLED
    enabled_fingers: dict[str, bool] = field(default_factory=_default_enabled_fingers)
    thresholds: dict[str, ThresholdPair] = field(default_factory=_default_finger_thresholds)
    joint_thresholds: dict[str, dict[str, ThresholdPair]] = field(
        default_factory=_default_joint_thresholds
    )
    stability_frames: int = FLEXION_STABILITY_FRAMES

    def validate(self) -> None:
        _require_frames("fingerFlexion.stabilityFrames", self.stability_frames)
        for finger in self.enabled_fingers:
            if finger not in FINGER_NAMES:
                raise ConfigurationError(f"Unknown finger: {finger}")
        for finger in FINGER_NAMES:
            pair = self.thresholds.get(finger)
            if pair is None:
                raise ConfigurationError(f"Missing flexion thresholds for finger: {finger}")
            pair.validate(f"fingerFlexion.thresholds.{finger}")
            joints = self.joint_thresholds.get(finger, {})
            for joint in JOINT_NAMES:
                joint_pair = joints.get(joint)
                if joint_pair is None:
                    raise ConfigurationError(f"Missing {joint} thresholds for finger: {finger}")
                joint_pair.validate(f"fingerFlexion.thresholds.{finger}.{joint}")
        for finger in self.joint_thresholds:
            if finger not in FINGER_NAMES:
                raise ConfigurationError(f"Unknown finger: {finger}")
        for finger in self.thresholds:
            if finger not in FINGER_NAMES:
                raise ConfigurationError(f"Unknown finger: {finger}")


@dataclass
class PinchSettings:
    """Pinch detection thresholds (normalized distance) and confirmation frames."""

    enabled: bool = PINCH_ENABLED
    threshold: float = PINCH_THRESHOLD
    release_threshold: float = PINCH_RELEASE_THRESHOLD
    stability_frames: int = PINCH_STABILITY_FRAMES
    active_finger: str = PINCH_ACTIVE_FINGER

    def validate(self) -> None:
        threshold = _require_finite("pinch.threshold", self.threshold)
        if threshold <= 0:
            raise ConfigurationError(f"pinch.threshold must be > 0, got {threshold}")
        ThresholdPair(self.threshold, self.release_threshold).validate("pinch")
        _require_frames("pinch.stabilityFrames", self.stability_frames)
        if self.active_finger not in PINCH_FINGERS:
            raise ConfigurationError(
                f"pinch.activeFinger must be one of {', '.join(PINCH_FINGERS)}, "
                f"got {self.active_finger!r}"
            )


@dataclass
class ROISettings:
    """ROI tracker sizing (normalized frame units) and refresh policy."""

    enabled: bool = ROI_ENABLED
    min_roi_size: float = ROI_MIN_SIZE
    max_roi_size: float = ROI_MAX_SIZE
    velocity_multiplier: float = ROI_VELOCITY_MULTIPLIER
    movement_threshold: float = ROI_MOVEMENT_THRESHOLD
    max_time_between_full_frames_ms: float = ROI_MAX_TIME_BETWEEN_FULL_FRAMES_MS
    margin: float = ROI_MARGIN
    velocity_smoothing: float = ROI_VELOCITY_SMOOTHING

    def validate(self) -> None:
        min_size = _require_finite("roi.minRoiSize", self.min_roi_size)
        max_size = _require_finite("roi.maxRoiSize", self.max_roi_size)
        if not 0 < min_size <= 1:
            raise ConfigurationError(f"roi.minRoiSize must be in (0, 1], got {min_size}")
        if not 0 < max_size <= 1:
            raise ConfigurationError(f"roi.maxRoiSize must be in (0, 1], got {max_size}")
        if min_size > max_size:
            raise ConfigurationError(
                f"roi.minRoiSize ({min_size}) must not exceed roi.maxRoiSize ({max_size})"
            )
        if _require_finite("roi.velocityMultiplier", self.velocity_multiplier) < 0:
            raise ConfigurationError("roi.velocityMultiplier must be >= 0")
        if _require_finite("roi.movementThreshold", self.movement_threshold) < 0:
            raise ConfigurationError("roi.movementThreshold must be >= 0")
        if _require_finite(
            "roi.maxTimeBetweenFullFrames", self.max_time_between_full_frames_ms
        ) <= 0:
            raise ConfigurationError("roi.maxTimeBetweenFullFrames must be > 0")
        margin = _require_finite("roi.margin", self.margin)
        if not 0 <= margin < min_size / 2:
            raise ConfigurationError(
                f"roi.margin must be in [0, minRoiSize / 2), got {margin}"
            )
        smoothing = _require_finite("roi.velocitySmoothing", self.velocity_smoothing)
        if not 0 < smoothing <= 1:
            raise ConfigurationError(f"roi.velocitySmoothing must be in (0, 1], got {smoothing}")


@dataclass
class PipelineConfig:
    """Complete configuration for one HandTrackingPipeline."""

    smoothing: SmoothingSettings = field(default_factory=SmoothingSettings)
    flexion: FingerFlexionSettings = field(default_factory=FingerFlexionSettings)
    pinch: PinchSettings = field(default_factory=PinchSettings)
    roi: ROISettings = field(default_factory=ROISettings)

    def validate(self) -> None:
        """
        Validate every section.

        Raises:
            ConfigurationError: On the first invalid value found.
        """
        self.smoothing.validate()
        self.flexion.validate()
        self.pinch.validate()
        self.roi.validate()


# =============================================================================
# Section/key/value setting changes
# =============================================================================
# Setting keys use camelCase to match the settings JSON format.

_FILTER_KEYS: Final[dict[str, str]] = {
    "minCutoff": "min_cutoff",
    "beta": "beta",
    "dCutoff": "d_cutoff",
    "dcutoff": "d_cutoff",
}

_PINCH_KEYS: Final[dict[str, str]] = {
    "enabled": "enabled",
    "threshold": "threshold",
    "releaseThreshold": "release_threshold",
    "stabilityFrames": "stability_frames",
    "activeFinger": "active_finger",
}

_ROI_KEYS: Final[dict[str, str]] = {
    "enabled": "enabled",
    "minRoiSize": "min_roi_size",
    "maxRoiSize": "max_roi_size",
    "velocityMultiplier": "velocity_multiplier",
    "movementThreshold": "movement_threshold",
    "maxTimeBetweenFullFrames": "max_time_between_full_frames_ms",
    "margin": "margin",
    "velocitySmoothing": "velocity_smoothing",
}

SECTIONS: Final[tuple[str, ...]] = ("filters", "fingerFlexion", "pinch", "roi")


def _lookup(keys: dict[str, str], section: str, key: str) -> str:
    try:
        return keys[key]
    except KeyError:
        raise ConfigurationError(f"Unknown setting: {section}.{key}") from None


def _apply_filters(smoothing: SmoothingSettings, key: str, value: Any) -> SmoothingSettings:
    if key == "enabled":
        if not isinstance(value, bool):
            raise ConfigurationError(f"filters.enabled must be a boolean, got {value!r}")
        return replace(smoothing, enabled=value)
    if key == "oneEuro":
        # Whole-filter update, as sent by the settings panel
        if not isinstance(value, dict):
            raise ConfigurationError("filters.oneEuro expects an object")
        params = smoothing.parameters
        for sub_key, sub_value in value.items():
            params = replace(params, **{_lookup(_FILTER_KEYS, "filters", sub_key): sub_value})
        return replace(smoothing, parameters=params)
    attr = _lookup(_FILTER_KEYS, "filters", key)
    return replace(smoothing, parameters=replace(smoothing.parameters, **{attr: value}))


def _parse_pair(name: str, value: Any) -> ThresholdPair:
    if isinstance(value, ThresholdPair):
        return value
    if isinstance(value, dict):
        if "low" in value and "high" in value:
            return ThresholdPair(value["low"], value["high"])
        if "min" in value and "max" in value:
            return ThresholdPair(value["min"], value["max"])
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return ThresholdPair(value[0], value[1])
    raise ConfigurationError(f"Invalid thresholds for {name}: {value!r}")


def _parse_finger_thresholds(
    finger: str,
    value: Any
) -> tuple[Optional[ThresholdPair], dict[str, ThresholdPair]]:
    """
    Split one finger's threshold entry into overall and per-joint pairs.

    Accepts a bare pair ({"low", "high"}, {"min", "max"} or [low, high]) for
    the overall flexion, or the settings panel layout with any subset of
    "flex", "pip" and "dip", e.g. {"pip": {"min": 5, "max": 60}, "dip": [5, 60]}.
    """
    sub_keys = ("flex",) + JOINT_NAMES
    if isinstance(value, dict) and any(key in value for key in sub_keys):
        unknown = sorted(set(value) - set(sub_keys))
        if unknown:
            raise ConfigurationError(
                f"Unknown threshold keys for finger {finger}: {', '.join(unknown)}"
            )
        flex = _parse_pair(f"{finger}.flex", value["flex"]) if "flex" in value else None
        joints = {
            joint: _parse_pair(f"{finger}.{joint}", value[joint])
            for joint in JOINT_NAMES
            if joint in value
        }
        return flex, joints
    return _parse_pair(finger, value), {}


def _apply_flexion(
    flexion: FingerFlexionSettings, key: str, value: Any
) -> FingerFlexionSettings:
    if key == "enabled":
        if not isinstance(value, bool):
            raise ConfigurationError(f"fingerFlexion.enabled must be a boolean, got {value!r}")
        return replace(flexion, enabled=value)
    if key == "stabilityFrames":
        return replace(flexion, stability_frames=value)
    if key == "enabledFingers":
        if not isinstance(value, dict):
            raise ConfigurationError("fingerFlexion.enabledFingers expects an object")
        enabled = dict(flexion.enabled_fingers)
        for finger, flag in value.items():
            if not isinstance(flag, bool):
                raise ConfigurationError(f"enabledFingers.{finger} must be a boolean")
            enabled[finger] = flag
        return replace(flexion, enabled_fingers=enabled)
    if key == "thresholds":
        if not isinstance(value, dict):
            raise ConfigurationError("fingerFlexion.thresholds expects an object")
        thresholds = dict(flexion.thresholds)
        joint_thresholds = {f: dict(j) for f, j in flexion.joint_thresholds.items()}
        for finger, entry in value.items():
            flex, joints = _parse_finger_thresholds(finger, entry)
            if flex is not None:
                thresholds[finger] = flex
            if joints:
                joint_thresholds.setdefault(finger, {}).update(joints)
        return replace(flexion, thresholds=thresholds, joint_thresholds=joint_thresholds)
    raise ConfigurationError(f"Unknown setting: fingerFlexion.{key}")


def _apply_fields(settings: Any, keys: dict[str, str], section: str, key: str, value: Any) -> Any:
    attr = _lookup(keys, section, key)
    if attr == "enabled" and not isinstance(value, bool):
        raise ConfigurationError(f"{section}.enabled must be a boolean, got {value!r}")
    return replace(settings, **{attr: value})


def _apply_one(config: PipelineConfig, section: str, key: str, value: Any) -> PipelineConfig:
    if section == "filters":
        return replace(config, smoothing=_apply_filters(config.smoothing, key, value))
    if section == "fingerFlexion":
        return replace(config, flexion=_apply_flexion(config.flexion, key, value))
    if section == "pinch":
        return replace(config, pinch=_apply_fields(config.pinch, _PINCH_KEYS, section, key, value))
    if section == "roi":
        return replace(config, roi=_apply_fields(config.roi, _ROI_KEYS, section, key, value))
    raise ConfigurationError(
        f"Unknown settings section: {section} (expected one of {', '.join(SECTIONS)})"
    )


def apply_setting(config: PipelineConfig, section: str, key: str, value: Any) -> PipelineConfig:
    """
    Return a new config with one named setting changed.

    The input config is never modified. Key "*" merges a dict of settings
    into the whole section.

    Args:
        config: Current (valid) configuration.
        section: One of "filters", "fingerFlexion", "pinch", "roi".
        key: camelCase setting name, or "*".
        value: New value.

    Returns:
        Validated new PipelineConfig.

    Raises:
        ConfigurationError: If the section, key or resulting config is invalid.
    """
    if key == "*":
        if not isinstance(value, dict):
            raise ConfigurationError(f"{section}.* expects an object")
        updated = config
        for sub_key, sub_value in value.items():
            updated = _apply_one(updated, section, sub_key, sub_value)
    else:
        updated = _apply_one(config, section, key, value)

    updated.validate()
    return updated


def copy_config(config: PipelineConfig) -> PipelineConfig:
    """Deep-enough copy: nested mutable containers are not shared."""
    return PipelineConfig(
        smoothing=SmoothingSettings(
            enabled=config.smoothing.enabled,
            parameters=replace(config.smoothing.parameters),
        ),
        flexion=replace(
            config.flexion,
            enabled_fingers=dict(config.flexion.enabled_fingers),
            thresholds=dict(config.flexion.thresholds),
            joint_thresholds={
                finger: dict(joints)
                for finger, joints in config.flexion.joint_thresholds.items()
            },
        ),
        pinch=replace(config.pinch),
        roi=replace(config.roi),
    )
