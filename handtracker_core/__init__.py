"""
handtracker_core - Stable hand signals from noisy landmark detections.

Smooths per-frame hand landmarks, measures finger flexion, classifies
finger and pinch states with hysteresis, and tracks a predictive region of
interest for the detector.
"""

__version__ = "1.0.0"

from .config import (
    ConfigurationError,
    FilterParameters,
    FingerFlexionSettings,
    PinchSettings,
    PipelineConfig,
    ROISettings,
    SmoothingSettings,
    ThresholdPair,
    apply_setting,
)
from .flexion import (
    Finger,
    FlexionMeasurement,
    JointAngles,
    compute_finger_angles,
    compute_flexion_measurements,
    compute_joint_angles,
)
from .geometry import Landmark, LandmarkIndex, angle_degrees, distance_3d, is_finite_hand
from .hysteresis import (
    FingerState,
    HysteresisClassifier,
    HysteresisSnapshot,
    PinchState,
    finger_classifier,
    joint_classifier,
    pinch_classifier,
)
from .landmark_smoother import LandmarkSmoother, VectorFilter
from .one_euro_filter import OneEuroFilter
from .pipeline import FrameResult, HandFrameResult, HandTrackingPipeline, StateChangeEvent
from .roi_tracker import PixelRegion, ROIState, ROITracker
from .settings_loader import SettingsLoadError, load_settings, parse_settings

__all__ = [
    "ConfigurationError",
    "FilterParameters",
    "FingerFlexionSettings",
    "PinchSettings",
    "PipelineConfig",
    "ROISettings",
    "SmoothingSettings",
    "ThresholdPair",
    "apply_setting",
    "Finger",
    "FlexionMeasurement",
    "JointAngles",
    "compute_finger_angles",
    "compute_flexion_measurements",
    "compute_joint_angles",
    "Landmark",
    "LandmarkIndex",
    "angle_degrees",
    "distance_3d",
    "is_finite_hand",
    "FingerState",
    "HysteresisClassifier",
    "HysteresisSnapshot",
    "PinchState",
    "finger_classifier",
    "joint_classifier",
    "pinch_classifier",
    "LandmarkSmoother",
    "VectorFilter",
    "OneEuroFilter",
    "FrameResult",
    "HandFrameResult",
    "HandTrackingPipeline",
    "StateChangeEvent",
    "PixelRegion",
    "ROIState",
    "ROITracker",
    "SettingsLoadError",
    "load_settings",
    "parse_settings",
]
