"""
ROI (Region of Interest) tracking between frames.

Tracks the hand centroid and its velocity to predict where the hand will
be on the next frame, and decides whether the detector needs a full-frame
pass or can work on a region around the prediction. A full-frame pass is
forced periodically so drift and occlusion errors get corrected.
"""

import math
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from .config import ROISettings
from .geometry import Landmark, centroid
from .logger import get_logger

logger = get_logger("ROITracker")


@dataclass(frozen=True)
class PixelRegion:
    """ROI in pixel coordinates, clipped to the frame."""
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class ROIState:
    """
    Square region in normalized frame coordinates.

    Attributes:
        center: (x, y) region center.
        half_size: Half the side length.
        last_full_frame_timestamp: Time (ms) of the last full-frame pass.
    """
    center: tuple[float, float]
    half_size: float
    last_full_frame_timestamp: float

    @property
    def x(self) -> float:
        """Top-left x."""
        return self.center[0] - self.half_size

    @property
    def y(self) -> float:
        """Top-left y."""
        return self.center[1] - self.half_size

    @property
    def width(self) -> float:
        return 2.0 * self.half_size

    @property
    def height(self) -> float:
        return 2.0 * self.half_size

    def contains(self, point: tuple[float, float], margin: float = 0.0) -> bool:
        """Check that point lies inside the region, at least margin from each edge."""
        reach = self.half_size - margin
        return (
            abs(point[0] - self.center[0]) <= reach + 1e-12
            and abs(point[1] - self.center[1]) <= reach + 1e-12
        )

    def to_pixels(self, frame_width: int, frame_height: int) -> Optional[PixelRegion]:
        """
        Convert to a pixel crop rectangle clipped to the frame.

        Returns:
            PixelRegion, or None if the region lies entirely outside the frame.
        """
        x1 = max(0, math.floor(self.x * frame_width))
        y1 = max(0, math.floor(self.y * frame_height))
        x2 = min(frame_width, math.ceil((self.x + self.width) * frame_width))
        y2 = min(frame_height, math.ceil((self.y + self.height) * frame_height))
        if x2 <= x1 or y2 <= y1:
            return None
        return PixelRegion(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


class ROITracker:
    """
    Predictive bounding-region tracker for one hand slot.

    Each update either requests full-frame processing or lets the detector
    crop to the current region. The region grows with hand speed, clamped
    to [min_roi_size, max_roi_size].

    Attributes:
        settings: ROI sizing and refresh settings.
    """

    def __init__(self, settings: Optional[ROISettings] = None):
        """
        Initialize ROI tracker.

        Args:
            settings: ROI settings. Uses defaults if None.

        Raises:
            ConfigurationError: If the settings are invalid.
        """
        self.settings = settings or ROISettings()
        self.settings.validate()

        self._region: Optional[ROIState] = None
        self._last_position: Optional[tuple[float, float]] = None
        self._last_timestamp: float = 0.0
        self._full_frame_anchor: Optional[tuple[float, float]] = None
        self._last_full_frame_time: float = 0.0
        self._velocity: tuple[float, float] = (0.0, 0.0)
        self._force_full_frame = True
        self._full_frame_count = 0
        self._region_frame_count = 0

        logger.info(
            f"ROITracker initialized: enabled={self.settings.enabled}, "
            f"size=[{self.settings.min_roi_size}, {self.settings.max_roi_size}], "
            f"max_interval={self.settings.max_time_between_full_frames_ms}ms"
        )

    def update(
        self,
        landmarks: Optional[Sequence[Landmark]],
        timestamp_ms: Optional[float] = None
    ) -> bool:
        """
        Update the tracker with this frame's landmarks.

        Args:
            landmarks: Hand landmarks, or None/empty if no hand was found.
            timestamp_ms: Frame time in milliseconds. If None, uses current time.

        Returns:
            True if the next frame should be processed in full.
        """
        now = timestamp_ms if timestamp_ms is not None else time.perf_counter() * 1000.0

        if not landmarks:
            self._on_hand_lost()
            return self._full_frame()

        position = centroid(landmarks)
        if not (math.isfinite(position[0]) and math.isfinite(position[1])):
            # Tracking state is left as it was
            logger.debug("ROITracker: non-finite centroid, requesting full frame")
            return self._full_frame()

        if self._last_position is None or self._force_full_frame:
            self._last_position = position
            self._last_timestamp = now
            self._velocity = (0.0, 0.0)
            self._force_full_frame = False
            self._full_frame_anchor = position
            self._last_full_frame_time = now
            self._region = self._build_region(position, position, now)
            return self._full_frame()

        dt = (now - self._last_timestamp) / 1000.0
        if dt > 0:
            inst_vx = (position[0] - self._last_position[0]) / dt
            inst_vy = (position[1] - self._last_position[1]) / dt
            a = self.settings.velocity_smoothing
            vx, vy = self._velocity
            self._velocity = (a * inst_vx + (1.0 - a) * vx, a * inst_vy + (1.0 - a) * vy)
            self._last_timestamp = now
        else:
            dt = 0.0

        self._last_position = position

        # Linear prediction one frame ahead
        predicted = (
            position[0] + self._velocity[0] * dt,
            position[1] + self._velocity[1] * dt,
        )

        anchor = self._full_frame_anchor or position
        predicted_motion = math.hypot(predicted[0] - anchor[0], predicted[1] - anchor[1])

        full_frame = (
            not self.settings.enabled
            or predicted_motion > self.settings.movement_threshold
            or now - self._last_full_frame_time >= self.settings.max_time_between_full_frames_ms
        )

        if full_frame:
            self._full_frame_anchor = position
            self._last_full_frame_time = now

        self._region = self._build_region(predicted, position, self._last_full_frame_time)

        if full_frame:
            return self._full_frame()

        self._region_frame_count += 1
        return False

    def _full_frame(self) -> bool:
        self._full_frame_count += 1
        return True

    def _on_hand_lost(self) -> None:
        if self._last_position is not None:
            logger.debug("ROITracker: hand lost, forcing full frame")
        self._region = None
        self._last_position = None
        self._full_frame_anchor = None
        self._velocity = (0.0, 0.0)
        self._force_full_frame = True

    def _build_region(
        self,
        predicted: tuple[float, float],
        observed: tuple[float, float],
        last_full_frame_time: float
    ) -> ROIState:
        """Square region around the prediction that still contains the observed centroid."""
        min_half = self.settings.min_roi_size / 2.0
        max_half = self.settings.max_roi_size / 2.0
        half_size = min(max_half, max(min_half, min_half + self.settings.velocity_multiplier * self.speed))

        # Shift toward the observed centroid until it sits margin inside the region
        reach = half_size - self.settings.margin
        cx = min(max(predicted[0], observed[0] - reach), observed[0] + reach)
        cy = min(max(predicted[1], observed[1] - reach), observed[1] + reach)

        return ROIState(
            center=(cx, cy),
            half_size=half_size,
            last_full_frame_timestamp=last_full_frame_time
        )

    def get_region(self) -> Optional[ROIState]:
        """Current region, or None when the hand is not being tracked."""
        return self._region

    def update_settings(self, settings: ROISettings) -> None:
        """
        Replace the settings between frames; tracking state is kept.

        Raises:
            ConfigurationError: If the settings are invalid.
        """
        settings.validate()
        self.settings = settings
        logger.debug("ROITracker settings updated")

    def reset(self) -> None:
        """Reset tracking state; the next update requests a full frame."""
        self._on_hand_lost()
        self._last_timestamp = 0.0
        self._last_full_frame_time = 0.0
        logger.debug("ROITracker reset")

    @property
    def velocity(self) -> tuple[float, float]:
        """Smoothed centroid velocity in normalized units per second."""
        return self._velocity

    @property
    def speed(self) -> float:
        return math.hypot(*self._velocity)

    @property
    def has_roi(self) -> bool:
        return self._region is not None

    @property
    def full_frame_count(self) -> int:
        return self._full_frame_count

    @property
    def region_frame_count(self) -> int:
        return self._region_frame_count

    @property
    def is_enabled(self) -> bool:
        return self.settings.enabled
