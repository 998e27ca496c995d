"""
Landmark smoother for temporal filtering of hand landmarks.

Applies a One Euro Filter to every coordinate of every landmark to reduce
jitter without introducing noticeable lag. Filter state is kept per
(hand slot, landmark index) and created on first use.
"""

from dataclasses import fields
from typing import Optional, Sequence

from .config import FilterParameters, SmoothingSettings
from .geometry import Landmark
from .logger import get_logger
from .one_euro_filter import OneEuroFilter

logger = get_logger("LandmarkSmoother")


class VectorFilter:
    """
    One Euro Filter applied independently to each axis of a point.

    All axes share one timestamp and one FilterParameters object.
    """

    def __init__(self, parameters: FilterParameters, dimensions: int = 3):
        """
        Initialize vector filter.

        Args:
            parameters: Coefficients shared by every axis filter.
            dimensions: Number of axes (2 or 3).
        """
        if dimensions not in (2, 3):
            raise ValueError(f"dimensions must be 2 or 3, got {dimensions}")
        self.dimensions = dimensions
        self._parameters = parameters
        self._filters = [OneEuroFilter(parameters=parameters) for _ in range(dimensions)]

    def filter(self, point: Landmark, t: Optional[float] = None) -> Landmark:
        """Filter one point; z passes through untouched for 2D filters."""
        x = self._filters[0].filter(point.x, t)
        y = self._filters[1].filter(point.y, t)
        z = self._filters[2].filter(point.z, t) if self.dimensions == 3 else point.z
        return Landmark(x=x, y=y, z=z)

    def filter_values(self, values: Sequence[float], t: Optional[float] = None) -> list[float]:
        if len(values) != self.dimensions:
            raise ValueError(f"Expected {self.dimensions} values, got {len(values)}")
        return [f.filter(v, t) for f, v in zip(self._filters, values)]

    @property
    def parameters(self) -> FilterParameters:
        return self._parameters

    @parameters.setter
    def parameters(self, parameters: FilterParameters) -> None:
        # Swaps the coefficient source only; smoothed values are kept
        self._parameters = parameters
        for axis_filter in self._filters:
            axis_filter.parameters = parameters

    def reset(self) -> None:
        for axis_filter in self._filters:
            axis_filter.reset()


class LandmarkSmoother:
    """
    Smooths hand landmarks temporally using One Euro Filters.

    Holds an arena of VectorFilters keyed by (hand_slot, landmark_index).
    Filters are created lazily the first time a slot reports a landmark and
    are reset (not discarded) when the caller signals that a slot now holds
    a different hand.

    Attributes:
        settings: Smoothing switch and the shared filter coefficients.
    """

    def __init__(self, settings: Optional[SmoothingSettings] = None):
        """
        Initialize landmark smoother.

        Args:
            settings: Smoothing settings. Uses defaults if None.

        Raises:
            ConfigurationError: If the filter coefficients are invalid.
        """
        self.settings = settings or SmoothingSettings()
        self.settings.validate()

        self._filters: dict[tuple[int, int], VectorFilter] = {}
        self._overrides: dict[tuple[int, int], FilterParameters] = {}
        self._smoothed_count: int = 0

        params = self.settings.parameters
        logger.info(
            f"LandmarkSmoother initialized (enabled={self.settings.enabled}, "
            f"min_cutoff={params.min_cutoff}, beta={params.beta}, d_cutoff={params.d_cutoff})"
        )

    def _get_filter(self, hand_slot: int, index: int) -> VectorFilter:
        key = (hand_slot, index)
        vector_filter = self._filters.get(key)
        if vector_filter is None:
            params = self._overrides.get(key, self.settings.parameters)
            vector_filter = VectorFilter(params)
            self._filters[key] = vector_filter
        return vector_filter

    def smooth(
        self,
        hand_slot: int,
        landmarks: Sequence[Landmark],
        t: Optional[float] = None
    ) -> list[Landmark]:
        """
        Apply temporal smoothing to one hand's landmarks.

        Args:
            hand_slot: Slot the hand occupies.
            landmarks: Raw landmarks from the detector.
            t: Frame timestamp in seconds, shared by every coordinate.

        Returns:
            Smoothed landmarks (the input unchanged when smoothing is disabled).
        """
        if not self.settings.enabled:
            return list(landmarks)

        smoothed = [
            self._get_filter(hand_slot, i).filter(lm, t)
            for i, lm in enumerate(landmarks)
        ]
        self._smoothed_count += 1
        return smoothed

    def update_parameters(self, parameters: FilterParameters) -> None:
        """
        Retune every live filter without resetting its state.

        The shared coefficient object is rewritten in place, so filters
        created earlier pick up the change immediately. Landmarks with a
        per-instance override are unaffected.

        Raises:
            ConfigurationError: If the new coefficients are invalid; nothing
                is changed in that case.
        """
        parameters.validate()
        shared = self.settings.parameters
        for f in fields(FilterParameters):
            setattr(shared, f.name, getattr(parameters, f.name))
        logger.debug(
            f"Filter parameters updated: min_cutoff={shared.min_cutoff}, "
            f"beta={shared.beta}, d_cutoff={shared.d_cutoff}"
        )

    def set_enabled(self, enabled: bool) -> None:
        self.settings.enabled = enabled

    def set_override(
        self,
        hand_slot: int,
        index: int,
        parameters: Optional[FilterParameters]
    ) -> None:
        """
        Give one landmark its own coefficients (None restores the shared ones).

        Raises:
            ConfigurationError: If the coefficients are invalid.
        """
        key = (hand_slot, index)
        if parameters is None:
            self._overrides.pop(key, None)
            target = self.settings.parameters
        else:
            parameters.validate()
            self._overrides[key] = parameters
            target = parameters

        vector_filter = self._filters.get(key)
        if vector_filter is not None:
            vector_filter.parameters = target

    def reset_slot(self, hand_slot: int) -> None:
        """Reset filter state for one hand slot (call when its hand changes)."""
        count = 0
        for (slot, _), vector_filter in self._filters.items():
            if slot == hand_slot:
                vector_filter.reset()
                count += 1
        logger.debug(f"LandmarkSmoother slot {hand_slot} reset ({count} filters)")

    def reset(self) -> None:
        """Reset all filter states."""
        for vector_filter in self._filters.values():
            vector_filter.reset()
        logger.debug("LandmarkSmoother reset")

    @property
    def live_filter_count(self) -> int:
        """Number of landmark filters created so far."""
        return len(self._filters)

    @property
    def smoothed_count(self) -> int:
        """Get total number of hands smoothed."""
        return self._smoothed_count

    @property
    def is_enabled(self) -> bool:
        return self.settings.enabled
