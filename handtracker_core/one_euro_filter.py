"""
One Euro Filter implementation for signal smoothing.

Kept in its own module so the landmark smoother and any single-channel
consumer share one implementation.
"""

import math
import time
from typing import Optional

from .config import (
    DEFAULT_SAMPLE_RATE_HZ,
    LANDMARK_BETA,
    LANDMARK_D_CUTOFF,
    LANDMARK_MIN_CUTOFF,
    FilterParameters,
)


class LowPassFilter:
    """Exponential low-pass stage: y = alpha * x + (1 - alpha) * y_prev."""

    def __init__(self):
        self._y: float = 0.0
        self._initialized = False

    def filter(self, x: float, alpha: float) -> float:
        if not self._initialized:
            # First sample passes through regardless of alpha
            self._y = x
            self._initialized = True
            return x

        self._y = alpha * x + (1.0 - alpha) * self._y
        return self._y

    @property
    def value(self) -> float:
        return self._y

    @property
    def initialized(self) -> bool:
        return self._initialized

    def reset(self) -> None:
        self._y = 0.0
        self._initialized = False


class OneEuroFilter:
    """
    One Euro Filter - adaptive low-pass filter for noisy input.

    Adapts smoothing based on signal speed:
    - Slow movement = heavy smoothing (reduces jitter)
    - Fast movement = light smoothing (reduces latency)

    The coefficients live in a FilterParameters object that may be shared
    with other filters; changing it retunes every filter holding it without
    touching their smoothed state.

    Reference: Casiez et al. "1€ Filter: A Simple Speed-based Low-pass
    Filter for Noisy Input in Interactive Systems" (CHI 2012)
    """

    def __init__(
        self,
        min_cutoff: float = LANDMARK_MIN_CUTOFF,
        beta: float = LANDMARK_BETA,
        d_cutoff: float = LANDMARK_D_CUTOFF,
        parameters: Optional[FilterParameters] = None
    ):
        """
        Initialize One Euro Filter.

        Args:
            min_cutoff: Minimum cutoff frequency (Hz). Lower = smoother but more lag.
            beta: Speed coefficient. Higher = more responsive to fast movements.
            d_cutoff: Derivative cutoff frequency for velocity smoothing.
            parameters: Shared coefficient object. Overrides the three values above.

        Raises:
            ConfigurationError: If the coefficients are invalid.
        """
        if parameters is None:
            parameters = FilterParameters(min_cutoff=min_cutoff, beta=beta, d_cutoff=d_cutoff)
        parameters.validate()
        self.parameters = parameters

        self._x = LowPassFilter()
        self._dx = LowPassFilter()
        self._t_prev: Optional[float] = None
        self._rate: float = DEFAULT_SAMPLE_RATE_HZ

    @staticmethod
    def _smoothing_factor(rate: float, cutoff: float) -> float:
        """Calculate smoothing factor alpha from cutoff frequency."""
        tau = 1.0 / (2.0 * math.pi * cutoff)
        te = 1.0 / rate
        return 1.0 / (1.0 + tau / te)

    def filter(self, x: float, t: Optional[float] = None) -> float:
        """
        Apply One Euro Filter to a single value.

        Args:
            x: Input value.
            t: Timestamp in seconds. If None, uses current time.

        Returns:
            Filtered value.
        """
        if t is None:
            t = time.perf_counter()

        if not math.isfinite(x):
            # Never let NaN/inf into the filter state
            return self._x.value if self._x.initialized else 0.0

        if self._t_prev is None:
            self._t_prev = t
            self._dx.filter(0.0, 1.0)
            return self._x.filter(x, 1.0)

        te = t - self._t_prev
        if te > 0:
            self._rate = 1.0 / te
            self._t_prev = t
        # te <= 0 (duplicate or out-of-order timestamp): reuse the previous rate

        params = self.parameters

        # Estimate and smooth the derivative
        dx = (x - self._x.value) * self._rate
        edx = self._dx.filter(dx, self._smoothing_factor(self._rate, params.d_cutoff))

        # Adaptive cutoff based on velocity
        cutoff = params.min_cutoff + params.beta * abs(edx)

        return self._x.filter(x, self._smoothing_factor(self._rate, cutoff))

    def reset(self) -> None:
        """Reset filter state (parameters are kept)."""
        self._x.reset()
        self._dx.reset()
        self._t_prev = None
        self._rate = DEFAULT_SAMPLE_RATE_HZ

    @property
    def last_value(self) -> Optional[float]:
        """Last filtered value, or None before the first sample."""
        return self._x.value if self._x.initialized else None

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._t_prev

    @property
    def rate(self) -> float:
        """Current sample-rate estimate in Hz."""
        return self._rate
