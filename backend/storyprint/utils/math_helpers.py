"""Math helpers — clamping, normalization, falloff curves. No engine imports."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]. When lower > upper, lower wins."""
    return max(lower, min(upper, value))


def normalize(values: NDArray[np.float64]) -> NDArray[np.float64]:
    """Min-max normalize into [0, 1]. A zero range is treated as 1."""
    if len(values) == 0:
        return values
    lo = float(np.min(values))
    span = float(np.max(values)) - lo
    if span <= 0:
        span = 1.0
    return (values - lo) / span


def bell_corrected(normalized: NDArray[np.float64], intensity: float = 0.5) -> NDArray[np.float64]:
    """Stretch normalized values away from 0.5 with a bell-shaped weight.

    bell(n) = max(0, 1 - 4 (n - 0.5)^2) peaks at the middle of the range, so
    medium values get pushed apart instead of being flattened by a plain
    monotonic decay. Result is clipped to [0, 1].
    """
    centered = normalized - 0.5
    bell = np.maximum(0.0, 1.0 - 4.0 * centered * centered)
    return np.clip(normalized + bell * intensity * centered, 0.0, 1.0)


def sqrt_size(size: int) -> float:
    """Estimated radius of a community from its member count."""
    return float(np.sqrt(max(size, 0)))
