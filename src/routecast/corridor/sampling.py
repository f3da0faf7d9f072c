from __future__ import annotations

import math
from dataclasses import dataclass

MIN_SAMPLE_POINTS = 3
MAX_LONG_ROUTE_POINTS = 8
DEFAULT_BIAS_EXPONENT = 0.8
DEFAULT_BIAS_THRESHOLD_KM = 100.0


def sample_count(distance_km: float) -> int:
    if distance_km < 0:
        raise ValueError(f"route distance must be >= 0, got {distance_km} km")

    if distance_km < 50:
        count = 3
    elif distance_km < 200:
        count = math.floor(4 + (distance_km - 50) / 50)
    else:
        count = min(MAX_LONG_ROUTE_POINTS, 6 + math.floor((distance_km - 200) / 100))
    return max(MIN_SAMPLE_POINTS, count)


def plan_sample_points(distance_meters: float) -> list[float]:
    """Return the progress fractions at which a route of this length is sampled.

    The first fraction is always 0 and the last always 1.
    """
    count = sample_count(distance_meters / 1000)
    return [index / (count - 1) for index in range(count)]


@dataclass(frozen=True, slots=True)
class SamplingPolicy:
    """Where along the geometry an interior sample is taken.

    On long routes the geometry position is pulled towards the start with
    ``fraction ** bias_exponent``. The exponent is a tuning heuristic and is
    exposed through the ``sampling`` section of the YAML config.
    """

    bias_exponent: float = DEFAULT_BIAS_EXPONENT
    bias_threshold_km: float = DEFAULT_BIAS_THRESHOLD_KM

    def __post_init__(self) -> None:
        if self.bias_exponent <= 0:
            raise ValueError("bias_exponent must be > 0")
        if self.bias_threshold_km < 0:
            raise ValueError("bias_threshold_km must be >= 0")

    def geometry_fraction(self, fraction: float, distance_km: float) -> float:
        if fraction <= 0 or fraction >= 1:
            return fraction
        if distance_km > self.bias_threshold_km:
            return fraction**self.bias_exponent
        return fraction


def geometry_index(fraction: float, geometry_length: int) -> int:
    if geometry_length < 1:
        raise ValueError("geometry must contain at least one coordinate")
    return min(math.floor(fraction * geometry_length), geometry_length - 1)
