from __future__ import annotations

from typing import Sequence

from ..domain.models import ElevationPoint
from .geodesic import haversine_km


def build_elevation_profile(geometry: Sequence[Sequence[float]]) -> list[ElevationPoint] | None:
    """Cumulative distance/elevation pairs, one per geometry coordinate.

    Returns ``None`` when the first coordinate has no elevation component.
    A sea-level elevation of ``0`` still counts as elevation data.
    """
    if not geometry or len(geometry[0]) < 3:
        return None

    profile: list[ElevationPoint] = []
    cumulative_km = 0.0
    previous: Sequence[float] | None = None
    for coordinate in geometry:
        if previous is not None:
            cumulative_km += haversine_km(previous[1], previous[0], coordinate[1], coordinate[0])
        profile.append(
            ElevationPoint(cumulative_distance_km=cumulative_km, elevation_meters=coordinate[2])
        )
        previous = coordinate
    return profile
