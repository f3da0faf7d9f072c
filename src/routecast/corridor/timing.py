from __future__ import annotations

from datetime import datetime


def time_at(fraction: float, departure_time: datetime, eta_time: datetime) -> datetime:
    if not 0 <= fraction <= 1:
        raise ValueError(f"progress fraction must be within [0, 1], got {fraction}")
    return departure_time + (eta_time - departure_time) * fraction
