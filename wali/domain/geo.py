"""Great-circle distance and travel-time estimates."""
from __future__ import annotations

import math
from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt
from typing import Iterable

from wali.domain.order import Coordinate

# Mean radius of Earth in kilometres.
EARTH_RADIUS_KM = 6371.0

# Assumed average urban courier speed (moto in Abidjan traffic).
AVERAGE_URBAN_SPEED_KMH = 25.0

# Pickup and hand-off overhead: no trip is quoted below this.
MIN_TRAVEL_MINUTES = 5

# Hour ranges (inclusive) and their traffic multipliers.
_TRAFFIC_MULTIPLIERS: tuple[tuple[int, int, float], ...] = (
    (7, 9, 1.5),
    (12, 14, 1.2),
    (17, 19, 1.7),
)
_NIGHT_MULTIPLIER = 0.8


@dataclass(frozen=True, slots=True)
class TravelEstimate:
    km: float
    estimated_minutes: int


@dataclass(frozen=True, slots=True)
class DriverPosition:
    driver_id: str
    coordinate: Coordinate


@dataclass(frozen=True, slots=True)
class NearestDriver:
    driver_id: str
    km: float
    estimated_minutes: int


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle distance in km between two coordinates."""
    lat1, lon1, lat2, lon2 = map(radians, [a.latitude, a.longitude, b.latitude, b.longitude])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


def travel_minutes(km: float) -> int:
    """Minutes at the average urban speed, rounded up, never below the floor."""
    return max(MIN_TRAVEL_MINUTES, math.ceil(km / AVERAGE_URBAN_SPEED_KMH * 60))


def distance(a: Coordinate, b: Coordinate) -> TravelEstimate:
    """Straight-line distance and travel-time estimate between two points.

    This is an estimate, not a road-network shortest path. Invalid
    coordinates are rejected when the ``Coordinate`` is built.
    """
    km = haversine_km(a, b)
    return TravelEstimate(km=km, estimated_minutes=travel_minutes(km))


def estimate_minutes_with_traffic(km: float, hour: int) -> int:
    """Travel time adjusted for Abidjan rush hours.

    Args:
        km: Trip length in kilometres.
        hour: Local hour of departure, 0-23.

    Returns:
        Estimated minutes, never below ``MIN_TRAVEL_MINUTES``.
    """
    if not 0 <= hour <= 23:
        raise ValueError(f"hour {hour} out of range [0, 23]")

    minutes = km / AVERAGE_URBAN_SPEED_KMH * 60
    for start, end, multiplier in _TRAFFIC_MULTIPLIERS:
        if start <= hour <= end:
            minutes *= multiplier
            break
    else:
        if hour >= 22 or hour <= 5:
            minutes *= _NIGHT_MULTIPLIER

    return max(MIN_TRAVEL_MINUTES, math.ceil(minutes))


def find_nearest_driver(
    pickup: Coordinate,
    drivers: Iterable[DriverPosition],
) -> NearestDriver | None:
    """Pick the available driver closest to the pickup point."""
    best: NearestDriver | None = None
    for driver in drivers:
        km = haversine_km(pickup, driver.coordinate)
        if best is None or km < best.km:
            best = NearestDriver(driver.driver_id, km, travel_minutes(km))
    return best
