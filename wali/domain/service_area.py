"""Configured geographic regions the service operates in."""
from __future__ import annotations

from dataclasses import dataclass

from wali.core.exceptions import OutOfServiceAreaError
from wali.domain.order import Coordinate


@dataclass(frozen=True, slots=True)
class BoundingBox:
    name: str
    south: float
    north: float
    west: float
    east: float

    def contains(self, point: Coordinate) -> bool:
        return (
            self.south <= point.latitude <= self.north
            and self.west <= point.longitude <= self.east
        )


# Approximate national extent of Côte d'Ivoire.
IVORY_COAST = BoundingBox("cote_d_ivoire", south=4.34, north=10.74, west=-8.60, east=-2.49)

# Grand Abidjan. Used for messaging, never for rejection.
GRAND_ABIDJAN = BoundingBox("grand_abidjan", south=5.20, north=5.45, west=-4.15, east=-3.85)


@dataclass(frozen=True, slots=True)
class ServiceArea:
    """Accepted regions plus named zones for customer-facing text."""

    regions: tuple[BoundingBox, ...] = (IVORY_COAST,)
    zones: tuple[BoundingBox, ...] = (GRAND_ABIDJAN,)

    def contains(self, point: Coordinate) -> bool:
        return any(region.contains(point) for region in self.regions)

    def ensure_contains(self, point: Coordinate, label: str = "point") -> None:
        if not self.contains(point):
            raise OutOfServiceAreaError(point.latitude, point.longitude, label)

    def zone_of(self, point: Coordinate) -> str | None:
        """Name of the first zone containing ``point``, if any."""
        for zone in self.zones:
            if zone.contains(point):
                return zone.name
        return None


DEFAULT_SERVICE_AREA = ServiceArea()
