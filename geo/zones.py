"""
Purpose: Zone Resolver.
What it does:
Given a coordinate and a tenant's zones (in a stable, caller-supplied order),
returns the first zone whose polygon contains the coordinate.

Overlapping zones are resolved by first match in iteration order. The
repository hands zones back in insertion order so the result is deterministic.

Rule: pure / read-only against an already-loaded zone list. No caching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .geofence import LatLng, Ring, decode_ring, point_in_polygon


@dataclass(frozen=True)
class Zone:
    """
    A named tenant polygon. `ring` is None when the stored geometry
    could not be decoded; such a zone never contains anything.
    """
    id: str
    tenant_id: str
    name: str
    ring: Optional[Ring]

    @classmethod
    def from_encoded(cls, zone_id: str, tenant_id: str, name: str, coordinates: Any) -> Zone:
        return cls(
            id=zone_id,
            tenant_id=tenant_id,
            name=name,
            ring=decode_ring(coordinates, label=f"zone {name} ({zone_id})"),
        )

    def contains(self, point: Optional[LatLng]) -> bool:
        if point is None or self.ring is None:
            return False
        return point_in_polygon(point, self.ring)


def resolve_zone(point: Optional[LatLng], zones: Iterable[Zone]) -> Optional[Zone]:
    """
    First zone (in the given order) containing `point`, or None.
    """
    if point is None:
        return None

    for zone in zones:
        if zone.contains(point):
            return zone
    return None
