#Marks geo as a package.
#Re-exports the geometry helpers and the zone resolver so the pricing and
#dispatch layers import from geo without knowing internal file names.
#No business logic.

from .distance import distance, EARTH_RADIUS_MILES
from .geofence import point_in_polygon, decode_ring, decode_location
from .zones import Zone, resolve_zone

__all__ = [
    "distance",
    "EARTH_RADIUS_MILES",
    "point_in_polygon",
    "decode_ring",
    "decode_location",
    "Zone",
    "resolve_zone",
]
