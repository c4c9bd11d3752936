#Purpose: Polygon geofencing for tenant zones.
#Typical responsibilities:
#ray-casting containment test for a (lat, lng) point against a zone ring
#decoding the persisted ring / driver location structures into plain tuples
#Malformed geometry is never fatal: it is logged and treated as "no geometry".

import json
import logging
from typing import Any, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

#internal coordinate type :(lat,lng)
LatLng = Tuple[float, float]
Ring = Tuple[LatLng, ...]


def point_in_polygon(point: LatLng, ring: Sequence[Sequence[float]]) -> bool:
    """
    Standard ray-casting containment test.

    The ring is an ordered sequence of (lat, lng) vertices and is treated as
    implicitly closed (the last vertex connects back to the first).
    Rings with fewer than 3 vertices, and rings with malformed vertices,
    never contain anything.
    """
    if not ring or len(ring) < 3:
        return False

    try:
        x, y = float(point[0]), float(point[1])
        inside = False
        j = len(ring) - 1
        for i in range(len(ring)):
            xi, yi = float(ring[i][0]), float(ring[i][1])
            xj, yj = float(ring[j][0]), float(ring[j][1])

            #edge (j -> i) straddles the horizontal line through the point
            if (yi > y) != (yj > y):
                crossing_x = (xj - xi) * (y - yi) / (yj - yi) + xi
                if x < crossing_x:
                    inside = not inside
            j = i
        return inside
    except (TypeError, ValueError, IndexError):
        return False


def decode_ring(raw: Any, *, label: str = "zone") -> Optional[Ring]:
    """
    Decode a persisted zone ring into a tuple of (lat, lng) pairs.

    Accepts JSON text ("[[51.5, -0.1], ...]") or an already decoded sequence.
    Returns None when the structure cannot be decoded or has fewer than 3
    vertices; the caller then treats the zone as non-matching.
    """
    if raw is None:
        logger.warning(f"{label}: no coordinate ring stored")
        return None

    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        ring = tuple((float(vertex[0]), float(vertex[1])) for vertex in data)
    except (TypeError, ValueError, IndexError, KeyError) as exc:
        logger.warning(f"{label}: coordinate ring could not be decoded ({exc})")
        return None

    if len(ring) < 3:
        logger.warning(f"{label}: coordinate ring has {len(ring)} vertices, need at least 3")
        return None

    return ring


def decode_location(raw: Any, *, label: str = "driver") -> Optional[LatLng]:
    """
    Decode a persisted driver location.

    Accepted shapes: JSON text '{"lat": .., "lng": ..}', a mapping with
    lat/lng keys, or a (lat, lng) pair. Missing data returns None quietly;
    malformed data returns None with a warning.
    """
    if raw is None or raw == "":
        return None

    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if data is None:
            return None
        if isinstance(data, Mapping):
            lat, lng = data.get("lat"), data.get("lng")
            if lat is None or lng is None:
                return None
            return (float(lat), float(lng))
        lat, lng = data
        return (float(lat), float(lng))
    except (TypeError, ValueError) as exc:
        logger.warning(f"{label}: location could not be decoded ({exc})")
        return None
